"""Identity provider for password and federated sign-in.

The provider owns the ``account`` table and issues signed session tokens.
Services never read ``current_user`` themselves; callers pass the
resulting ``UserIdentity`` into each operation explicitly.
"""

from __future__ import annotations

import asyncio
import hashlib
import hmac
import logging
import re
import secrets
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from lingua_forum.core.errors import CredentialError, CredentialErrorCode, Unauthenticated
from lingua_forum.core.settings import Settings, settings
from lingua_forum.db.session import unit_of_work
from lingua_forum.models import Account
from lingua_forum.models.account import PROVIDER_FEDERATED, PROVIDER_PASSWORD
from lingua_forum.schemas.user import AuthSession, UserIdentity

logger = logging.getLogger(__name__)

PBKDF2_ITERATIONS = 120_000
_EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def hash_password(password: str, salt: bytes) -> bytes:
    """Derive the stored PBKDF2-SHA256 digest for ``password``."""
    return hashlib.pbkdf2_hmac("sha256", password.encode("utf-8"), salt, PBKDF2_ITERATIONS)


def _normalize_email(email: str) -> str:
    normalized = email.strip().lower()
    if not _EMAIL_PATTERN.match(normalized):
        raise CredentialError(CredentialErrorCode.INVALID_EMAIL)
    return normalized


def _identity_for(account: Account) -> UserIdentity:
    return UserIdentity(id=account.id, display_name=account.display_name)


def _password_matches(account: Account, password: str) -> bool:
    if account.password_hash is None or account.password_salt is None:
        return False
    return hmac.compare_digest(account.password_hash, hash_password(password, account.password_salt))


class LocalIdentityProvider:
    """Authenticate users against the ``account`` table.

    Holds the identity of the most recent successful sign-in as
    ``current_user`` until ``logout`` is called.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | None = None,
        *,
        config: Settings | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._settings = config or settings
        self._current: UserIdentity | None = None

    @property
    def current_user(self) -> UserIdentity | None:
        """Return the signed-in identity, if any."""
        return self._current

    def create_access_token(self, identity: UserIdentity) -> str:
        """Create a signed session token for ``identity``."""
        expire = datetime.now(UTC) + timedelta(minutes=self._settings.access_token_expire_minutes)
        claims: dict[str, object] = {"sub": identity.id, "exp": expire}
        if identity.display_name:
            claims["name"] = identity.display_name
        encoded: str = jwt.encode(
            claims,
            self._settings.secret_key,
            algorithm=self._settings.jwt_algorithm,
        )
        return encoded

    def _start_session(self, identity: UserIdentity) -> AuthSession:
        self._current = identity
        return AuthSession(user=identity, access_token=self.create_access_token(identity))

    async def signup(
        self,
        email: str,
        password: str,
        display_name: str | None = None,
    ) -> AuthSession:
        """Create a password account and sign it in.

        Raises:
            CredentialError: For a malformed email, a short password or an
                email that is already registered.
        """
        normalized = _normalize_email(email)
        if len(password) < self._settings.password_min_length:
            raise CredentialError(
                CredentialErrorCode.WEAK_PASSWORD,
                f"Password should be at least {self._settings.password_min_length} characters",
            )

        salt = secrets.token_bytes(16)
        digest = await asyncio.to_thread(hash_password, password, salt)

        async with unit_of_work("signup", self._session_factory) as session:
            existing = await session.scalar(select(Account).where(Account.email == normalized))
            if existing is not None:
                raise CredentialError(CredentialErrorCode.EMAIL_ALREADY_IN_USE)
            account = Account(
                email=normalized,
                display_name=(display_name or "").strip() or normalized.split("@", 1)[0],
                provider=PROVIDER_PASSWORD,
                password_salt=salt,
                password_hash=digest,
            )
            session.add(account)
            await session.flush()
            identity = _identity_for(account)

        logger.info("Account %s created", identity.id)
        return self._start_session(identity)

    async def login(self, email: str, password: str) -> AuthSession:
        """Sign in with email and password.

        Raises:
            CredentialError: With ``USER_NOT_FOUND``, ``WRONG_PASSWORD``,
                ``USER_DISABLED``, ``TOO_MANY_REQUESTS`` or ``INVALID_EMAIL``.
        """
        normalized = _normalize_email(email)
        failure: CredentialErrorCode | None = None
        identity: UserIdentity | None = None

        # Failed attempts must be committed, so classify inside the block and raise after it.
        async with unit_of_work("login", self._session_factory) as session:
            account = await session.scalar(select(Account).where(Account.email == normalized))
            if account is None:
                failure = CredentialErrorCode.USER_NOT_FOUND
            elif account.disabled:
                failure = CredentialErrorCode.USER_DISABLED
            elif account.failed_login_attempts >= self._settings.login_max_failed_attempts:
                failure = CredentialErrorCode.TOO_MANY_REQUESTS
            elif not await asyncio.to_thread(_password_matches, account, password):
                account.failed_login_attempts += 1
                failure = CredentialErrorCode.WRONG_PASSWORD
            else:
                account.failed_login_attempts = 0
                identity = _identity_for(account)

        if failure is not None or identity is None:
            logger.info("Password sign-in rejected: %s", failure)
            raise CredentialError(failure or CredentialErrorCode.INVALID_CREDENTIAL)
        return self._start_session(identity)

    async def login_with_federated_provider(self, id_token: str | None) -> AuthSession:
        """Sign in with an ID token issued by the federated provider.

        A missing token means the user dismissed the provider's sign-in
        window. The first federated sign-in for an email creates the account.

        Raises:
            CredentialError: With ``POPUP_CLOSED_BY_USER``, ``INVALID_CREDENTIAL``,
                ``USER_DISABLED`` or ``ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL``.
        """
        if not id_token:
            raise CredentialError(CredentialErrorCode.POPUP_CLOSED_BY_USER)
        secret = self._settings.federated_provider_secret
        if not secret:
            raise CredentialError(
                CredentialErrorCode.INVALID_CREDENTIAL,
                "Federated sign-in is not configured",
            )
        try:
            claims = jwt.decode(
                id_token,
                secret,
                algorithms=[self._settings.jwt_algorithm],
                audience=self._settings.federated_provider_audience,
                issuer=self._settings.federated_provider_issuer,
            )
        except JWTError as err:
            raise CredentialError(CredentialErrorCode.INVALID_CREDENTIAL) from err

        subject = claims.get("sub")
        email = claims.get("email")
        if not subject or not email:
            raise CredentialError(CredentialErrorCode.INVALID_CREDENTIAL)
        normalized = _normalize_email(str(email))

        async with unit_of_work("login_with_federated_provider", self._session_factory) as session:
            account = await session.scalar(
                select(Account).where(Account.federated_subject == str(subject))
            )
            if account is None:
                by_email = await session.scalar(
                    select(Account).where(Account.email == normalized)
                )
                if by_email is not None:
                    raise CredentialError(
                        CredentialErrorCode.ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL
                    )
                account = Account(
                    email=normalized,
                    display_name=claims.get("name") or normalized.split("@", 1)[0],
                    provider=PROVIDER_FEDERATED,
                    federated_subject=str(subject),
                )
                session.add(account)
                await session.flush()
                logger.info("Account %s created from federated sign-in", account.id)
            elif account.disabled:
                raise CredentialError(CredentialErrorCode.USER_DISABLED)
            identity = _identity_for(account)

        return self._start_session(identity)

    async def logout(self) -> None:
        """Forget the signed-in identity."""
        self._current = None

    async def identify(self, token: str) -> UserIdentity:
        """Resolve a session token to the identity it was issued for.

        Raises:
            Unauthenticated: If the token is invalid or expired, or the
                account is gone or disabled.
        """
        try:
            payload = jwt.decode(
                token,
                self._settings.secret_key,
                algorithms=[self._settings.jwt_algorithm],
            )
        except JWTError as err:
            raise Unauthenticated("Could not validate credentials") from err

        subject = payload.get("sub")
        if subject is None:
            raise Unauthenticated("Could not validate credentials")

        async with unit_of_work("identify", self._session_factory) as session:
            account = await session.get(Account, subject)
            if account is None or account.disabled:
                raise Unauthenticated("User not found")
            return _identity_for(account)
