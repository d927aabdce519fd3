"""Error taxonomy shared by the store, the identity provider and the services.

Every failure raised past a store or provider boundary is a ``ForumError``.
``RemoteFailure`` is always recoverable: the caller may re-invoke the same
operation.
"""

from __future__ import annotations

from enum import Enum


class ForumError(RuntimeError):
    """Base exception for all Lingua Forum failures."""


class Unauthenticated(ForumError):
    """Raised when an action requires a signed-in user and none is present."""


class Unauthorized(ForumError):
    """Raised when the signed-in user does not own the resource being changed."""


class NotFound(ForumError):
    """Raised when a referenced post or account no longer exists."""


class RemoteFailure(ForumError):
    """Raised when the document store or identity provider call fails."""


class ToggleInProgress(ForumError):
    """Raised when a control is triggered again while its first action is in flight."""


class CredentialErrorCode(str, Enum):
    """Classified sign-in and sign-up failures."""

    INVALID_EMAIL = "auth/invalid-email"
    USER_NOT_FOUND = "auth/user-not-found"
    WRONG_PASSWORD = "auth/wrong-password"
    USER_DISABLED = "auth/user-disabled"
    TOO_MANY_REQUESTS = "auth/too-many-requests"
    EMAIL_ALREADY_IN_USE = "auth/email-already-in-use"
    WEAK_PASSWORD = "auth/weak-password"
    POPUP_CLOSED_BY_USER = "auth/popup-closed-by-user"
    ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL = "auth/account-exists-with-different-credential"
    INVALID_CREDENTIAL = "auth/invalid-credential"


_CREDENTIAL_MESSAGES: dict[CredentialErrorCode, str] = {
    CredentialErrorCode.INVALID_EMAIL: "Please enter a valid email address",
    CredentialErrorCode.USER_NOT_FOUND: "No account found with this email",
    CredentialErrorCode.WRONG_PASSWORD: "Incorrect password",
    CredentialErrorCode.USER_DISABLED: "This account has been disabled",
    CredentialErrorCode.TOO_MANY_REQUESTS: "Too many failed attempts. Please try again later",
    CredentialErrorCode.EMAIL_ALREADY_IN_USE: "An account with this email already exists",
    CredentialErrorCode.WEAK_PASSWORD: "Password is too short",
    CredentialErrorCode.POPUP_CLOSED_BY_USER: "Sign-in cancelled",
    CredentialErrorCode.ACCOUNT_EXISTS_WITH_DIFFERENT_CREDENTIAL: (
        "An account already exists with the same email but different sign-in credentials"
    ),
    CredentialErrorCode.INVALID_CREDENTIAL: "The sign-in credential is invalid or has expired",
}


class CredentialError(ForumError):
    """Raised by the identity provider with a classified failure code."""

    def __init__(self, code: CredentialErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or _CREDENTIAL_MESSAGES[code])


def describe_credential_error(error: Exception, fallback: str = "Failed to log in") -> str:
    """Return the user-facing message for a sign-in failure.

    Args:
        error: Exception raised by a sign-in or sign-up call.
        fallback: Message used when the error carries no known code.

    Returns:
        Human-readable explanation suitable for display next to the form.
    """
    if isinstance(error, CredentialError):
        return str(error) or _CREDENTIAL_MESSAGES.get(error.code, fallback)
    return str(error) or fallback
