"""Accounts held by the local identity provider."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import Boolean, DateTime, Integer, LargeBinary, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from lingua_forum.db.ids import new_document_id
from lingua_forum.db.session import Base
from lingua_forum.db.time import utcnow

PROVIDER_PASSWORD = "password"
PROVIDER_FEDERATED = "federated"


class Account(Base):
    """Sign-in identity; ``id`` is the uid stamped on authored documents."""

    __tablename__ = "account"

    id: Mapped[str] = mapped_column(String(128), primary_key=True, default=new_document_id)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider: Mapped[str] = mapped_column(String(16), nullable=False, default=PROVIDER_PASSWORD)
    # Subject claim issued by the federated provider.
    federated_subject: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)

    password_salt: Mapped[bytes | None] = mapped_column(LargeBinary(16), nullable=True)
    password_hash: Mapped[bytes | None] = mapped_column(LargeBinary(32), nullable=True)

    disabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    failed_login_attempts: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
