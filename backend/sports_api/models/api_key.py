"""
API key model — credential granting access to one or more sports.

Security notes:
  • Raw API keys are NEVER stored. Only a SHA-256 hash is persisted.
  • The `key_prefix` column stores the first 12 characters
    (e.g., "sk_live_a1b2") for identification in logs without exposing
    the full key.
  • `is_active` allows key revocation without deletion (audit trail).
  • `sports` is a JSON list of sport tags, or ["*"] for all sports.
"""

import datetime
from typing import Any

from sqlalchemy import JSON, BigInteger, Boolean, DateTime, Integer, String, true
from sqlalchemy.orm import Mapped, mapped_column
from sqlalchemy.sql import func

from sports_api.core.database import Base


class ApiKey(Base):
    """Hashed API key with its sport scope and per-minute quota."""

    __tablename__ = "api_keys"

    id: Mapped[int] = mapped_column(
        # SQLite only autoincrements INTEGER PRIMARY KEY
        BigInteger().with_variant(Integer, "sqlite"),
        primary_key=True,
        autoincrement=True,
    )
    key_hash: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
    )
    key_prefix: Mapped[str] = mapped_column(
        String(16),
        nullable=False,
    )
    name: Mapped[str] = mapped_column(
        String(255),
        nullable=False,
    )
    sports: Mapped[list[Any]] = mapped_column(
        JSON,
        nullable=False,
    )
    rate_limit: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=100,
        server_default="100",
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean,
        nullable=False,
        default=True,
        server_default=true(),
    )
    created_at: Mapped[datetime.datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        server_default=func.now(),
    )
    last_used_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )
    expires_at: Mapped[datetime.datetime | None] = mapped_column(
        DateTime(timezone=True),
        nullable=True,
    )

    def __repr__(self) -> str:
        return (
            f"<ApiKey id={self.id} prefix={self.key_prefix!r} "
            f"active={self.is_active}>"
        )
