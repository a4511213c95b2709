"""
Database models for authentication.

This module defines the SQLAlchemy model backing the account store.
"""

from datetime import UTC, datetime
from uuid import uuid4

from sqlalchemy import Column, Date, DateTime, Index, String, Uuid
from sqlalchemy.orm import declarative_base

from timecapsule_auth.domain.entities.account import Account, AccountRole, AccountStatus

Base = declarative_base()


def _utcnow() -> datetime:
    return datetime.now(UTC)


class AccountModel(Base):  # type: ignore[valid-type, misc]
    """Account row. Emails are stored lower-cased."""

    __tablename__ = "accounts"

    id = Column(Uuid, primary_key=True, default=uuid4)
    username = Column(String(100), nullable=False)
    email = Column(String(255), unique=True, nullable=False, index=True)
    password_hash = Column(String(255), nullable=True)
    full_name = Column(String(200), nullable=False, default="")
    date_of_birth = Column(Date, nullable=True)
    status = Column(String(32), nullable=False, default=AccountStatus.UNVERIFIED.value)
    role = Column(String(32), nullable=False, default=AccountRole.STANDARD.value)

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=_utcnow, nullable=False)
    updated_at = Column(DateTime(timezone=True), default=_utcnow, onupdate=_utcnow, nullable=False)

    __table_args__ = (
        Index("idx_accounts_status", "status"),
        Index("idx_accounts_role", "role"),
    )

    def __repr__(self) -> str:
        return f"<AccountModel {self.email} {self.role}/{self.status}>"

    @classmethod
    def from_entity(cls, account: Account) -> "AccountModel":
        return cls(
            id=account.id,
            username=account.username,
            email=account.email,
            password_hash=account.password_hash,
            full_name=account.full_name,
            date_of_birth=account.date_of_birth,
            status=account.status.value,
            role=account.role.value,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )

    def to_entity(self) -> Account:
        return Account(
            id=self.id,
            username=self.username,
            email=self.email,
            password_hash=self.password_hash,
            full_name=self.full_name or "",
            date_of_birth=self.date_of_birth,
            status=AccountStatus(self.status),
            role=AccountRole(self.role),
            created_at=self.created_at,
            updated_at=self.updated_at,
        )
