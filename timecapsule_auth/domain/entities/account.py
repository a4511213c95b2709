"""
Account Entity - Identity record with its lifecycle rules
"""

from __future__ import annotations

# Standard library imports
from dataclasses import dataclass, field
from datetime import UTC, date, datetime
from enum import Enum
from uuid import UUID, uuid4


class AccountRole(Enum):
    """Account role enumeration"""

    STANDARD = "standard"
    COURIER = "courier"

    @property
    def requires_approval(self) -> bool:
        """Whether an administrator must approve the role before it can log in."""
        return self in APPROVAL_GATED_ROLES


APPROVAL_GATED_ROLES = frozenset({AccountRole.COURIER})


class AccountStatus(Enum):
    """Account status enumeration"""

    UNVERIFIED = "unverified"
    ACTIVE = "active"
    PENDING_APPROVAL = "pending_approval"
    APPROVED = "approved"


# Targets an administrator may set through ApproveUser
APPROVAL_STATUSES = frozenset({AccountStatus.PENDING_APPROVAL, AccountStatus.APPROVED})


class InvalidAccountTransition(ValueError):
    """Raised when a status change is not allowed from the current state."""

    def __init__(self, current: AccountStatus, requested: AccountStatus | str) -> None:
        requested_value = requested.value if isinstance(requested, AccountStatus) else requested
        super().__init__(
            f"Cannot move account from {current.value} status to {requested_value}"
        )
        self.current = current
        self.requested = requested


@dataclass
class Account:
    """
    Account entity.

    The password hash stays empty until the owner proves control of the email
    address with a one-time code. Email is stored lower-cased and is the
    natural key every credential flow looks accounts up by.
    """

    email: str
    username: str
    full_name: str = ""
    date_of_birth: date | None = None
    role: AccountRole = AccountRole.STANDARD
    status: AccountStatus = AccountStatus.UNVERIFIED
    password_hash: str | None = None

    id: UUID = field(default_factory=uuid4)
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = field(default_factory=lambda: datetime.now(UTC))

    def __post_init__(self) -> None:
        """Validate account after initialization"""
        self.email = self.normalize_email(self.email)
        self._validate()

    def _validate(self) -> None:
        if not self.email or "@" not in self.email:
            raise ValueError("Account email must be a valid address")
        if not self.username:
            raise ValueError("Account username cannot be empty")
        if self.status == AccountStatus.UNVERIFIED and self.password_hash:
            raise ValueError("Unverified account cannot hold a credential")

    @staticmethod
    def normalize_email(email: str) -> str:
        return email.strip().lower()

    @classmethod
    def register(
        cls,
        email: str,
        username: str,
        full_name: str = "",
        date_of_birth: date | None = None,
        role: AccountRole = AccountRole.STANDARD,
    ) -> Account:
        """Create a freshly registered account with no usable credential."""
        return cls(
            email=email,
            username=username,
            full_name=full_name,
            date_of_birth=date_of_birth,
            role=role,
            status=AccountStatus.UNVERIFIED,
            password_hash=None,
        )

    @property
    def requires_approval(self) -> bool:
        return self.role.requires_approval

    @property
    def is_approved(self) -> bool:
        return self.status == AccountStatus.APPROVED

    @property
    def has_credential(self) -> bool:
        return bool(self.password_hash)

    def status_after_verification(self) -> AccountStatus:
        """
        Status the account takes once a credential is set.

        Only an unverified account changes state: it becomes active, or
        pending approval when its role is approval-gated. Any other status
        (including an approval granted before verification) is kept.
        """
        if self.status != AccountStatus.UNVERIFIED:
            return self.status
        if self.requires_approval:
            return AccountStatus.PENDING_APPROVAL
        return AccountStatus.ACTIVE

    def set_credential(self, password_hash: str) -> None:
        """Store a new credential hash, promoting an unverified account."""
        if not password_hash:
            raise ValueError("Credential hash cannot be empty")
        self.status = self.status_after_verification()
        self.password_hash = password_hash
        self.updated_at = datetime.now(UTC)

    def set_approval(self, status: AccountStatus | str) -> None:
        """Apply an administrative approval decision."""
        try:
            target = status if isinstance(status, AccountStatus) else AccountStatus(status)
        except ValueError:
            raise InvalidAccountTransition(self.status, status)

        if target not in APPROVAL_STATUSES:
            raise InvalidAccountTransition(self.status, target)

        self.status = target
        self.updated_at = datetime.now(UTC)

    def can_authenticate(self) -> bool:
        """Check the login gate: a credential, plus approval for gated roles."""
        if not self.has_credential:
            return False
        if self.requires_approval and not self.is_approved:
            return False
        return True

    def __str__(self) -> str:
        return f"Account({self.email}, role={self.role.value}, status={self.status.value})"
