"""
Repository Interface Definitions

Defines the contracts that infrastructure repositories must implement.
Following the Repository pattern and clean architecture principles.
"""

# Standard library imports
from abc import abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import Protocol
from uuid import UUID

# Local imports
from timecapsule_auth.domain.entities.account import Account, AccountStatus


@dataclass
class AccountFilter:
    """Case-insensitive substring filters for listing accounts. Empty fields are ignored."""

    email: str | None = None
    full_name: str | None = None
    username: str | None = None
    status: str | None = None
    role: str | None = None


@dataclass
class ProfileUpdate:
    """Profile fields an account holder may change."""

    username: str
    full_name: str
    date_of_birth: date | None = None


class IAccountRepository(Protocol):
    """
    Account repository interface.

    Defines operations for persisting and retrieving Account entities.
    The infrastructure layer must implement this interface.
    """

    @abstractmethod
    def create(self, account: Account) -> Account:
        """
        Persist a new account.

        Args:
            account: The account entity to save

        Returns:
            The saved account entity

        Raises:
            DuplicateAccountError: If the email is already registered
            RepositoryError: If save operation fails
        """
        ...

    @abstractmethod
    def get_by_email(self, email: str) -> Account | None:
        """
        Retrieve an account by email, matched case-insensitively.

        Returns:
            The account entity if found, None otherwise

        Raises:
            RepositoryError: If retrieval operation fails
        """
        ...

    @abstractmethod
    def get_by_id(self, account_id: UUID) -> Account | None:
        """
        Retrieve an account by its ID.

        Returns:
            The account entity if found, None otherwise

        Raises:
            RepositoryError: If retrieval operation fails
        """
        ...

    @abstractmethod
    def update_profile(self, account_id: UUID, profile: ProfileUpdate) -> Account:
        """
        Update the profile fields of an account.

        Raises:
            AccountNotFoundError: If no account has the ID
            RepositoryError: If update operation fails
        """
        ...

    @abstractmethod
    def update_credential(self, email: str, password_hash: str) -> Account:
        """
        Store a new credential hash.

        An unverified account is promoted in the same write, following
        Account.set_credential applied to the stored row.

        Raises:
            AccountNotFoundError: If no account has the email
            RepositoryError: If update operation fails
        """
        ...

    @abstractmethod
    def update_status(self, email: str, status: AccountStatus) -> Account:
        """
        Set the status of an account.

        Raises:
            AccountNotFoundError: If no account has the email
            RepositoryError: If update operation fails
        """
        ...

    @abstractmethod
    def list(self, filters: AccountFilter) -> list[Account]:
        """
        List accounts matching every non-empty filter.

        Returns:
            Matching accounts ordered by creation time, empty if none found

        Raises:
            RepositoryError: If retrieval operation fails
        """
        ...

    @abstractmethod
    def delete(self, account_id: UUID) -> bool:
        """
        Delete an account.

        Returns:
            True if an account was deleted, False if none had the ID

        Raises:
            RepositoryError: If delete operation fails
        """
        ...
