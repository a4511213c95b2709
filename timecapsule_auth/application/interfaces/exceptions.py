"""
Repository Exception Definitions

Defines exceptions that repositories may raise.
Following clean architecture principles - these are application-level exceptions.
"""

# Standard library imports
from uuid import UUID


class RepositoryError(Exception):
    """Base exception for repository operations."""

    def __init__(self, message: str, cause: Exception | None = None) -> None:
        super().__init__(message)
        self.cause = cause


class EntityNotFoundError(RepositoryError):
    """Raised when an entity is not found in the repository."""

    def __init__(self, entity_type: str, identifier: UUID | str) -> None:
        super().__init__(f"{entity_type} with identifier '{identifier}' not found")
        self.entity_type = entity_type
        self.identifier = identifier


class AccountNotFoundError(EntityNotFoundError):
    """Raised when an account is not found."""

    def __init__(self, identifier: UUID | str) -> None:
        super().__init__("Account", identifier)


class DuplicateEntityError(RepositoryError):
    """Raised when attempting to create an entity that already exists."""

    def __init__(self, entity_type: str, identifier: UUID | str) -> None:
        super().__init__(f"{entity_type} with identifier '{identifier}' already exists")
        self.entity_type = entity_type
        self.identifier = identifier


class DuplicateAccountError(DuplicateEntityError):
    """Raised when an email address is already registered."""

    def __init__(self, email: str) -> None:
        super().__init__("Account", email)
        self.email = email
