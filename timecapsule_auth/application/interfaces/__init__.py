"""
Application Interfaces - Repository Contracts

This module defines the interface contracts that the infrastructure layer
must implement. Following the dependency inversion principle, the application
layer defines what it needs, and the infrastructure layer provides it.
"""

from .exceptions import (
    AccountNotFoundError,
    DuplicateAccountError,
    DuplicateEntityError,
    EntityNotFoundError,
    RepositoryError,
)
from .repositories import AccountFilter, IAccountRepository, ProfileUpdate

__all__ = [
    # Repository interfaces
    "IAccountRepository",
    "AccountFilter",
    "ProfileUpdate",
    # Exceptions
    "RepositoryError",
    "EntityNotFoundError",
    "AccountNotFoundError",
    "DuplicateEntityError",
    "DuplicateAccountError",
]
