"""
Shared authentication types.

Common types used across the authentication system.
"""

from dataclasses import dataclass


@dataclass
class RegistrationResult:
    """Registration result data."""

    account_id: str
    email: str
    role: str
    status: str
    code_expires_in: int


@dataclass
class LoginResult:
    """Authentication result data."""

    account_id: str
    role: str
    access_token: str
    expires_in: int
    token_type: str = "bearer"


@dataclass
class CodeDispatchResult:
    """Result of sending a one-time code for an existing account."""

    email: str
    code_expires_in: int
