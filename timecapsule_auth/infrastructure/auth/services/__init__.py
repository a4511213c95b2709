"""
Authentication service components.

Each flow lives in a focused service; UserService composes them behind a
single interface.
"""

from .authentication import AuthenticationService
from .otp_service import OTPService
from .password_service import PasswordHasher, PasswordService, PasswordValidator
from .registration import RegistrationService
from .user_service import UserService

__all__ = [
    "PasswordHasher",
    "PasswordValidator",
    "PasswordService",
    "OTPService",
    "RegistrationService",
    "AuthenticationService",
    "UserService",
]
