"""
Credential engine for the time capsule auth service.

This package provides password hashing, single-use email codes, signed bearer
tokens and the registration and login flows built on them.
"""

from .exceptions import (
    AccountNotApproved,
    AccountStoreUnavailable,
    AuthServiceError,
    Conflict,
    HashingFailure,
    MailDeliveryError,
    MalformedHash,
    NotFound,
    StoreUnavailable,
    TokenSigningError,
    Unauthorized,
    Unavailable,
    ValidationFailure,
)
from .jwt_service import (
    InvalidSignatureException,
    InvalidTokenException,
    JWTService,
    MalformedTokenException,
    TokenClaims,
    TokenExpiredException,
)
from .mailer import EmailDispatcher, LoggingEmailDispatcher, SendGridEmailDispatcher
from .otp_storage import MemoryOTPStorage, OTPStorage, RedisOTPStorage
from .services import (
    AuthenticationService,
    OTPService,
    PasswordHasher,
    PasswordService,
    PasswordValidator,
    RegistrationService,
    UserService,
)
from .types import CodeDispatchResult, LoginResult, RegistrationResult

__all__ = [
    # Errors
    "AuthServiceError",
    "ValidationFailure",
    "Conflict",
    "Unauthorized",
    "AccountNotApproved",
    "NotFound",
    "Unavailable",
    "StoreUnavailable",
    "AccountStoreUnavailable",
    "MailDeliveryError",
    "TokenSigningError",
    "HashingFailure",
    "MalformedHash",
    # JWT Service
    "JWTService",
    "TokenClaims",
    "InvalidTokenException",
    "InvalidSignatureException",
    "TokenExpiredException",
    "MalformedTokenException",
    # Codes and mail
    "OTPStorage",
    "MemoryOTPStorage",
    "RedisOTPStorage",
    "EmailDispatcher",
    "LoggingEmailDispatcher",
    "SendGridEmailDispatcher",
    # Services
    "PasswordHasher",
    "PasswordValidator",
    "PasswordService",
    "OTPService",
    "RegistrationService",
    "AuthenticationService",
    "UserService",
    "RegistrationResult",
    "LoginResult",
    "CodeDispatchResult",
]
