"""
JWT token management service for authentication.

This module issues and verifies the stateless bearer tokens handed out at
login. Validity depends only on the signature and the embedded expiry; no
server-side lookup is performed.
"""

import logging
import secrets
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

import jwt
from cryptography.hazmat.primitives import serialization

from ..config import TokenConfig
from .exceptions import TokenSigningError, Unauthorized

logger = logging.getLogger(__name__)

SUPPORTED_ALGORITHMS = ("HS256", "RS256")


class InvalidTokenException(Unauthorized):
    """Raised when a token is invalid."""


class InvalidSignatureException(InvalidTokenException):
    """Raised when a token signature does not verify."""


class TokenExpiredException(InvalidTokenException):
    """Raised when a token has expired."""


class MalformedTokenException(InvalidTokenException):
    """Raised when a token cannot be parsed."""


@dataclass
class TokenClaims:
    """Verified identity carried by a bearer token."""

    account_id: str
    role: str
    issued_at: datetime
    expires_at: datetime
    token_id: str | None = None


class JWTService:
    """
    JWT token service for creating and validating tokens.

    The signing key is process configuration passed in at construction:
    a shared secret for HS256, or an RSA key pair for RS256.
    """

    def __init__(
        self,
        signing_key: Any,
        verification_key: Any | None = None,
        algorithm: str = "HS256",
        issuer: str = "timecapsule-auth",
        access_token_expire_minutes: int = 1440,
    ):
        """
        Initialize JWT service.

        Args:
            signing_key: HS256 secret or RS256 private key
            verification_key: RS256 public key; defaults to signing_key for HS256
            algorithm: Signing algorithm
            issuer: Token issuer identifier
            access_token_expire_minutes: Token lifetime in minutes
        """
        if algorithm not in SUPPORTED_ALGORITHMS:
            raise ValueError(f"Unsupported signing algorithm: {algorithm}")
        if not signing_key:
            raise ValueError("A signing key is required")
        if algorithm == "RS256" and verification_key is None:
            raise ValueError("RS256 requires a public verification key")

        self.algorithm = algorithm
        self.issuer = issuer
        self.access_token_expire = timedelta(minutes=access_token_expire_minutes)
        self._signing_key = signing_key
        self._verification_key = verification_key if verification_key is not None else signing_key

    @classmethod
    def from_config(cls, config: TokenConfig) -> "JWTService":
        """Build the service from token configuration, loading PEM keys once."""
        config.validate()
        if config.algorithm == "RS256":
            signing_key = cls._load_private_key(str(config.private_key_path))
            verification_key = cls._load_public_key(str(config.public_key_path))
        else:
            signing_key = config.secret_key
            verification_key = None
        return cls(
            signing_key=signing_key,
            verification_key=verification_key,
            algorithm=config.algorithm,
            issuer=config.issuer,
            access_token_expire_minutes=config.access_token_expire_minutes,
        )

    @staticmethod
    def _load_private_key(path: str) -> Any:
        """Load RSA private key from file."""
        with open(path, "rb") as key_file:
            return serialization.load_pem_private_key(key_file.read(), password=None)

    @staticmethod
    def _load_public_key(path: str) -> Any:
        """Load RSA public key from file."""
        with open(path, "rb") as key_file:
            return serialization.load_pem_public_key(key_file.read())

    @property
    def expires_in(self) -> int:
        """Token lifetime in seconds."""
        return int(self.access_token_expire.total_seconds())

    def issue_token(self, account_id: str, role: str) -> str:
        """
        Create a signed access token.

        Args:
            account_id: Account identifier
            role: Account role

        Returns:
            Signed JWT access token

        Raises:
            TokenSigningError: If the token cannot be signed
        """
        now = datetime.now(UTC)
        jti = f"jwt_{secrets.token_urlsafe(16)}"

        payload = {
            "iss": self.issuer,
            "sub": str(account_id),
            "role": role,
            "iat": now,
            "nbf": now,
            "exp": now + self.access_token_expire,
            "jti": jti,
        }

        try:
            token = jwt.encode(payload, self._signing_key, algorithm=self.algorithm)
        except (jwt.PyJWTError, ValueError, TypeError) as e:
            logger.error(f"Failed to sign token for account {account_id}: {e}")
            raise TokenSigningError("Token could not be signed", operation="sign") from e

        logger.info(f"Issued access token for account {account_id} with JTI {jti}")
        return token

    def verify_token(self, token: str) -> TokenClaims:
        """
        Verify and decode an access token.

        The signature is checked before any claim, so a forged token that is
        also expired reports a signature error.

        Raises:
            InvalidSignatureException: If the signature does not verify
            TokenExpiredException: If the token is past its expiry
            MalformedTokenException: If the token cannot be parsed
            InvalidTokenException: If a required claim is missing or wrong
        """
        try:
            payload = jwt.decode(
                token,
                self._verification_key,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={"require": ["exp", "iat", "sub", "role"]},
            )
        except jwt.ExpiredSignatureError:
            raise TokenExpiredException("Access token has expired")
        except jwt.InvalidSignatureError:
            raise InvalidSignatureException("Access token signature is invalid")
        except jwt.DecodeError as e:
            raise MalformedTokenException(f"Malformed access token: {e!s}")
        except jwt.InvalidTokenError as e:
            raise InvalidTokenException(f"Invalid access token: {e!s}")

        return TokenClaims(
            account_id=str(payload["sub"]),
            role=str(payload["role"]),
            issued_at=datetime.fromtimestamp(payload["iat"], UTC),
            expires_at=datetime.fromtimestamp(payload["exp"], UTC),
            token_id=payload.get("jti"),
        )
