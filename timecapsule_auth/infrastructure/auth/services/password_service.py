"""
Password management service.

Handles password hashing, verification and strength validation.
"""

import base64
import hashlib
import logging
import re
import secrets

import bcrypt

from ..exceptions import HashingFailure, MalformedHash

logger = logging.getLogger(__name__)

SCHEME_PREFIX = "bcrypt-sha256$"
BCRYPT_PATTERN = re.compile(r"^\$2[aby]\$(\d{2})\$[./A-Za-z0-9]{53}$")

# bcrypt only reads the first 72 bytes of its input
BCRYPT_MAX_BYTES = 72


class PasswordHasher:
    """
    Bcrypt password hashing utility.

    New hashes are ``bcrypt-sha256$<bcrypt string>``: bcrypt over the base64
    SHA-256 digest of the password, so every byte of a long password counts.
    Plain ``$2b$`` bcrypt hashes still verify and report that they need a rehash.
    """

    def __init__(self, rounds: int = 12) -> None:
        """Initialize with bcrypt rounds (cost factor)."""
        self.rounds = rounds

    @staticmethod
    def _prehash(password: str) -> bytes:
        digest = hashlib.sha256(password.encode("utf-8")).digest()
        return base64.b64encode(digest)

    def hash(self, password: str) -> str:
        """Hash a password using bcrypt over its SHA-256 digest."""
        try:
            salt = bcrypt.gensalt(rounds=self.rounds)
            hashed = bcrypt.hashpw(self._prehash(password), salt)
        except (ValueError, TypeError) as e:
            logger.error(f"Password hashing failed: {e}")
            raise HashingFailure("Password hashing failed") from e
        return SCHEME_PREFIX + hashed.decode("ascii")

    def verify(self, password: str, password_hash: str) -> bool:
        """
        Verify a password against its hash.

        Raises:
            MalformedHash: If the stored hash is not a recognised bcrypt encoding
        """
        legacy = not password_hash.startswith(SCHEME_PREFIX)
        encoded = password_hash if legacy else password_hash[len(SCHEME_PREFIX) :]

        if not BCRYPT_PATTERN.match(encoded):
            raise MalformedHash("Stored credential hash is not in a recognised format")

        try:
            if legacy:
                candidate = password.encode("utf-8")[:BCRYPT_MAX_BYTES]
            else:
                candidate = self._prehash(password)
        except UnicodeEncodeError:
            # no stored password can contain an unencodable character
            return False

        try:
            return bcrypt.checkpw(candidate, encoded.encode("ascii"))
        except ValueError as e:
            raise MalformedHash("Stored credential hash could not be parsed") from e

    def needs_rehash(self, password_hash: str) -> bool:
        """Check if a hash uses the legacy scheme or fewer rounds than configured."""
        if not password_hash.startswith(SCHEME_PREFIX):
            return True
        match = BCRYPT_PATTERN.match(password_hash[len(SCHEME_PREFIX) :])
        if not match:
            return True
        return int(match.group(1)) < self.rounds


class PasswordValidator:
    """Password strength validator."""

    COMMON_PASSWORDS = {
        "password",
        "123456",
        "password123",
        "admin",
        "letmein",
        "qwerty",
        "monkey",
        "dragon",
        "baseball",
        "iloveyou",
        "trustno1",
        "1234567",
        "welcome",
        "login",
        "admin123",
    }

    def __init__(
        self, min_length: int = 6, max_length: int = 128, require_complexity: bool = False
    ) -> None:
        self.min_length = min_length
        self.max_length = max_length
        self.require_complexity = require_complexity

    def validate(self, password: str) -> tuple[bool, list[str]]:
        """
        Validate password strength.

        Returns:
            Tuple of (is_valid, list_of_errors)
        """
        errors = []

        # Length check
        if len(password) < self.min_length:
            errors.append(f"Password must be at least {self.min_length} characters long")
        if len(password) > self.max_length:
            errors.append(f"Password must not exceed {self.max_length} characters")
        try:
            password.encode("utf-8")
        except UnicodeEncodeError:
            errors.append("Password contains characters that cannot be encoded")

        if self.require_complexity:
            if not re.search(r"[A-Z]", password):
                errors.append("Password must contain at least one uppercase letter")
            if not re.search(r"[a-z]", password):
                errors.append("Password must contain at least one lowercase letter")
            if not re.search(r"\d", password):
                errors.append("Password must contain at least one number")
            if not re.search(r"[!@#$%^&*()_+\-=\[\]{}|;:,.<>?]", password):
                errors.append("Password must contain at least one special character")
            if self._has_sequential_chars(password):
                errors.append("Password contains sequential characters")

        if password.lower() in self.COMMON_PASSWORDS:
            errors.append("Password is too common")

        return len(errors) == 0, errors

    @staticmethod
    def _has_sequential_chars(password: str, threshold: int = 3) -> bool:
        """Check for sequential characters."""
        for i in range(len(password) - threshold + 1):
            substr = password[i : i + threshold]
            if substr.isdigit() or substr.isalpha():
                if all(ord(substr[j]) + 1 == ord(substr[j + 1]) for j in range(len(substr) - 1)):
                    return True
        return False


class PasswordService:
    """Password management service."""

    def __init__(
        self,
        hasher: PasswordHasher | None = None,
        validator: PasswordValidator | None = None,
    ) -> None:
        self.hasher = hasher or PasswordHasher()
        self.validator = validator or PasswordValidator()
        self._dummy_hash: str | None = None

    def hash_password(self, password: str) -> str:
        """Hash a password."""
        return self.hasher.hash(password)

    def verify_password(self, password: str, password_hash: str) -> bool:
        """Verify a password against its hash."""
        return self.hasher.verify(password, password_hash)

    def verify_dummy(self, password: str) -> None:
        """
        Spend the same bcrypt work as a real verification.

        Used when there is no stored hash to compare against, so the response
        time does not reveal whether an account exists.
        """
        if self._dummy_hash is None:
            self._dummy_hash = self.hasher.hash(secrets.token_urlsafe(32))
        self.hasher.verify(password, self._dummy_hash)

    def validate_password(self, password: str) -> tuple[bool, list[str]]:
        """Validate password strength."""
        return self.validator.validate(password)

    def needs_rehash(self, password_hash: str) -> bool:
        """Check if password needs rehashing."""
        return self.hasher.needs_rehash(password_hash)

