"""
One-time code service.

Issues numeric codes keyed by email and verifies them exactly once. Only a
SHA-256 digest of each code is stored; expiry is left to the backing store.
"""

import hashlib
import logging
import secrets

from ..masking import mask_email
from ..otp_storage import OTPStorage

logger = logging.getLogger(__name__)

MIN_CODE_LENGTH = 6


class OTPService:
    """Issue and verify single-use codes for email ownership checks."""

    def __init__(self, storage: OTPStorage, code_length: int = MIN_CODE_LENGTH) -> None:
        if code_length < MIN_CODE_LENGTH:
            raise ValueError(f"code_length must be at least {MIN_CODE_LENGTH}")
        self.storage = storage
        self.code_length = code_length

    @staticmethod
    def _key(email: str) -> str:
        return email.strip().lower()

    @staticmethod
    def _digest(email: str, code: str) -> str:
        return hashlib.sha256(f"{email}:{code}".encode()).hexdigest()

    def generate_code(self) -> str:
        """Draw a uniformly random zero-padded numeric code."""
        return f"{secrets.randbelow(10**self.code_length):0{self.code_length}d}"

    def issue(self, email: str, ttl: int) -> str:
        """
        Issue a fresh code for email, replacing any code still live for it.

        Args:
            email: Address the code proves control of
            ttl: Seconds until the code expires

        Returns:
            The plaintext code, to be handed to the email dispatcher

        Raises:
            StoreUnavailable: If the code store cannot be written
        """
        key = self._key(email)
        code = self.generate_code()
        self.storage.set(key, self._digest(key, code), ttl)
        logger.info(f"Issued one-time code for {mask_email(key)} (ttl={ttl}s)")
        return code

    def verify(self, email: str, code: str) -> bool:
        """
        Verify and consume a code.

        Returns False for a malformed code and for a record that was never
        issued, has expired or was already consumed. A wrong code leaves the
        record in place so the holder can retry until it expires.

        Raises:
            StoreUnavailable: If the code store cannot be reached
        """
        if len(code) != self.code_length or not (code.isascii() and code.isdigit()):
            return False
        key = self._key(email)
        consumed = self.storage.delete_if_equals(key, self._digest(key, code))
        if consumed:
            logger.info(f"One-time code verified for {mask_email(key)}")
        else:
            logger.info(f"One-time code rejected for {mask_email(key)}")
        return consumed

    def discard(self, email: str, code: str) -> None:
        """Withdraw a code that could not be delivered, if it is still the live one."""
        key = self._key(email)
        self.storage.delete_if_equals(key, self._digest(key, code))
