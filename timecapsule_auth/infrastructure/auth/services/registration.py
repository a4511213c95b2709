"""
Account registration service.

Handles sign-up, email and username validation, and completing the sign-up
with the one-time code mailed to the new address.
"""

import logging
import re
from datetime import date

from email_validator import EmailNotValidError, validate_email

from timecapsule_auth.application.interfaces.exceptions import DuplicateAccountError
from timecapsule_auth.application.interfaces.repositories import IAccountRepository
from timecapsule_auth.domain.entities.account import Account, AccountRole

from ..exceptions import AccountStoreUnavailable, Conflict, ValidationFailure
from ..mailer import EmailDispatcher
from ..masking import mask_email
from ..types import RegistrationResult
from .credentials import (
    account_store_errors,
    send_code,
    set_credential_with_code,
    withdraw_code,
)
from .otp_service import OTPService
from .password_service import PasswordService

logger = logging.getLogger(__name__)

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_.-]{3,30}$")


def normalize_email(email: str) -> str:
    """Validate and normalize an email address."""
    try:
        valid_email = validate_email(email.strip(), check_deliverability=False)
    except EmailNotValidError as e:
        raise ValidationFailure(f"Invalid email: {e!s}")
    return Account.normalize_email(valid_email.normalized)


def validate_username(username: str) -> None:
    """Validate username format."""
    if not USERNAME_PATTERN.match(username or ""):
        raise ValidationFailure(
            "Username must be 3-30 characters: letters, digits, '_', '.' or '-'"
        )


def parse_role(role: str | AccountRole) -> AccountRole:
    if isinstance(role, AccountRole):
        return role
    try:
        return AccountRole(role.strip().lower())
    except ValueError:
        allowed = ", ".join(r.value for r in AccountRole)
        raise ValidationFailure(f"Unknown role '{role}'. Expected one of: {allowed}")


class RegistrationService:
    """Account registration service."""

    def __init__(
        self,
        accounts: IAccountRepository,
        password_service: PasswordService,
        otp_service: OTPService,
        mailer: EmailDispatcher,
        registration_ttl_seconds: int = 300,
    ):
        self.accounts = accounts
        self.password_service = password_service
        self.otp_service = otp_service
        self.mailer = mailer
        self.registration_ttl_seconds = registration_ttl_seconds

    def register(
        self,
        email: str,
        username: str,
        full_name: str = "",
        date_of_birth: date | None = None,
        role: str | AccountRole = AccountRole.STANDARD,
    ) -> RegistrationResult:
        """
        Register a new account and mail it a verification code.

        The code is issued and delivered before the account row is written.
        If delivery fails the code is withdrawn and no account is stored.

        Args:
            email: Account email address
            username: Display handle
            full_name: Full name
            date_of_birth: Date of birth
            role: Requested role

        Returns:
            Registration result

        Raises:
            ValidationFailure: If any field is malformed
            Conflict: If the email already has an account
            MailDeliveryError: If the code could not be sent
            StoreUnavailable: If the code store cannot be reached
            AccountStoreUnavailable: If the account store cannot be reached
        """
        email = normalize_email(email)
        validate_username(username)
        account = Account.register(
            email=email,
            username=username,
            full_name=(full_name or "").strip(),
            date_of_birth=date_of_birth,
            role=parse_role(role),
        )

        with account_store_errors("lookup"):
            existing = self.accounts.get_by_email(email)
        if existing is not None:
            raise Conflict("Email already registered")

        code = send_code(self.otp_service, self.mailer, email, self.registration_ttl_seconds)

        try:
            with account_store_errors("create"):
                self.accounts.create(account)
        except DuplicateAccountError:
            withdraw_code(self.otp_service, email, code)
            raise Conflict("Email already registered")
        except AccountStoreUnavailable:
            withdraw_code(self.otp_service, email, code)
            raise

        logger.info(f"Registered account {account.id} for {mask_email(email)}")
        return RegistrationResult(
            account_id=str(account.id),
            email=email,
            role=account.role.value,
            status=account.status.value,
            code_expires_in=self.registration_ttl_seconds,
        )

    def verify_otp(self, email: str, code: str, password: str) -> Account:
        """
        Complete registration by proving control of the email address.

        Sets the first credential and promotes the account out of
        ``unverified``. Also accepted for an already verified account, in
        which case only the credential changes.

        Raises:
            ValidationFailure: If the password breaks the policy
            Unauthorized: If the code is wrong, expired or already used
        """
        account = set_credential_with_code(
            self.accounts, self.password_service, self.otp_service, email, code, password
        )
        logger.info(f"Account {account.id} verified, status {account.status.value}")
        return account
