"""
Credential helpers shared by the registration and authentication services.

Setting a credential from a one-time code is the same step whether it
completes registration or a password reset.
"""

import logging
from collections.abc import Iterator
from contextlib import contextmanager

from timecapsule_auth.application.interfaces.exceptions import (
    DuplicateEntityError,
    EntityNotFoundError,
    RepositoryError,
)
from timecapsule_auth.application.interfaces.repositories import IAccountRepository
from timecapsule_auth.domain.entities.account import Account

from ..exceptions import (
    AccountStoreUnavailable,
    MailDeliveryError,
    StoreUnavailable,
    Unauthorized,
    ValidationFailure,
)
from ..mailer import EmailDispatcher
from ..masking import mask_email
from .otp_service import OTPService
from .password_service import PasswordService

logger = logging.getLogger(__name__)

INVALID_CODE_MESSAGE = "Invalid or expired code"


@contextmanager
def account_store_errors(operation: str) -> Iterator[None]:
    """Report account store failures as an unavailable dependency."""
    try:
        yield
    except (EntityNotFoundError, DuplicateEntityError):
        raise
    except RepositoryError as e:
        raise AccountStoreUnavailable(
            "Account store unavailable", operation=operation, backend="database"
        ) from e


def require_valid_password(password_service: PasswordService, password: str) -> None:
    """Raise ValidationFailure when the password breaks the policy."""
    is_valid, errors = password_service.validate_password(password)
    if not is_valid:
        raise ValidationFailure(f"Invalid password: {'; '.join(errors)}", errors=errors)


def send_code(otp_service: OTPService, mailer: EmailDispatcher, email: str, ttl: int) -> str:
    """
    Issue a code and hand it to the mailer.

    A code that could not be delivered is withdrawn before the failure is
    reported, so nothing usable is left behind.
    """
    code = otp_service.issue(email, ttl)
    try:
        mailer.send(email, code)
    except MailDeliveryError:
        withdraw_code(otp_service, email, code)
        raise
    return code


def withdraw_code(otp_service: OTPService, email: str, code: str) -> None:
    try:
        otp_service.discard(email, code)
    except StoreUnavailable as e:
        # the code still expires on its own
        logger.error(f"Could not withdraw code for {mask_email(email)}: {e}")


def set_credential_with_code(
    accounts: IAccountRepository,
    password_service: PasswordService,
    otp_service: OTPService,
    email: str,
    code: str,
    password: str,
) -> Account:
    """
    Consume a one-time code and store a new credential for its account.

    The password is checked before the code is consumed. An unknown account
    and a bad code are reported identically.

    Raises:
        ValidationFailure: If the password breaks the policy
        Unauthorized: If the code is invalid, expired or already used
        StoreUnavailable: If the code store cannot be reached
        AccountStoreUnavailable: If the account store cannot be reached
    """
    require_valid_password(password_service, password)
    email = Account.normalize_email(email)

    if not otp_service.verify(email, code):
        raise Unauthorized(INVALID_CODE_MESSAGE)

    with account_store_errors("lookup"):
        account = accounts.get_by_email(email)
    if account is None:
        logger.warning(f"Code verified for {mask_email(email)} but no account exists")
        raise Unauthorized(INVALID_CODE_MESSAGE)

    password_hash = password_service.hash_password(password)
    try:
        with account_store_errors("update"):
            return accounts.update_credential(email, password_hash)
    except EntityNotFoundError:
        raise Unauthorized(INVALID_CODE_MESSAGE)
