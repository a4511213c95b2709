"""
Main user service orchestrator.

Provides a unified interface for all account operations by orchestrating
the specialized services, and owns the administrative operations.
"""

import logging
from datetime import date
from uuid import UUID

from fastapi.concurrency import run_in_threadpool

from timecapsule_auth.application.interfaces.exceptions import AccountNotFoundError
from timecapsule_auth.application.interfaces.repositories import (
    AccountFilter,
    IAccountRepository,
    ProfileUpdate,
)
from timecapsule_auth.domain.entities.account import Account, AccountStatus, InvalidAccountTransition

from ..exceptions import NotFound, ValidationFailure
from ..jwt_service import JWTService, TokenClaims
from ..mailer import EmailDispatcher
from ..types import CodeDispatchResult, LoginResult, RegistrationResult
from .authentication import AuthenticationService
from .credentials import account_store_errors
from .otp_service import OTPService
from .password_service import PasswordService
from .registration import RegistrationService, validate_username

logger = logging.getLogger(__name__)


class UserService:
    """
    Main account management service.

    Orchestrates registration, authentication and password management by
    delegating to specialized services. Hashing, store access and mail
    delivery block, so every operation runs in the threadpool.
    """

    def __init__(
        self,
        accounts: IAccountRepository,
        jwt_service: JWTService,
        password_service: PasswordService,
        otp_service: OTPService,
        mailer: EmailDispatcher,
        registration_ttl_seconds: int = 300,
        reset_ttl_seconds: int = 900,
    ):
        """
        Initialize user service with its dependencies.

        Args:
            accounts: Account repository
            jwt_service: JWT token service
            password_service: Password hashing and policy
            otp_service: One-time code service
            mailer: Email dispatcher for codes
            registration_ttl_seconds: Lifetime of registration codes
            reset_ttl_seconds: Lifetime of password reset codes
        """
        self.accounts = accounts
        self.jwt_service = jwt_service

        self.registration_service = RegistrationService(
            accounts, password_service, otp_service, mailer, registration_ttl_seconds
        )
        self.auth_service = AuthenticationService(
            accounts, jwt_service, password_service, otp_service, mailer, reset_ttl_seconds
        )

    # Registration operations
    async def register(
        self,
        email: str,
        username: str,
        full_name: str = "",
        date_of_birth: date | None = None,
        role: str = "standard",
    ) -> RegistrationResult:
        """Register a new account."""
        return await run_in_threadpool(
            self.registration_service.register, email, username, full_name, date_of_birth, role
        )

    async def verify_otp(self, email: str, code: str, password: str) -> Account:
        """Verify the registration code and set the first password."""
        return await run_in_threadpool(self.registration_service.verify_otp, email, code, password)

    # Authentication operations
    async def login(self, email: str, password: str) -> LoginResult:
        """Authenticate and issue a token."""
        return await run_in_threadpool(self.auth_service.login, email, password)

    async def validate_token(self, token: str) -> TokenClaims:
        """Validate a bearer token."""
        return self.auth_service.validate_token(token)

    async def forgot_password(self, email: str) -> CodeDispatchResult:
        """Mail a password reset code."""
        return await run_in_threadpool(self.auth_service.request_password_reset, email)

    async def reset_password(self, email: str, code: str, new_password: str) -> Account:
        """Reset the password with a mailed code."""
        return await run_in_threadpool(
            self.auth_service.reset_password, email, code, new_password
        )

    # Administrative operations
    async def approve_user(self, email: str, status: str | AccountStatus) -> Account:
        """
        Set the approval status of an account.

        Access control for this operation belongs to the caller.

        Raises:
            NotFound: If no account uses the email
            ValidationFailure: If the status is not an approval status
        """
        return await run_in_threadpool(self._approve_user, email, status)

    def _approve_user(self, email: str, status: str | AccountStatus) -> Account:
        email = Account.normalize_email(email)
        with account_store_errors("lookup"):
            account = self.accounts.get_by_email(email)
        if account is None:
            raise NotFound("No account is registered with this email")

        try:
            account.set_approval(status)
        except InvalidAccountTransition as e:
            raise ValidationFailure(str(e))

        try:
            with account_store_errors("update"):
                updated = self.accounts.update_status(email, account.status)
        except AccountNotFoundError:
            raise NotFound("No account is registered with this email")

        logger.info(f"Account {updated.id} approval status set to {updated.status.value}")
        return updated

    async def get_account(self, account_id: UUID) -> Account:
        with account_store_errors("lookup"):
            account = await run_in_threadpool(self.accounts.get_by_id, account_id)
        if account is None:
            raise NotFound(f"Account {account_id} not found")
        return account

    async def list_accounts(self, filters: AccountFilter | None = None) -> list[Account]:
        with account_store_errors("list"):
            return await run_in_threadpool(self.accounts.list, filters or AccountFilter())

    async def update_profile(self, account_id: UUID, profile: ProfileUpdate) -> Account:
        """Update username, full name and date of birth."""
        validate_username(profile.username)
        try:
            with account_store_errors("update"):
                account = await run_in_threadpool(self.accounts.update_profile, account_id, profile)
        except AccountNotFoundError:
            raise NotFound(f"Account {account_id} not found")
        logger.info(f"Updated profile of account {account_id}")
        return account

    async def delete_account(self, account_id: UUID) -> None:
        with account_store_errors("delete"):
            deleted = await run_in_threadpool(self.accounts.delete, account_id)
        if not deleted:
            raise NotFound(f"Account {account_id} not found")
        logger.info(f"Deleted account {account_id}")
