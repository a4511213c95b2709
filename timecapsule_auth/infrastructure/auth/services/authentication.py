"""
Authentication service.

Handles login, token validation and the forgot/reset password flow.
"""

import logging

from timecapsule_auth.application.interfaces.repositories import IAccountRepository
from timecapsule_auth.domain.entities.account import Account

from ..exceptions import AccountNotApproved, NotFound, Unauthorized
from ..jwt_service import JWTService, TokenClaims
from ..mailer import EmailDispatcher
from ..masking import mask_email
from ..types import CodeDispatchResult, LoginResult
from .credentials import account_store_errors, send_code, set_credential_with_code
from .otp_service import OTPService
from .password_service import PasswordService

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "Invalid email or password"


class AuthenticationService:
    """Account authentication service."""

    def __init__(
        self,
        accounts: IAccountRepository,
        jwt_service: JWTService,
        password_service: PasswordService,
        otp_service: OTPService,
        mailer: EmailDispatcher,
        reset_ttl_seconds: int = 900,
    ):
        self.accounts = accounts
        self.jwt_service = jwt_service
        self.password_service = password_service
        self.otp_service = otp_service
        self.mailer = mailer
        self.reset_ttl_seconds = reset_ttl_seconds

    def login(self, email: str, password: str) -> LoginResult:
        """
        Authenticate with email and password and issue a bearer token.

        A password check always runs, against a dummy hash when there is no
        stored credential, so timing does not reveal whether an account
        exists. Approval state is only disclosed once the password matched.

        Args:
            email: Account email address
            password: Account password

        Returns:
            Login result with the access token

        Raises:
            Unauthorized: If the email or password is wrong
            AccountNotApproved: If the role still awaits approval
        """
        email = Account.normalize_email(email)
        with account_store_errors("lookup"):
            account = self.accounts.get_by_email(email)

        # Always perform password verification to prevent timing attacks
        if account is None or not account.has_credential:
            self.password_service.verify_dummy(password)
            logger.info(f"Login failed for {mask_email(email)}: no usable credential")
            raise Unauthorized(INVALID_CREDENTIALS_MESSAGE)

        password_hash = str(account.password_hash)
        if not self.password_service.verify_password(password, password_hash):
            logger.info(f"Login failed for account {account.id}: wrong password")
            raise Unauthorized(INVALID_CREDENTIALS_MESSAGE)

        if not account.can_authenticate():
            logger.info(
                f"Login refused for account {account.id}: status {account.status.value}"
            )
            raise AccountNotApproved("Your account has not been approved yet")

        self._upgrade_hash_if_needed(account, password, password_hash)

        token = self.jwt_service.issue_token(str(account.id), account.role.value)
        logger.info(f"Account {account.id} logged in")
        return LoginResult(
            account_id=str(account.id),
            role=account.role.value,
            access_token=token,
            expires_in=self.jwt_service.expires_in,
        )

    def _upgrade_hash_if_needed(self, account: Account, password: str, password_hash: str) -> None:
        """Re-hash a verified password stored with an outdated scheme or cost."""
        if not self.password_service.needs_rehash(password_hash):
            return
        with account_store_errors("update"):
            self.accounts.update_credential(
                account.email, self.password_service.hash_password(password)
            )
        logger.info(f"Upgraded credential hash for account {account.id}")

    def validate_token(self, token: str) -> TokenClaims:
        """
        Verify a bearer token and return the identity it carries.

        Raises:
            InvalidTokenException: If the token is forged, expired or malformed
        """
        return self.jwt_service.verify_token(token)

    def request_password_reset(self, email: str) -> CodeDispatchResult:
        """
        Mail a password reset code to an existing account.

        Raises:
            NotFound: If no account uses the email
            MailDeliveryError: If the code could not be sent
        """
        email = Account.normalize_email(email)
        with account_store_errors("lookup"):
            account = self.accounts.get_by_email(email)
        if account is None:
            raise NotFound("No account is registered with this email")

        send_code(self.otp_service, self.mailer, email, self.reset_ttl_seconds)
        logger.info(f"Password reset requested for account {account.id}")
        return CodeDispatchResult(email=email, code_expires_in=self.reset_ttl_seconds)

    def reset_password(self, email: str, code: str, new_password: str) -> Account:
        """
        Replace the credential using a reset code.

        Role and approval status are left as they are.

        Raises:
            ValidationFailure: If the new password breaks the policy
            Unauthorized: If the code is wrong, expired or already used
        """
        account = set_credential_with_code(
            self.accounts, self.password_service, self.otp_service, email, code, new_password
        )
        logger.info(f"Password reset for account {account.id}")
        return account
