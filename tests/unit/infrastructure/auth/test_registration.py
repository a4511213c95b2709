"""
Tests for account registration and code verification.
"""

from datetime import date
from unittest.mock import MagicMock

import pytest

from timecapsule_auth.application.interfaces.exceptions import (
    DuplicateAccountError,
    RepositoryError,
)
from timecapsule_auth.application.interfaces.repositories import IAccountRepository
from timecapsule_auth.domain.entities import AccountRole, AccountStatus
from timecapsule_auth.infrastructure.auth.exceptions import (
    AccountStoreUnavailable,
    Conflict,
    MailDeliveryError,
    Unauthorized,
    ValidationFailure,
)
from timecapsule_auth.infrastructure.auth.services import RegistrationService
from timecapsule_auth.infrastructure.auth.services.registration import (
    normalize_email,
    parse_role,
    validate_username,
)


@pytest.fixture
def registration_service(account_repository, password_service, otp_service, mailer):
    return RegistrationService(account_repository, password_service, otp_service, mailer)


class TestInputValidation:
    """Test the field validators used by registration."""

    def test_normalize_email(self):
        assert normalize_email("  Alice@Example.COM ") == "alice@example.com"

    @pytest.mark.parametrize("email", ["", "no-at-sign", "a@", "@x.com", "a b@x.com"])
    def test_invalid_email(self, email):
        with pytest.raises(ValidationFailure):
            normalize_email(email)

    @pytest.mark.parametrize("username", ["abc", "alice_01", "a.b-c", "x" * 30])
    def test_valid_username(self, username):
        validate_username(username)

    @pytest.mark.parametrize("username", ["", "ab", "x" * 31, "has space", "émile"])
    def test_invalid_username(self, username):
        with pytest.raises(ValidationFailure):
            validate_username(username)

    def test_parse_role(self):
        assert parse_role("Courier") == AccountRole.COURIER
        assert parse_role(AccountRole.STANDARD) == AccountRole.STANDARD

    def test_unknown_role(self):
        with pytest.raises(ValidationFailure, match="Unknown role"):
            parse_role("admin")


class TestRegister:
    """Test the register operation."""

    def test_register_creates_unverified_account_and_mails_code(
        self, registration_service, account_repository, mailer
    ):
        result = registration_service.register(
            email="Alice@Example.com",
            username="alice",
            full_name="Alice Doe",
            date_of_birth=date(1990, 5, 17),
        )

        assert result.email == "alice@example.com"
        assert result.status == "unverified"
        assert result.role == "standard"
        assert result.code_expires_in == 300

        account = account_repository.get_by_email("alice@example.com")
        assert account is not None
        assert str(account.id) == result.account_id
        assert account.status == AccountStatus.UNVERIFIED
        assert account.password_hash is None
        assert account.full_name == "Alice Doe"

        code = mailer.last_code("alice@example.com")
        assert len(code) == 6 and code.isdigit()

    def test_register_courier(self, registration_service):
        result = registration_service.register(
            email="bob@example.com", username="bob", role="courier"
        )
        assert result.role == "courier"
        assert result.status == "unverified"

    def test_duplicate_email_conflicts(self, registration_service, mailer):
        registration_service.register(email="alice@example.com", username="alice")

        with pytest.raises(Conflict):
            registration_service.register(email="ALICE@example.com", username="alice2")

        assert len(mailer.sent) == 1

    def test_invalid_input_has_no_side_effects(
        self, registration_service, account_repository, mailer
    ):
        with pytest.raises(ValidationFailure):
            registration_service.register(email="alice@example.com", username="a")

        assert account_repository.get_by_email("alice@example.com") is None
        assert mailer.sent == []

    def test_mail_failure_stores_nothing(
        self, registration_service, account_repository, otp_storage, mailer
    ):
        mailer.fail = True

        with pytest.raises(MailDeliveryError):
            registration_service.register(email="alice@example.com", username="alice")

        assert account_repository.get_by_email("alice@example.com") is None
        assert otp_storage.get("alice@example.com") is None

    def test_insert_race_reports_conflict_and_withdraws_code(
        self, password_service, otp_service, otp_storage, mailer
    ):
        accounts = MagicMock(spec=IAccountRepository)
        accounts.get_by_email.return_value = None
        accounts.create.side_effect = DuplicateAccountError("alice@example.com")
        service = RegistrationService(accounts, password_service, otp_service, mailer)

        with pytest.raises(Conflict):
            service.register(email="alice@example.com", username="alice")

        assert otp_storage.get("alice@example.com") is None

    def test_account_store_failure(self, password_service, otp_service, otp_storage, mailer):
        accounts = MagicMock(spec=IAccountRepository)
        accounts.get_by_email.return_value = None
        accounts.create.side_effect = RepositoryError("connection lost")
        service = RegistrationService(accounts, password_service, otp_service, mailer)

        with pytest.raises(AccountStoreUnavailable):
            service.register(email="alice@example.com", username="alice")

        assert otp_storage.get("alice@example.com") is None

    def test_lookup_failure_sends_nothing(self, password_service, otp_service, mailer):
        accounts = MagicMock(spec=IAccountRepository)
        accounts.get_by_email.side_effect = RepositoryError("connection lost")
        service = RegistrationService(accounts, password_service, otp_service, mailer)

        with pytest.raises(AccountStoreUnavailable):
            service.register(email="alice@example.com", username="alice")

        assert mailer.sent == []


class TestVerifyOTP:
    """Test completing registration with the mailed code."""

    def test_verify_activates_standard_account(self, registration_service, mailer):
        registration_service.register(email="alice@example.com", username="alice")
        code = mailer.last_code("alice@example.com")

        account = registration_service.verify_otp("alice@example.com", code, "secret1")

        assert account.status == AccountStatus.ACTIVE
        assert account.has_credential
        assert account.password_hash != "secret1"

    def test_verify_moves_courier_to_pending_approval(self, registration_service, mailer):
        registration_service.register(
            email="bob@example.com", username="bob", role=AccountRole.COURIER
        )
        code = mailer.last_code("bob@example.com")

        account = registration_service.verify_otp("bob@example.com", code, "secret1")

        assert account.status == AccountStatus.PENDING_APPROVAL

    def test_approval_granted_during_verification_is_kept(
        self, registration_service, account_repository, mailer, monkeypatch
    ):
        registration_service.register(
            email="bob@example.com", username="bob", role=AccountRole.COURIER
        )
        read = account_repository.get_by_email

        def read_then_approve(email):
            account = read(email)
            account_repository.update_status(email, AccountStatus.APPROVED)
            return account

        monkeypatch.setattr(account_repository, "get_by_email", read_then_approve)

        account = registration_service.verify_otp(
            "bob@example.com", mailer.last_code("bob@example.com"), "secret1"
        )

        assert account.status == AccountStatus.APPROVED

    def test_password_is_stored_as_given(self, registration_service, password_service, mailer):
        registration_service.register(email="alice@example.com", username="alice")

        account = registration_service.verify_otp(
            "alice@example.com", mailer.last_code("alice@example.com"), "  secret1  "
        )

        assert password_service.verify_password("  secret1  ", account.password_hash)
        assert not password_service.verify_password("secret1", account.password_hash)

    def test_code_is_single_use(self, registration_service, mailer):
        registration_service.register(email="alice@example.com", username="alice")
        code = mailer.last_code("alice@example.com")
        registration_service.verify_otp("alice@example.com", code, "secret1")

        with pytest.raises(Unauthorized, match="Invalid or expired code"):
            registration_service.verify_otp("alice@example.com", code, "secret2")

    def test_expired_code(self, registration_service, mailer, clock):
        registration_service.register(email="alice@example.com", username="alice")
        code = mailer.last_code("alice@example.com")
        clock.advance(301)

        with pytest.raises(Unauthorized):
            registration_service.verify_otp("alice@example.com", code, "secret1")

    def test_wrong_code(self, registration_service, account_repository, mailer):
        registration_service.register(email="alice@example.com", username="alice")
        code = mailer.last_code("alice@example.com")
        wrong = f"{(int(code) + 1) % 1_000_000:06d}"

        with pytest.raises(Unauthorized):
            registration_service.verify_otp("alice@example.com", wrong, "secret1")

        account = account_repository.get_by_email("alice@example.com")
        assert account.status == AccountStatus.UNVERIFIED

    def test_weak_password_keeps_code(self, registration_service, mailer):
        registration_service.register(email="alice@example.com", username="alice")
        code = mailer.last_code("alice@example.com")

        with pytest.raises(ValidationFailure):
            registration_service.verify_otp("alice@example.com", code, "abc")

        account = registration_service.verify_otp("alice@example.com", code, "secret1")
        assert account.status == AccountStatus.ACTIVE

    def test_code_without_account(self, registration_service, otp_service):
        code = otp_service.issue("ghost@example.com", ttl=300)

        with pytest.raises(Unauthorized, match="Invalid or expired code"):
            registration_service.verify_otp("ghost@example.com", code, "secret1")
