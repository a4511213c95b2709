"""Global pytest configuration and fixtures."""

# Standard library imports
from pathlib import Path

# Load test environment variables
from dotenv import load_dotenv

test_env_path = Path(__file__).parent.parent / ".env.test"
if test_env_path.exists():
    load_dotenv(test_env_path, override=True)

# Third-party imports
import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

# Local imports
from timecapsule_auth.app import create_app
from timecapsule_auth.infrastructure.auth.exceptions import MailDeliveryError
from timecapsule_auth.infrastructure.auth.jwt_service import JWTService
from timecapsule_auth.infrastructure.auth.mailer import EmailDispatcher
from timecapsule_auth.infrastructure.auth.models import Base
from timecapsule_auth.infrastructure.auth.otp_storage import MemoryOTPStorage
from timecapsule_auth.infrastructure.auth.services import (
    OTPService,
    PasswordHasher,
    PasswordService,
    PasswordValidator,
    UserService,
)
from timecapsule_auth.infrastructure.config import (
    AppConfig,
    CacheConfig,
    Config,
    DatabaseConfig,
    MailConfig,
    OTPConfig,
    PasswordPolicyConfig,
    TokenConfig,
)
from timecapsule_auth.infrastructure.repositories import SqlAlchemyAccountRepository

TEST_JWT_SECRET = "test-secret-key-that-is-long-enough-for-hs256"


class FakeClock:
    """Monotonic clock the tests move by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class RecordingMailer(EmailDispatcher):
    """Dispatcher that keeps sent codes in memory and can be told to fail."""

    def __init__(self) -> None:
        self.sent: list[tuple[str, str]] = []
        self.fail = False

    def send(self, to_address: str, code: str) -> None:
        if self.fail:
            raise MailDeliveryError("Email could not be sent", operation="send", backend="recording")
        self.sent.append((to_address, code))

    @property
    def provider_name(self) -> str:
        return "recording"

    def last_code(self, email: str) -> str:
        for address, code in reversed(self.sent):
            if address == email:
                return code
        raise AssertionError(f"No code was sent to {email}")


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def otp_storage(clock: FakeClock) -> MemoryOTPStorage:
    return MemoryOTPStorage(clock=clock)


@pytest.fixture
def otp_service(otp_storage: MemoryOTPStorage) -> OTPService:
    return OTPService(otp_storage)


@pytest.fixture
def password_service() -> PasswordService:
    """Password service with the cheapest bcrypt cost to keep tests fast."""
    return PasswordService(hasher=PasswordHasher(rounds=4), validator=PasswordValidator())


@pytest.fixture
def jwt_service() -> JWTService:
    return JWTService(signing_key=TEST_JWT_SECRET, issuer="timecapsule-test")


@pytest.fixture
def mailer() -> RecordingMailer:
    return RecordingMailer()


@pytest.fixture
def test_db():
    """Create an in-memory database shared by every session."""
    engine = create_engine(
        "sqlite:///:memory:",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, expire_on_commit=False, bind=engine)
    engine.dispose()


@pytest.fixture
def account_repository(test_db) -> SqlAlchemyAccountRepository:
    return SqlAlchemyAccountRepository(test_db)


@pytest.fixture
def user_service(
    account_repository: SqlAlchemyAccountRepository,
    jwt_service: JWTService,
    password_service: PasswordService,
    otp_service: OTPService,
    mailer: RecordingMailer,
) -> UserService:
    return UserService(
        accounts=account_repository,
        jwt_service=jwt_service,
        password_service=password_service,
        otp_service=otp_service,
        mailer=mailer,
    )


@pytest.fixture
def test_config() -> Config:
    """Configuration for an application running on in-memory collaborators."""
    return Config(
        database=DatabaseConfig(url="sqlite:///:memory:"),
        cache=CacheConfig(
            backend="memory",
            redis_url="redis://localhost:6379/15",
            socket_timeout=1,
            socket_connect_timeout=1,
            key_prefix="otp:",
        ),
        token=TokenConfig(
            algorithm="HS256",
            secret_key=TEST_JWT_SECRET,
            private_key_path=None,
            public_key_path=None,
            issuer="timecapsule-test",
            access_token_expire_minutes=60,
        ),
        otp=OTPConfig(),
        password=PasswordPolicyConfig(bcrypt_rounds=4),
        mail=MailConfig(
            provider="log",
            api_key=None,
            from_address="no-reply@timecapsule.io",
            timeout_seconds=1,
        ),
        app=AppConfig(environment="test", log_level="WARNING", admin_api_key="admin-test-key"),
    )


@pytest.fixture
def app(test_config, account_repository, otp_storage, mailer):
    """Application wired to the in-memory store, code storage and mailer."""
    return create_app(
        test_config, accounts=account_repository, otp_storage=otp_storage, mailer=mailer
    )


@pytest.fixture
def client(app):
    with TestClient(app) as test_client:
        yield test_client
