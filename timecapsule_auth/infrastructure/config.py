"""
Configuration Management - Loads service settings from the environment
"""

import logging
import os
from dataclasses import dataclass, field

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Load environment variables from .env file
load_dotenv()


class ConfigurationError(ValueError):
    """Raised when the environment does not describe a runnable service."""

    pass


def _env_bool(name: str, default: str = "false") -> bool:
    return os.getenv(name, default).lower() in ("1", "true", "yes")


@dataclass
class DatabaseConfig:
    """Database configuration settings"""

    url: str
    echo: bool = False
    pool_timeout: int = 10

    @classmethod
    def from_env(cls) -> "DatabaseConfig":
        """Load database config from environment variables"""
        return cls(
            url=os.getenv("DATABASE_URL", "sqlite:///./timecapsule_auth.db"),
            echo=_env_bool("DB_ECHO"),
            pool_timeout=int(os.getenv("DB_POOL_TIMEOUT", "10")),
        )


@dataclass
class CacheConfig:
    """Expiring key-value store settings used for one-time codes"""

    backend: str
    redis_url: str
    socket_timeout: float
    socket_connect_timeout: float
    key_prefix: str

    @classmethod
    def from_env(cls) -> "CacheConfig":
        """Load cache config from environment variables"""
        return cls(
            backend=os.getenv("OTP_STORAGE_BACKEND", "redis").lower(),
            redis_url=os.getenv("REDIS_URL", "redis://localhost:6379/0"),
            socket_timeout=float(os.getenv("REDIS_SOCKET_TIMEOUT", "5")),
            socket_connect_timeout=float(os.getenv("REDIS_CONNECT_TIMEOUT", "5")),
            key_prefix=os.getenv("OTP_KEY_PREFIX", "otp:"),
        )


@dataclass
class TokenConfig:
    """Bearer token signing settings"""

    algorithm: str
    secret_key: str | None
    private_key_path: str | None
    public_key_path: str | None
    issuer: str
    access_token_expire_minutes: int

    @classmethod
    def from_env(cls) -> "TokenConfig":
        """Load token config from environment variables"""
        return cls(
            algorithm=os.getenv("JWT_ALGORITHM", "HS256").upper(),
            secret_key=os.getenv("JWT_SECRET"),
            private_key_path=os.getenv("JWT_PRIVATE_KEY_PATH"),
            public_key_path=os.getenv("JWT_PUBLIC_KEY_PATH"),
            issuer=os.getenv("JWT_ISSUER", "timecapsule-auth"),
            access_token_expire_minutes=int(os.getenv("JWT_EXPIRE_MINUTES", "1440")),
        )

    def validate(self) -> None:
        """Check that a signing key is configured for the chosen algorithm."""
        if self.algorithm == "HS256":
            if not self.secret_key:
                raise ConfigurationError("JWT_SECRET is required for HS256 signing")
            if len(self.secret_key) < 32:
                logger.warning("JWT_SECRET is shorter than 32 characters")
        elif self.algorithm == "RS256":
            if not (self.private_key_path and self.public_key_path):
                raise ConfigurationError(
                    "JWT_PRIVATE_KEY_PATH and JWT_PUBLIC_KEY_PATH are required for RS256 signing. "
                    "Use: openssl genrsa -out private_key.pem 2048"
                )
        else:
            raise ConfigurationError(f"Unsupported JWT_ALGORITHM: {self.algorithm}")


@dataclass
class OTPConfig:
    """One-time code settings"""

    length: int = 6
    registration_ttl_seconds: int = 300
    reset_ttl_seconds: int = 900

    @classmethod
    def from_env(cls) -> "OTPConfig":
        """Load OTP config from environment variables"""
        return cls(
            length=int(os.getenv("OTP_LENGTH", "6")),
            registration_ttl_seconds=int(os.getenv("OTP_REGISTRATION_TTL_SECONDS", "300")),
            reset_ttl_seconds=int(os.getenv("OTP_RESET_TTL_SECONDS", "900")),
        )


@dataclass
class PasswordPolicyConfig:
    """Password hashing and strength settings"""

    min_length: int = 6
    max_length: int = 128
    require_complexity: bool = False
    bcrypt_rounds: int = 12

    @classmethod
    def from_env(cls) -> "PasswordPolicyConfig":
        """Load password policy from environment variables"""
        return cls(
            min_length=int(os.getenv("PASSWORD_MIN_LENGTH", "6")),
            max_length=int(os.getenv("PASSWORD_MAX_LENGTH", "128")),
            require_complexity=_env_bool("PASSWORD_REQUIRE_COMPLEXITY"),
            bcrypt_rounds=int(os.getenv("BCRYPT_ROUNDS", "12")),
        )


@dataclass
class MailConfig:
    """Outbound email settings"""

    provider: str
    api_key: str | None
    from_address: str
    timeout_seconds: float

    @classmethod
    def from_env(cls) -> "MailConfig":
        """Load mail config from environment variables"""
        return cls(
            provider=os.getenv("MAIL_PROVIDER", "log").lower(),
            api_key=os.getenv("MAIL_API_KEY"),
            from_address=os.getenv("MAIL_FROM_ADDRESS", "no-reply@timecapsule.local"),
            timeout_seconds=float(os.getenv("MAIL_TIMEOUT_SECONDS", "10")),
        )


@dataclass
class AppConfig:
    """HTTP application settings"""

    environment: str = "development"
    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=list)
    admin_api_key: str | None = None

    @classmethod
    def from_env(cls) -> "AppConfig":
        """Load application config from environment variables"""
        origins = os.getenv("CORS_ORIGINS", "")
        return cls(
            environment=os.getenv("ENVIRONMENT", "development").lower(),
            log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
            cors_origins=[origin.strip() for origin in origins.split(",") if origin.strip()],
            admin_api_key=os.getenv("ADMIN_API_KEY") or None,
        )

    @property
    def is_production(self) -> bool:
        return self.environment == "production"


@dataclass
class Config:
    """Main configuration container"""

    database: DatabaseConfig
    cache: CacheConfig
    token: TokenConfig
    otp: OTPConfig
    password: PasswordPolicyConfig
    mail: MailConfig
    app: AppConfig

    @classmethod
    def from_env(cls) -> "Config":
        """Load all configuration from environment"""
        return cls(
            database=DatabaseConfig.from_env(),
            cache=CacheConfig.from_env(),
            token=TokenConfig.from_env(),
            otp=OTPConfig.from_env(),
            password=PasswordPolicyConfig.from_env(),
            mail=MailConfig.from_env(),
            app=AppConfig.from_env(),
        )

    def validate(self) -> None:
        """Reject combinations that must never reach a running service."""
        self.token.validate()
        if self.otp.length < 6:
            raise ConfigurationError("OTP_LENGTH must be at least 6")
        if self.app.is_production:
            if self.cache.backend != "redis":
                raise ConfigurationError("Production requires the redis OTP storage backend")
            if self.mail.provider == "log":
                raise ConfigurationError("Production requires a real MAIL_PROVIDER")


# Global configuration instance - lazy loaded
_config: Config | None = None


def _get_config() -> Config:
    """Get or create the global configuration instance"""
    global _config
    if _config is None:
        _config = Config.from_env()
    return _config


def get_config() -> Config:
    """Get the process configuration"""
    return _get_config()

