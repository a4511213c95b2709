"""
FastAPI application for the time capsule auth service.

Builds the services from configuration and mounts the authentication and
account routers. Run with ``uvicorn timecapsule_auth.app:create_app --factory``.
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from timecapsule_auth import __version__
from timecapsule_auth.application.interfaces.repositories import IAccountRepository
from timecapsule_auth.infrastructure.auth.endpoints import router, users_router
from timecapsule_auth.infrastructure.auth.jwt_service import JWTService
from timecapsule_auth.infrastructure.auth.mailer import EmailDispatcher, create_email_dispatcher
from timecapsule_auth.infrastructure.auth.middleware import (
    RequestIDMiddleware,
    SecurityHeadersMiddleware,
)
from timecapsule_auth.infrastructure.auth.otp_storage import OTPStorage, create_otp_storage
from timecapsule_auth.infrastructure.auth.services import (
    OTPService,
    PasswordHasher,
    PasswordService,
    PasswordValidator,
    UserService,
)
from timecapsule_auth.infrastructure.config import Config, get_config
from timecapsule_auth.infrastructure.database import (
    check_connection,
    create_db_engine,
    create_session_factory,
    init_db,
)
from timecapsule_auth.infrastructure.repositories import SqlAlchemyAccountRepository

logger = logging.getLogger(__name__)


def configure_logging(level: str) -> None:
    logging.basicConfig(
        level=getattr(logging, level, logging.INFO),
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )


def build_user_service(
    config: Config,
    accounts: IAccountRepository,
    otp_storage: OTPStorage,
    mailer: EmailDispatcher,
) -> UserService:
    """Wire the credential services together from configuration."""
    password_service = PasswordService(
        hasher=PasswordHasher(rounds=config.password.bcrypt_rounds),
        validator=PasswordValidator(
            min_length=config.password.min_length,
            max_length=config.password.max_length,
            require_complexity=config.password.require_complexity,
        ),
    )
    return UserService(
        accounts=accounts,
        jwt_service=JWTService.from_config(config.token),
        password_service=password_service,
        otp_service=OTPService(otp_storage, code_length=config.otp.length),
        mailer=mailer,
        registration_ttl_seconds=config.otp.registration_ttl_seconds,
        reset_ttl_seconds=config.otp.reset_ttl_seconds,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan manager."""
    logger.info(f"Starting authentication service ({app.state.config.app.environment})")
    yield
    logger.info("Shutting down authentication service")
    engine = getattr(app.state, "engine", None)
    if engine is not None:
        engine.dispose()


def create_app(
    config: Config | None = None,
    *,
    accounts: IAccountRepository | None = None,
    otp_storage: OTPStorage | None = None,
    mailer: EmailDispatcher | None = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Collaborators left as None are built from configuration: the SQL
    account store, the configured OTP storage backend and mail provider.
    """
    config = config or get_config()
    config.validate()
    configure_logging(config.app.log_level)

    app = FastAPI(
        title="Time Capsule Authentication API",
        description="Account registration, email verification and bearer tokens",
        version=__version__,
        lifespan=lifespan,
    )
    app.state.config = config
    app.state.engine = None

    if accounts is None:
        engine = create_db_engine(config.database)
        init_db(engine)
        app.state.engine = engine
        accounts = SqlAlchemyAccountRepository(create_session_factory(engine))

    otp_storage = otp_storage or create_otp_storage(config.cache)
    mailer = mailer or create_email_dispatcher(config.mail)

    app.state.otp_storage = otp_storage
    app.state.user_service = build_user_service(config, accounts, otp_storage, mailer)

    # Add middleware
    app.add_middleware(SecurityHeadersMiddleware)
    app.add_middleware(RequestIDMiddleware)
    if config.app.cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.app.cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "DELETE"],
            allow_headers=["Authorization", "Content-Type", "X-Request-ID", "X-Admin-Key"],
            max_age=3600,
        )

    app.include_router(router)
    app.include_router(users_router)

    @app.get("/health", tags=["Health"])
    async def health(request: Request) -> dict[str, Any]:
        """Report whether the code store and database answer."""
        checks = {"otp_storage": request.app.state.otp_storage.health_check()}
        if request.app.state.engine is not None:
            checks["database"] = check_connection(request.app.state.engine)
        return {"status": "ok" if all(checks.values()) else "degraded", "checks": checks}

    logger.info(
        f"Authentication service configured: mail={mailer.provider_name}, "
        f"otp_storage={type(otp_storage).__name__}"
    )
    return app
