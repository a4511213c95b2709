"""
Authentication API endpoints for the time capsule auth service.

This module provides FastAPI endpoints for registration, code verification,
login, password reset, account approval and account management.
"""

import logging
from datetime import date, datetime
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query, Request, status
from pydantic import (
    BaseModel,
    ConfigDict,
    EmailStr,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

from timecapsule_auth.application.interfaces.repositories import AccountFilter, ProfileUpdate
from timecapsule_auth.domain.entities.account import Account

from .exceptions import (
    AuthServiceError,
    Conflict,
    NotFound,
    Unauthorized,
    Unavailable,
    ValidationFailure,
)
from .jwt_service import InvalidTokenException, TokenClaims
from .middleware import AdminKeyAuth, JWTBearer
from .services.user_service import UserService

logger = logging.getLogger(__name__)

# Create routers
router = APIRouter(prefix="/auth", tags=["Authentication"])
users_router = APIRouter(prefix="/users", tags=["Users"], dependencies=[Depends(JWTBearer())])


# Request/Response models
class RegisterRequest(BaseModel):
    """Registration request."""

    model_config = ConfigDict(str_strip_whitespace=True)

    email: EmailStr
    username: str = Field(..., min_length=3, max_length=30)
    full_name: str = Field("", max_length=200)
    date_of_birth: date | None = None
    role: str = Field("standard", max_length=32)


class RegisterResponse(BaseModel):
    """Registration response."""

    account_id: str
    email: str
    role: str
    status: str
    message: str
    code_expires_in: int


class CodeRequest(BaseModel):
    """Email and one-time code. Passwords are taken exactly as sent."""

    email: EmailStr
    otp: str = Field(..., min_length=6, max_length=12)

    @field_validator("email", "otp", mode="before")
    @classmethod
    def strip_whitespace(cls, value: object) -> object:
        return value.strip() if isinstance(value, str) else value


class VerifyOTPRequest(CodeRequest):
    """Registration code verification request."""

    password: SecretStr = Field(..., max_length=128)


class LoginRequest(BaseModel):
    """Login request."""

    email: EmailStr
    password: SecretStr = Field(..., max_length=128)


class LoginResponse(BaseModel):
    """Login response."""

    access_token: str
    token_type: str = "Bearer"
    expires_in: int
    account_id: str
    role: str


class ForgotPasswordRequest(BaseModel):
    """Password reset code request."""

    email: EmailStr


class ResetPasswordRequest(CodeRequest):
    """Password reset confirmation."""

    new_password: SecretStr = Field(..., max_length=128)
    confirm_new_password: SecretStr = Field(..., max_length=128)

    @model_validator(mode="after")
    def passwords_match(self) -> "ResetPasswordRequest":
        if self.new_password.get_secret_value() != self.confirm_new_password.get_secret_value():
            raise ValueError("confirm_new_password must match new_password")
        return self


class ApproveUserRequest(BaseModel):
    """Approval status change."""

    email: EmailStr
    status: str = Field(..., max_length=32)


class UpdateUserRequest(BaseModel):
    """Profile update."""

    model_config = ConfigDict(str_strip_whitespace=True)

    username: str = Field(..., min_length=3, max_length=30)
    full_name: str = Field("", max_length=200)
    date_of_birth: date | None = None


class AccountResponse(BaseModel):
    """Account profile. Never carries the credential hash."""

    id: str
    username: str
    email: str
    full_name: str
    date_of_birth: date | None
    status: str
    role: str
    created_at: datetime
    updated_at: datetime

    @classmethod
    def from_account(cls, account: Account) -> "AccountResponse":
        return cls(
            id=str(account.id),
            username=account.username,
            email=account.email,
            full_name=account.full_name,
            date_of_birth=account.date_of_birth,
            status=account.status.value,
            role=account.role.value,
            created_at=account.created_at,
            updated_at=account.updated_at,
        )


class ValidateResponse(BaseModel):
    """Identity carried by a valid bearer token."""

    account_id: str
    role: str
    expires_at: datetime


class MessageResponse(BaseModel):
    """Plain acknowledgement."""

    message: str


# Dependency injection functions


def get_user_service(request: Request) -> UserService:
    """Get the user service built by the application factory."""
    return request.app.state.user_service  # type: ignore[no-any-return]


def to_http_exception(error: AuthServiceError) -> HTTPException:
    """Map an authentication error to its HTTP status."""
    if isinstance(error, ValidationFailure):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=error.message)
    if isinstance(error, Conflict):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=error.message)
    if isinstance(error, Unauthorized):
        headers = {"WWW-Authenticate": "Bearer"} if isinstance(error, InvalidTokenException) else None
        return HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED, detail=error.message, headers=headers
        )
    if isinstance(error, NotFound):
        return HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=error.message)
    if isinstance(error, Unavailable):
        return HTTPException(status_code=status.HTTP_503_SERVICE_UNAVAILABLE, detail=error.message)

    logger.error(f"Unhandled authentication error: {error!r}")
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Internal authentication error"
    )


# API Endpoints


@router.post(
    "/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED
)
async def register(
    request: RegisterRequest, user_service: UserService = Depends(get_user_service)
) -> RegisterResponse:
    """
    Register a new account.

    Mails a one-time code that must be presented to /auth/verify-otp
    together with the password.
    """
    try:
        result = await user_service.register(
            email=request.email,
            username=request.username,
            full_name=request.full_name,
            date_of_birth=request.date_of_birth,
            role=request.role,
        )
    except AuthServiceError as e:
        raise to_http_exception(e)

    return RegisterResponse(
        account_id=result.account_id,
        email=result.email,
        role=result.role,
        status=result.status,
        message="Verification code sent to your email",
        code_expires_in=result.code_expires_in,
    )


@router.post("/verify-otp", response_model=AccountResponse)
async def verify_otp(
    request: VerifyOTPRequest, user_service: UserService = Depends(get_user_service)
) -> AccountResponse:
    """Verify the registration code and set the account password."""
    try:
        account = await user_service.verify_otp(
            request.email, request.otp, request.password.get_secret_value()
        )
    except AuthServiceError as e:
        raise to_http_exception(e)
    return AccountResponse.from_account(account)


@router.post("/login", response_model=LoginResponse)
async def login(
    request: LoginRequest, user_service: UserService = Depends(get_user_service)
) -> LoginResponse:
    """Authenticate with email and password and receive a bearer token."""
    try:
        result = await user_service.login(request.email, request.password.get_secret_value())
    except AuthServiceError as e:
        raise to_http_exception(e)

    return LoginResponse(
        access_token=result.access_token,
        expires_in=result.expires_in,
        account_id=result.account_id,
        role=result.role,
    )


@router.get("/validate", response_model=ValidateResponse)
async def validate(claims: TokenClaims = Depends(JWTBearer())) -> ValidateResponse:
    """Validate the bearer token in the Authorization header."""
    return ValidateResponse(
        account_id=claims.account_id, role=claims.role, expires_at=claims.expires_at
    )


@router.post("/forgot-password", response_model=MessageResponse)
async def forgot_password(
    request: ForgotPasswordRequest, user_service: UserService = Depends(get_user_service)
) -> MessageResponse:
    """Mail a password reset code."""
    try:
        await user_service.forgot_password(request.email)
    except AuthServiceError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Password reset code sent to your email")


@router.post("/reset-password", response_model=MessageResponse)
async def reset_password(
    request: ResetPasswordRequest, user_service: UserService = Depends(get_user_service)
) -> MessageResponse:
    """Set a new password with a reset code."""
    try:
        await user_service.reset_password(
            request.email, request.otp, request.new_password.get_secret_value()
        )
    except AuthServiceError as e:
        raise to_http_exception(e)
    return MessageResponse(message="Password has been reset")


@router.post(
    "/approve-user", response_model=AccountResponse, dependencies=[Depends(AdminKeyAuth())]
)
async def approve_user(
    request: ApproveUserRequest, user_service: UserService = Depends(get_user_service)
) -> AccountResponse:
    """Set the approval status of an account."""
    try:
        account = await user_service.approve_user(request.email, request.status)
    except AuthServiceError as e:
        raise to_http_exception(e)
    return AccountResponse.from_account(account)


@users_router.get("", response_model=list[AccountResponse])
async def list_users(
    email: str | None = Query(None),
    full_name: str | None = Query(None),
    username: str | None = Query(None),
    status: str | None = Query(None),
    role: str | None = Query(None),
    user_service: UserService = Depends(get_user_service),
) -> list[AccountResponse]:
    """List accounts, filtered by case-insensitive substrings."""
    filters = AccountFilter(
        email=email, full_name=full_name, username=username, status=status, role=role
    )
    try:
        accounts = await user_service.list_accounts(filters)
    except AuthServiceError as e:
        raise to_http_exception(e)
    return [AccountResponse.from_account(account) for account in accounts]


@users_router.get("/{account_id}", response_model=AccountResponse)
async def get_user(
    account_id: UUID, user_service: UserService = Depends(get_user_service)
) -> AccountResponse:
    """Get one account."""
    try:
        account = await user_service.get_account(account_id)
    except AuthServiceError as e:
        raise to_http_exception(e)
    return AccountResponse.from_account(account)


@users_router.put("/{account_id}", response_model=AccountResponse)
async def update_user(
    account_id: UUID,
    request: UpdateUserRequest,
    user_service: UserService = Depends(get_user_service),
) -> AccountResponse:
    """Update the profile of an account."""
    profile = ProfileUpdate(
        username=request.username,
        full_name=request.full_name,
        date_of_birth=request.date_of_birth,
    )
    try:
        account = await user_service.update_profile(account_id, profile)
    except AuthServiceError as e:
        raise to_http_exception(e)
    return AccountResponse.from_account(account)


@users_router.delete("/{account_id}", response_model=MessageResponse)
async def delete_user(
    account_id: UUID, user_service: UserService = Depends(get_user_service)
) -> MessageResponse:
    """Delete an account."""
    try:
        await user_service.delete_account(account_id)
    except AuthServiceError as e:
        raise to_http_exception(e)
    return MessageResponse(message="User deleted successfully")
