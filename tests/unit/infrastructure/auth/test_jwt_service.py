"""
Tests for JWT authentication service.

This test suite covers:
- Token generation and validation
- Expiry, signature and parse failures
- Key loading from configuration
"""

from datetime import UTC, datetime, timedelta
from unittest.mock import patch

import jwt
import pytest
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa

from timecapsule_auth.infrastructure.auth.exceptions import TokenSigningError, Unauthorized
from timecapsule_auth.infrastructure.auth.jwt_service import (
    InvalidSignatureException,
    InvalidTokenException,
    JWTService,
    MalformedTokenException,
    TokenExpiredException,
)
from timecapsule_auth.infrastructure.config import ConfigurationError, TokenConfig

SECRET = "unit-test-secret-key-with-at-least-32-bytes"
OTHER_SECRET = "another-unit-test-secret-key-32-bytes-long"


class TestJWTService:
    """Test JWT service functionality."""

    @pytest.fixture
    def jwt_service(self):
        """Create JWT service instance for testing."""
        return JWTService(signing_key=SECRET, issuer="test-issuer", access_token_expire_minutes=30)

    def test_service_initialization(self, jwt_service):
        assert jwt_service.issuer == "test-issuer"
        assert jwt_service.algorithm == "HS256"
        assert jwt_service.access_token_expire == timedelta(minutes=30)
        assert jwt_service.expires_in == 1800

    def test_token_round_trip(self, jwt_service):
        token = jwt_service.issue_token("account-123", "courier")

        claims = jwt_service.verify_token(token)

        assert claims.account_id == "account-123"
        assert claims.role == "courier"
        assert claims.token_id.startswith("jwt_")
        assert claims.expires_at - claims.issued_at == timedelta(minutes=30)

    def test_token_payload_structure(self, jwt_service):
        token = jwt_service.issue_token("account-123", "standard")

        payload = jwt.decode(token, options={"verify_signature": False})

        assert payload["iss"] == "test-issuer"
        assert payload["sub"] == "account-123"
        assert payload["role"] == "standard"
        assert {"iat", "nbf", "exp", "jti"} <= payload.keys()
        assert "password" not in payload

    def test_tokens_are_unique(self, jwt_service):
        first = jwt_service.issue_token("account-123", "standard")
        second = jwt_service.issue_token("account-123", "standard")
        assert first != second

    def test_expired_token(self, jwt_service):
        jwt_service.access_token_expire = timedelta(seconds=-1)
        token = jwt_service.issue_token("account-123", "standard")

        with pytest.raises(TokenExpiredException):
            jwt_service.verify_token(token)

    def test_token_signed_with_other_key(self, jwt_service):
        other = JWTService(signing_key=OTHER_SECRET, issuer="test-issuer")
        token = other.issue_token("account-123", "standard")

        with pytest.raises(InvalidSignatureException):
            jwt_service.verify_token(token)

    def test_signature_checked_before_expiry(self, jwt_service):
        other = JWTService(signing_key=OTHER_SECRET, issuer="test-issuer")
        other.access_token_expire = timedelta(seconds=-1)
        token = other.issue_token("account-123", "standard")

        with pytest.raises(InvalidSignatureException):
            jwt_service.verify_token(token)

    def test_tampered_claims(self, jwt_service):
        token = jwt_service.issue_token("account-123", "standard")
        header, payload, signature = token.split(".")
        forged_payload = jwt.encode(
            {"sub": "account-123", "role": "courier"}, OTHER_SECRET, algorithm="HS256"
        ).split(".")[1]

        with pytest.raises(InvalidSignatureException):
            jwt_service.verify_token(f"{header}.{forged_payload}.{signature}")

    @pytest.mark.parametrize("token", ["", "not-a-token", "a.b.c", "abc.def"])
    def test_malformed_token(self, jwt_service, token):
        with pytest.raises(MalformedTokenException):
            jwt_service.verify_token(token)

    def test_wrong_issuer(self, jwt_service):
        other = JWTService(signing_key=SECRET, issuer="someone-else")
        token = other.issue_token("account-123", "standard")

        with pytest.raises(InvalidTokenException):
            jwt_service.verify_token(token)

    def test_missing_role_claim(self, jwt_service):
        now = datetime.now(UTC)
        token = jwt.encode(
            {"iss": "test-issuer", "sub": "account-123", "iat": now, "exp": now + timedelta(minutes=5)},
            SECRET,
            algorithm="HS256",
        )

        with pytest.raises(InvalidTokenException):
            jwt_service.verify_token(token)

    def test_unsigned_token_rejected(self, jwt_service):
        now = datetime.now(UTC)
        token = jwt.encode(
            {
                "iss": "test-issuer",
                "sub": "account-123",
                "role": "courier",
                "iat": now,
                "exp": now + timedelta(minutes=5),
            },
            None,
            algorithm="none",
        )

        with pytest.raises(InvalidTokenException):
            jwt_service.verify_token(token)

    def test_token_errors_are_unauthorized(self):
        for error in (InvalidSignatureException, TokenExpiredException, MalformedTokenException):
            assert issubclass(error, InvalidTokenException)
        assert issubclass(InvalidTokenException, Unauthorized)

    def test_signing_failure(self, jwt_service):
        with patch(
            "timecapsule_auth.infrastructure.auth.jwt_service.jwt.encode",
            side_effect=ValueError("bad key"),
        ):
            with pytest.raises(TokenSigningError):
                jwt_service.issue_token("account-123", "standard")

    def test_rejects_unknown_algorithm(self):
        with pytest.raises(ValueError):
            JWTService(signing_key=SECRET, algorithm="HS512")

    def test_requires_signing_key(self):
        with pytest.raises(ValueError):
            JWTService(signing_key="")


class TestJWTServiceKeys:
    """Test key loading from configuration."""

    @pytest.fixture
    def rsa_key_files(self, tmp_path):
        private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
        private_path = tmp_path / "private_key.pem"
        public_path = tmp_path / "public_key.pem"
        private_path.write_bytes(
            private_key.private_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PrivateFormat.PKCS8,
                encryption_algorithm=serialization.NoEncryption(),
            )
        )
        public_path.write_bytes(
            private_key.public_key().public_bytes(
                encoding=serialization.Encoding.PEM,
                format=serialization.PublicFormat.SubjectPublicKeyInfo,
            )
        )
        return str(private_path), str(public_path)

    def _config(self, **overrides):
        values = {
            "algorithm": "HS256",
            "secret_key": SECRET,
            "private_key_path": None,
            "public_key_path": None,
            "issuer": "test-issuer",
            "access_token_expire_minutes": 15,
        }
        values.update(overrides)
        return TokenConfig(**values)

    def test_from_config_hs256(self):
        service = JWTService.from_config(self._config())

        assert service.algorithm == "HS256"
        assert service.expires_in == 900
        claims = service.verify_token(service.issue_token("account-1", "standard"))
        assert claims.account_id == "account-1"

    def test_from_config_rs256(self, rsa_key_files):
        private_path, public_path = rsa_key_files
        service = JWTService.from_config(
            self._config(
                algorithm="RS256",
                secret_key=None,
                private_key_path=private_path,
                public_key_path=public_path,
            )
        )

        token = service.issue_token("account-1", "courier")

        assert jwt.get_unverified_header(token)["alg"] == "RS256"
        assert service.verify_token(token).role == "courier"

    def test_from_config_requires_secret(self):
        with pytest.raises(ConfigurationError):
            JWTService.from_config(self._config(secret_key=None))

    def test_from_config_rs256_requires_key_paths(self):
        with pytest.raises(ConfigurationError):
            JWTService.from_config(self._config(algorithm="RS256", secret_key=None))
