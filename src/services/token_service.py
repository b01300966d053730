"""JWT access tokens identifying a caller and their role."""

from datetime import UTC, datetime, timedelta
from typing import Any

import jwt

from src.utils.config import config

ROLES = ("admin", "user")


class TokenService:
    """Service for JWT token generation and validation."""

    @staticmethod
    def create_access_token(
        subject: str, role: str = "user", expires_delta: timedelta | None = None
    ) -> str:
        """
        Create a JWT access token.

        Args:
            subject: Caller identity to encode in the token
            role: Caller role ("admin" or "user")
            expires_delta: Optional custom expiration time delta. If not provided,
                          uses the configured access token expiration time.

        Returns:
            The encoded JWT token as a string

        Raises:
            ValueError: If subject or role is invalid
        """
        if not subject:
            raise ValueError("subject must not be empty")
        if role not in ROLES:
            raise ValueError(f"role must be one of {', '.join(ROLES)}")

        if expires_delta is None:
            expires_delta = timedelta(minutes=config.jwt.access_token_expire_minutes)

        now = datetime.now(UTC)
        payload = {
            "sub": str(subject),
            "role": role,
            "type": "access",
            "iat": now,
            "exp": now + expires_delta,
        }

        return jwt.encode(payload, config.jwt.secret_key, algorithm=config.jwt.algorithm)

    @staticmethod
    def verify_token(token: str) -> dict[str, Any]:
        """
        Verify and decode a JWT token.

        Raises:
            jwt.ExpiredSignatureError: If token has expired
            jwt.InvalidTokenError: If token is invalid or malformed
            ValueError: If token is empty or None
        """
        if not token:
            raise ValueError("Token cannot be empty")

        try:
            return jwt.decode(token, config.jwt.secret_key, algorithms=[config.jwt.algorithm])
        except jwt.ExpiredSignatureError as e:
            raise jwt.ExpiredSignatureError("Token has expired") from e
        except jwt.InvalidTokenError as e:
            raise jwt.InvalidTokenError(f"Invalid token: {e!s}") from e
