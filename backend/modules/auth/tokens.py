"""
Supabase access token validation.

A browser that still holds a Supabase session after a reload sends its
access token so the terminal session can be restored without asking the
user to sign in again.
"""

from datetime import datetime, timezone
from typing import Optional
import jwt
from pydantic import ValidationError as PydanticValidationError

from shared.config import Settings, get_settings
from shared.models import AuthenticatedUser

from .models import JWTPayload
from .exceptions import (
    InvalidTokenError,
    ExpiredTokenError,
    MissingTokenError,
)


class TokenValidator:
    """
    Validates Supabase JWT tokens using the project's JWT secret.

    Only the signature, expiry and audience are checked here. Whether the
    user still has a staff profile is up to the caller.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self._settings = settings or get_settings()

    def validate_token(self, token: Optional[str]) -> AuthenticatedUser:
        """
        Validate a JWT token and return the authenticated user.

        Raises:
            MissingTokenError: If no token was given
            ExpiredTokenError: If the token has expired
            InvalidTokenError: If the token is malformed, signed with another
                key, or lacks the claims a staff login needs
        """
        if not token:
            raise MissingTokenError()

        if not self._settings.supabase_jwt_secret:
            raise InvalidTokenError("Server authentication not configured")

        try:
            payload = jwt.decode(
                token,
                self._settings.supabase_jwt_secret,
                algorithms=["HS256"],
                audience="authenticated",
            )
            claims = JWTPayload(**payload)
        except jwt.ExpiredSignatureError:
            raise ExpiredTokenError()
        except jwt.InvalidTokenError as e:
            raise InvalidTokenError(str(e))
        except PydanticValidationError as e:
            raise InvalidTokenError(f"Malformed token claims: {e.error_count()} error(s)")

        if not claims.email:
            raise InvalidTokenError("Token has no email claim")

        try:
            return AuthenticatedUser(
                id=claims.sub,
                email=claims.email,
                email_verified=claims.email_confirmed_at is not None,
                session_id=claims.session_id,
                last_sign_in=datetime.fromtimestamp(claims.iat, tz=timezone.utc),
                expires_at=datetime.fromtimestamp(claims.exp, tz=timezone.utc),
            )
        except PydanticValidationError:
            raise InvalidTokenError("Token email is not a valid address")
