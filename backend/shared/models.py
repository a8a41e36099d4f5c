"""
Identity models shared by the auth module and the API layer.

Staff profiles (name, role, PIN) belong to modules/auth. This is only the
identity Supabase vouches for in an access token.
"""

from datetime import datetime
from typing import Optional
from pydantic import BaseModel, EmailStr, Field


class AuthenticatedUser(BaseModel):
    """
    Identity extracted from a Supabase access token.

    A terminal that is reloaded while the browser still holds a Supabase
    session sends this token to restore its staff session. The profile is
    looked up separately from the profile directory.
    """

    id: str = Field(..., description="Supabase user ID, also the profile ID")
    email: EmailStr = Field(..., description="Sign-in email")
    email_verified: bool = Field(default=False, description="Whether the email was confirmed")
    session_id: Optional[str] = Field(None, description="Supabase Auth session the token belongs to")
    last_sign_in: Optional[datetime] = Field(None, description="When the token was issued")
    expires_at: Optional[datetime] = Field(None, description="When the token stops being accepted")

    model_config = {
        "frozen": True,
        "extra": "ignore",  # JWT carries claims we don't model
    }
