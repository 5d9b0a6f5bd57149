"""Authentication models"""

from typing import Optional

from pydantic import BaseModel, Field


class RegisterRequest(BaseModel):
    """Model for registering a user"""

    email: str = Field(..., min_length=3, description="Login email, also the user id")
    password: str = Field(..., min_length=1, description="Plain password")


class UserInfo(BaseModel):
    id: str
    email: str


class TokenResponse(BaseModel):
    """OAuth2 bearer token"""

    access_token: str
    token_type: str = "bearer"
    user: Optional[UserInfo] = None
