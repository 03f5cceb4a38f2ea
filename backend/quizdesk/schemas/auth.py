"""
Pydantic schemas for authentication endpoints.
"""
from typing import Optional

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    """Schema for submitting a credential.

    The password is optional at the schema level so that a missing value is
    reported as a 400 by the endpoint rather than a generic validation error.
    """

    password: Optional[str] = Field(None, description="Shared test password")


class LoginResponse(BaseModel):
    """Schema returned after a successful login."""

    success: bool = Field(True)
    user_id: str = Field(..., description="Authenticated user id")
    redirect: str = Field("/select-test", description="Where the client goes next")
