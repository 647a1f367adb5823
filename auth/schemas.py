"""
Pydantic schemas for request/response models in the auth module.
"""

from pydantic import BaseModel, Field


class UserRegister(BaseModel):
    """Schema for signup request payload."""
    username: str = Field(..., min_length=3, max_length=64, pattern=r"^[A-Za-z0-9_.-]+$")
    password: str = Field(..., min_length=1)


class UserOut(BaseModel):
    """Schema for responses containing user info."""
    username: str
    message: str


class ChangePasswordRequest(BaseModel):
    """Schema for a password change; the new password is typed twice."""
    current_password: str = Field(..., min_length=1)
    new_password: str = Field(..., min_length=1)
    confirm_password: str = Field(..., min_length=1)
