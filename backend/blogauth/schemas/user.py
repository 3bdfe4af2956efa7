"""User and session schemas"""

import re
from typing import Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

# 8-25 characters with at least one lowercase, one uppercase and one digit
PASSWORD_PATTERN = re.compile(r"^(?=.*[a-z])(?=.*[A-Z])(?=.*\d).{8,25}$")

# bcrypt only hashes the first 72 bytes; longer inputs are refused by the library
PASSWORD_MAX_BYTES = 72


def _check_password(value: str) -> str:
    if not PASSWORD_PATTERN.match(value):
        raise ValueError(
            "Password must be 8-25 characters and include a lowercase letter, "
            "an uppercase letter and a digit"
        )
    if len(value.encode("utf-8")) > PASSWORD_MAX_BYTES:
        raise ValueError(f"Password must not exceed {PASSWORD_MAX_BYTES} bytes when UTF-8 encoded")
    return value


class UserRegister(BaseModel):
    """User registration schema"""
    username: str = Field(..., min_length=5, max_length=30)
    name: str = Field(..., min_length=1, max_length=30)
    email: EmailStr
    password: str
    confirm_password: str

    @field_validator('password')
    @classmethod
    def password_complexity(cls, v):
        """Validate password length and character classes"""
        return _check_password(v)

    @model_validator(mode='after')
    def passwords_match(self):
        if self.confirm_password != self.password:
            raise ValueError('Passwords do not match')
        return self


class UserLogin(BaseModel):
    """User login schema"""
    username: str = Field(..., min_length=5, max_length=30)
    password: str

    @field_validator('password')
    @classmethod
    def password_complexity(cls, v):
        return _check_password(v)


class UserResponse(BaseModel):
    """Public user view"""
    id: int
    username: str
    email: str
    name: str

    class Config:
        from_attributes = True


class AuthResponse(BaseModel):
    """Body returned by every session endpoint"""
    user: Optional[UserResponse] = None
    auth: bool


class RefreshTokenRequest(BaseModel):
    """Optional body for refresh/logout when cookies are unavailable"""
    refresh_token: Optional[str] = None
