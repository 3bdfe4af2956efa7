"""Pydantic schemas for API validation"""

from blogauth.schemas.user import (
    UserRegister,
    UserLogin,
    UserResponse,
    AuthResponse,
    RefreshTokenRequest,
)
from blogauth.schemas.response import ErrorResponse, HealthResponse

__all__ = [
    "UserRegister", "UserLogin", "UserResponse", "AuthResponse", "RefreshTokenRequest",
    "ErrorResponse", "HealthResponse",
]
