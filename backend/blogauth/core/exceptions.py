"""Custom exception classes for the application"""

from typing import Optional, Dict, Any


class BaseAPIException(Exception):
    """Base exception for all API errors"""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        details: Optional[Dict[str, Any]] = None
    ):
        self.message = message
        self.status_code = status_code
        self.details = details or {}
        super().__init__(self.message)


# Authentication Errors
class AuthenticationError(BaseAPIException):
    """Base authentication error"""
    def __init__(self, message: str = "Unauthorized"):
        super().__init__(message, status_code=401)


class InvalidUsernameError(AuthenticationError):
    """No user with the given username"""
    def __init__(self):
        super().__init__("Invalid username")


class InvalidPasswordError(AuthenticationError):
    """Password does not match the stored hash"""
    def __init__(self):
        super().__init__("Invalid password")


class InvalidCredentialsError(AuthenticationError):
    """Invalid username or password"""
    def __init__(self):
        super().__init__("Invalid username or password")


class TokenExpiredError(AuthenticationError):
    """JWT token has expired"""
    def __init__(self):
        super().__init__("Token has expired")


class TokenInvalidError(AuthenticationError):
    """JWT signature or token type does not check out"""
    def __init__(self):
        super().__init__("Invalid token")


class TokenMalformedError(AuthenticationError):
    """Token is not a decodable JWT or lacks required claims"""
    def __init__(self):
        super().__init__("Malformed token")


# Conflict Errors
class ConflictError(BaseAPIException):
    """Resource already exists"""
    def __init__(self, message: str):
        super().__init__(message, status_code=409)


class EmailInUseError(ConflictError):
    """Email already registered"""
    def __init__(self):
        super().__init__("Email already registered")


class UsernameUnavailableError(ConflictError):
    """Username already taken"""
    def __init__(self):
        super().__init__("Username not available")


# Validation Errors
class ValidationError(BaseAPIException):
    """Validation error"""
    def __init__(self, message: str = "Validation failed", details: Optional[Dict[str, Any]] = None):
        super().__init__(message, status_code=400, details=details)


# System Errors
class DatabaseError(BaseAPIException):
    """Database operation failed"""
    def __init__(self, message: str = "Database operation failed"):
        super().__init__(message, status_code=500)
