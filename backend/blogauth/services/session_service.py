"""Session lifecycle - register, login, refresh and logout."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional, Type

from pydantic import BaseModel
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.orm import Session

from blogauth.config import settings
from blogauth.core.exceptions import (
    AuthenticationError,
    EmailInUseError,
    InvalidCredentialsError,
    InvalidPasswordError,
    InvalidUsernameError,
    UsernameUnavailableError,
    ValidationError,
)
from blogauth.core.security import TokenSigner, get_password_hash, token_signer, verify_password
from blogauth.models.user import User
from blogauth.schemas.user import UserLogin, UserRegister, UserResponse
from blogauth.services.refresh_token_store import RefreshTokenStore, refresh_token_store
from blogauth.services.user_service import UserService, user_service

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SessionResult:
    """A freshly issued token pair and the public view of its owner."""

    user: UserResponse
    access_token: str
    refresh_token: str


def _validate(schema: Type[BaseModel], data: Dict[str, Any]) -> Any:
    try:
        return schema.model_validate(data)
    except PydanticValidationError as exc:
        details = [
            {
                "field": ".".join(str(loc) for loc in error["loc"]) or "body",
                "message": error["msg"],
                "type": error["type"],
            }
            for error in exc.errors()
        ]
        raise ValidationError("Validation failed", details={"errors": details}) from exc


class SessionService:
    """Issue, rotate and revoke access/refresh token pairs."""

    def __init__(
        self,
        signer: TokenSigner,
        users: UserService,
        tokens: RefreshTokenStore,
        uniform_login_errors: bool = False,
    ) -> None:
        self.signer = signer
        self.users = users
        self.tokens = tokens
        self.uniform_login_errors = uniform_login_errors

    def _issue(self, db: Session, user: User) -> SessionResult:
        access_token = self.signer.issue_access(user.id)
        refresh_token = self.signer.issue_refresh(user.id)
        self.tokens.put(db, user.id, refresh_token)
        return SessionResult(
            user=UserResponse.model_validate(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    def register(
        self,
        db: Session,
        *,
        username: Optional[str],
        name: Optional[str],
        email: Optional[str],
        password: Optional[str],
        confirm_password: Optional[str],
    ) -> SessionResult:
        """
        Create an account and open its first session

        Raises:
            ValidationError: Input has the wrong shape
            EmailInUseError: Email already registered
            UsernameUnavailableError: Username already taken
            DatabaseError: Persistence failed
        """
        data = _validate(UserRegister, {
            "username": username,
            "name": name,
            "email": email,
            "password": password,
            "confirm_password": confirm_password,
        })

        if self.users.exists_by_email(db, data.email):
            raise EmailInUseError()
        if self.users.exists_by_username(db, data.username):
            raise UsernameUnavailableError()

        user = self.users.create(
            db,
            username=data.username,
            name=data.name,
            email=data.email,
            password_hash=get_password_hash(data.password),
        )
        result = self._issue(db, user)
        logger.info(f"Registered user: {user.username} (id: {user.id})")
        return result

    def login(self, db: Session, *, username: Optional[str], password: Optional[str]) -> SessionResult:
        """
        Verify credentials and open a new session, replacing any previous one

        Raises:
            ValidationError: Input has the wrong shape
            AuthenticationError: Unknown username or wrong password
        """
        data = _validate(UserLogin, {"username": username, "password": password})

        user = self.users.find_by_username(db, data.username)
        if not user:
            logger.info(f"Login rejected, unknown username: {data.username}")
            raise InvalidCredentialsError() if self.uniform_login_errors else InvalidUsernameError()

        if not verify_password(data.password, user.password_hash):
            logger.info(f"Login rejected, wrong password for: {data.username}")
            raise InvalidCredentialsError() if self.uniform_login_errors else InvalidPasswordError()

        result = self._issue(db, user)
        logger.info(f"User authenticated: {user.username}")
        return result

    def refresh(self, db: Session, presented_refresh_token: Optional[str]) -> SessionResult:
        """
        Consume a refresh token and rotate the pair

        The presented token must verify and must still be the one stored for
        its owner; a token that was already rotated out or logged out fails.

        Raises:
            AuthenticationError: The token is missing, invalid or superseded
        """
        if not presented_refresh_token:
            raise AuthenticationError()

        try:
            subject = self.signer.verify_refresh(presented_refresh_token)
        except AuthenticationError as exc:
            logger.warning(f"Refresh rejected: {exc.message}")
            raise AuthenticationError() from exc

        try:
            owner_id = int(subject)
        except ValueError:
            logger.warning(f"Refresh rejected: non-numeric subject {subject!r}")
            raise AuthenticationError()

        if self.tokens.find_by_owner_and_token(db, owner_id, presented_refresh_token) is None:
            logger.warning(f"Refresh rejected: token is not the live one for user {owner_id}")
            raise AuthenticationError()

        user = self.users.find_by_id(db, owner_id)
        if not user:
            logger.warning(f"Refresh rejected: user {owner_id} no longer exists")
            raise AuthenticationError()

        access_token = self.signer.issue_access(user.id)
        refresh_token = self.signer.issue_refresh(user.id)
        if not self.tokens.replace(db, owner_id, presented_refresh_token, refresh_token):
            logger.warning(f"Refresh rejected: token for user {owner_id} was consumed concurrently")
            raise AuthenticationError()

        logger.info(f"Session refreshed for user: {user.username}")
        return SessionResult(
            user=UserResponse.model_validate(user),
            access_token=access_token,
            refresh_token=refresh_token,
        )

    def logout(self, db: Session, presented_refresh_token: Optional[str]) -> bool:
        """
        Drop the stored refresh record matching the presented token

        Holding the exact token string is the authorization. Logging out with
        an unknown or already-deleted token is a no-op.

        Returns:
            bool: True if a record was deleted
        """
        if not presented_refresh_token:
            return False
        deleted = self.tokens.delete_by_token(db, presented_refresh_token)
        logger.info(f"Logout processed (record deleted: {deleted})")
        return deleted

    def authenticate(self, access_token: Optional[str]) -> str:
        """
        Stateless access-token check for protected requests

        Returns:
            str: Subject id of the token
        """
        if not access_token:
            raise AuthenticationError()
        try:
            return self.signer.verify_access(access_token)
        except AuthenticationError as exc:
            logger.warning(f"Access token rejected: {exc.message}")
            raise AuthenticationError() from exc


session_service = SessionService(
    signer=token_signer,
    users=user_service,
    tokens=refresh_token_store,
    uniform_login_errors=settings.UNIFORM_LOGIN_ERRORS,
)
