"""User service - the user record store"""

from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session
from typing import Optional
from blogauth.models.user import User
from blogauth.core.exceptions import (
    ConflictError,
    DatabaseError,
    EmailInUseError,
    UsernameUnavailableError,
)
import logging
import re

logger = logging.getLogger(__name__)

# SQLite names the column, PostgreSQL names the index or constraint
_EMAIL_CONSTRAINT = re.compile(r"\busers\.email\b|\bix_users_email\b|\busers_email_key\b")


def conflict_for_integrity_error(message: str) -> ConflictError:
    """Pick the conflict error for a unique-constraint violation message"""
    if _EMAIL_CONSTRAINT.search(message.lower()):
        return EmailInUseError()
    return UsernameUnavailableError()


class UserService:
    """Lookups and inserts against the users table"""

    @staticmethod
    def _query_failed(db: Session, exc: SQLAlchemyError) -> DatabaseError:
        db.rollback()
        logger.error(f"User store failure: {exc}")
        return DatabaseError()

    def exists_by_email(self, db: Session, email: str) -> bool:
        try:
            return db.query(User.id).filter(User.email == email).first() is not None
        except SQLAlchemyError as exc:
            raise self._query_failed(db, exc) from exc

    def exists_by_username(self, db: Session, username: str) -> bool:
        try:
            return db.query(User.id).filter(User.username == username).first() is not None
        except SQLAlchemyError as exc:
            raise self._query_failed(db, exc) from exc

    def find_by_username(self, db: Session, username: str) -> Optional[User]:
        """Get user by username"""
        try:
            return db.query(User).filter(User.username == username).first()
        except SQLAlchemyError as exc:
            raise self._query_failed(db, exc) from exc

    def find_by_id(self, db: Session, user_id: int) -> Optional[User]:
        """Get user by ID"""
        try:
            return db.query(User).filter(User.id == user_id).first()
        except SQLAlchemyError as exc:
            raise self._query_failed(db, exc) from exc

    def create(
        self,
        db: Session,
        *,
        username: str,
        name: str,
        email: str,
        password_hash: str,
    ) -> User:
        """
        Insert a new user

        The unique constraints on username and email are the final guard
        against two registrations racing past the existence checks.

        Raises:
            EmailInUseError: email unique constraint violated
            UsernameUnavailableError: username unique constraint violated
            DatabaseError: any other persistence failure
        """
        user = User(
            username=username,
            name=name,
            email=email,
            password_hash=password_hash,
        )
        try:
            db.add(user)
            db.commit()
        except IntegrityError as exc:
            db.rollback()
            message = str(getattr(exc, "orig", exc))
            logger.warning(f"Unique constraint hit while creating user {username}: {message}")
            raise conflict_for_integrity_error(message) from exc
        except SQLAlchemyError as exc:
            raise self._query_failed(db, exc) from exc

        db.refresh(user)
        logger.info(f"Created user: {user.username} (id: {user.id})")
        return user


# Singleton instance
user_service = UserService()
