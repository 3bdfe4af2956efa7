"""Security utilities - password hashing, JWT signing and verification"""

from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional
import secrets

import bcrypt
from jose import jwt
from jose.exceptions import ExpiredSignatureError, JWTClaimsError, JWTError

from blogauth.config import Settings, settings
from blogauth.core.exceptions import (
    TokenExpiredError,
    TokenInvalidError,
    TokenMalformedError,
)

ACCESS_TOKEN_TYPE = "access"
REFRESH_TOKEN_TYPE = "refresh"


def verify_password(plain_password: str, hashed_password: str) -> bool:
    """
    Verify a password against its hash

    Args:
        plain_password: Plain text password
        hashed_password: Hashed password

    Returns:
        bool: True if password matches
    """
    return bcrypt.checkpw(
        plain_password.encode('utf-8'),
        hashed_password.encode('utf-8')
    )


def get_password_hash(password: str, rounds: Optional[int] = None) -> str:
    """
    Hash a password using bcrypt with a fresh salt

    Args:
        password: Plain text password
        rounds: bcrypt cost factor, defaults to PASSWORD_HASH_ROUNDS

    Returns:
        str: Hashed password
    """
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt(rounds=rounds or settings.PASSWORD_HASH_ROUNDS)
    ).decode('utf-8')


class TokenSigner:
    """Issue and verify access/refresh JWTs carrying a subject id."""

    def __init__(
        self,
        access_secret: str,
        refresh_secret: str,
        algorithm: str = "HS256",
        access_ttl: timedelta = timedelta(minutes=30),
        refresh_ttl: timedelta = timedelta(minutes=60),
    ) -> None:
        self._secrets = {
            ACCESS_TOKEN_TYPE: access_secret,
            REFRESH_TOKEN_TYPE: refresh_secret,
        }
        self._ttls = {
            ACCESS_TOKEN_TYPE: access_ttl,
            REFRESH_TOKEN_TYPE: refresh_ttl,
        }
        self.algorithm = algorithm

    @classmethod
    def from_settings(cls, config: Settings) -> "TokenSigner":
        return cls(
            access_secret=config.ACCESS_TOKEN_SECRET,
            refresh_secret=config.REFRESH_TOKEN_SECRET,
            algorithm=config.ALGORITHM,
            access_ttl=timedelta(minutes=config.ACCESS_TOKEN_EXPIRE_MINUTES),
            refresh_ttl=timedelta(minutes=config.REFRESH_TOKEN_EXPIRE_MINUTES),
        )

    @property
    def access_ttl(self) -> timedelta:
        return self._ttls[ACCESS_TOKEN_TYPE]

    @property
    def refresh_ttl(self) -> timedelta:
        return self._ttls[REFRESH_TOKEN_TYPE]

    def _issue(self, subject_id: Any, token_type: str) -> str:
        now = datetime.now(timezone.utc)
        to_encode: Dict[str, Any] = {
            "sub": str(subject_id),
            "typ": token_type,
            "iat": now,
            "exp": now + self._ttls[token_type],
            "jti": secrets.token_urlsafe(16),  # Unique token ID
        }
        return jwt.encode(to_encode, self._secrets[token_type], algorithm=self.algorithm)

    def issue_access(self, subject_id: Any) -> str:
        """Create a short-lived access token for subject_id."""
        return self._issue(subject_id, ACCESS_TOKEN_TYPE)

    def issue_refresh(self, subject_id: Any) -> str:
        """Create a longer-lived refresh token for subject_id."""
        return self._issue(subject_id, REFRESH_TOKEN_TYPE)

    def verify(self, token: str, token_type: str) -> str:
        """
        Verify signature, expiry and type of a token

        Args:
            token: Encoded JWT
            token_type: "access" or "refresh"

        Returns:
            str: The subject id carried by the token

        Raises:
            TokenMalformedError: Token cannot be decoded or lacks a subject
            TokenInvalidError: Signature mismatch or wrong token type
            TokenExpiredError: Token is past its expiry
        """
        if token_type not in self._secrets:
            raise ValueError(f"Unknown token type: {token_type}")
        if not token:
            raise TokenMalformedError()

        try:
            jwt.get_unverified_header(token)
        except JWTError:
            raise TokenMalformedError()

        try:
            payload = jwt.decode(token, self._secrets[token_type], algorithms=[self.algorithm])
        except ExpiredSignatureError:
            raise TokenExpiredError()
        except JWTClaimsError:
            raise TokenMalformedError()
        except JWTError:
            raise TokenInvalidError()

        if payload.get("typ") != token_type:
            raise TokenInvalidError()

        subject_id = payload.get("sub")
        if not subject_id:
            raise TokenMalformedError()
        return subject_id

    def verify_access(self, token: str) -> str:
        return self.verify(token, ACCESS_TOKEN_TYPE)

    def verify_refresh(self, token: str) -> str:
        return self.verify(token, REFRESH_TOKEN_TYPE)


token_signer = TokenSigner.from_settings(settings)
