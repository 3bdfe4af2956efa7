"""API dependencies - access-token authentication"""

from fastapi import Depends, Request
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from typing import Optional

from blogauth.config import settings
from blogauth.services.session_service import SessionService, session_service

# HTTP Bearer token scheme; cookies take precedence so it is optional
security = HTTPBearer(auto_error=False)


def get_session_service() -> SessionService:
    """Dependency returning the process-wide session service"""
    return session_service


def require_access_token(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    sessions: SessionService = Depends(get_session_service),
) -> str:
    """
    Authenticate the request from its access token

    An explicit Bearer header wins over the access-token cookie, which the
    browser keeps sending after the token inside it has expired. Only the
    signature and expiry are checked; no database access happens here.

    Returns:
        str: The authenticated user id (also set on request.state.user_id)

    Raises:
        AuthenticationError: Token missing, expired or forged
    """
    if credentials and credentials.credentials:
        token = credentials.credentials
    else:
        token = request.cookies.get(settings.ACCESS_COOKIE_NAME)

    user_id = sessions.authenticate(token)
    request.state.user_id = user_id
    return user_id
