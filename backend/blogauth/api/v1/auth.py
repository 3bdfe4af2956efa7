"""Authentication routes"""

from contextlib import contextmanager
from typing import Any, Dict, Iterator, Optional

from fastapi import APIRouter, Body, Depends, Request, Response, status
from sqlalchemy.orm import Session

from blogauth.api.deps import get_session_service, require_access_token
from blogauth.config import settings
from blogauth.core.database import get_db
from blogauth.core.exceptions import BaseAPIException
from blogauth.core.metrics import AUTH_EVENTS
from blogauth.schemas.user import AuthResponse, RefreshTokenRequest
from blogauth.services.session_service import SessionResult, SessionService

router = APIRouter()


@contextmanager
def _track(event: str) -> Iterator[None]:
    try:
        yield
    except BaseAPIException:
        AUTH_EVENTS.labels(event, "rejected").inc()
        raise
    AUTH_EVENTS.labels(event, "success").inc()


def _set_session_cookies(response: Response, result: SessionResult) -> None:
    # Cookie lifetime outlives both tokens; expired tokens are rejected on verify
    for name, value in (
        (settings.ACCESS_COOKIE_NAME, result.access_token),
        (settings.REFRESH_COOKIE_NAME, result.refresh_token),
    ):
        response.set_cookie(
            name,
            value,
            max_age=settings.AUTH_COOKIE_MAX_AGE_SECONDS,
            httponly=True,
            secure=settings.COOKIE_SECURE,
            samesite=settings.COOKIE_SAMESITE,
        )


def _clear_session_cookies(response: Response) -> None:
    response.delete_cookie(settings.ACCESS_COOKIE_NAME)
    response.delete_cookie(settings.REFRESH_COOKIE_NAME)


def _presented_refresh_token(request: Request, body: Optional[RefreshTokenRequest]) -> Optional[str]:
    token = request.cookies.get(settings.REFRESH_COOKIE_NAME)
    if not token and body:
        token = body.refresh_token
    return token


@router.post("/register", response_model=AuthResponse, status_code=status.HTTP_201_CREATED)
def register(
    response: Response,
    payload: Dict[str, Any] = Body(default={}),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Register endpoint - create the account and start a session

    Accepts both ``confirm_password`` and ``confirmPassword``.
    """
    with _track("register"):
        result = sessions.register(
            db,
            username=payload.get("username"),
            name=payload.get("name"),
            email=payload.get("email"),
            password=payload.get("password"),
            confirm_password=payload.get("confirm_password", payload.get("confirmPassword")),
        )

    _set_session_cookies(response, result)
    return AuthResponse(user=result.user, auth=True)


@router.post("/login", response_model=AuthResponse, status_code=status.HTTP_200_OK)
def login(
    response: Response,
    payload: Dict[str, Any] = Body(default={}),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Login endpoint - authenticate user and set the token cookies
    """
    with _track("login"):
        result = sessions.login(
            db,
            username=payload.get("username"),
            password=payload.get("password"),
        )

    _set_session_cookies(response, result)
    return AuthResponse(user=result.user, auth=True)


@router.post("/logout", response_model=AuthResponse, status_code=status.HTTP_200_OK)
def logout(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    user_id: str = Depends(require_access_token),
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Logout endpoint - revoke the stored refresh token and clear cookies
    """
    with _track("logout"):
        sessions.logout(db, _presented_refresh_token(request, body))

    _clear_session_cookies(response)
    return AuthResponse(user=None, auth=False)


def _refresh(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest],
    db: Session,
    sessions: SessionService,
) -> AuthResponse:
    with _track("refresh"):
        result = sessions.refresh(db, _presented_refresh_token(request, body))

    _set_session_cookies(response, result)
    return AuthResponse(user=result.user, auth=True)


@router.get("/refresh", response_model=AuthResponse)
def refresh_session(
    request: Request,
    response: Response,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Refresh endpoint - rotate both tokens using the refresh cookie
    """
    return _refresh(request, response, None, db, sessions)


@router.post("/refresh", response_model=AuthResponse)
def refresh_session_with_body(
    request: Request,
    response: Response,
    body: Optional[RefreshTokenRequest] = None,
    db: Session = Depends(get_db),
    sessions: SessionService = Depends(get_session_service),
):
    """
    Refresh endpoint - same as GET, also accepts ``{"refresh_token": ...}``
    """
    return _refresh(request, response, body, db, sessions)
