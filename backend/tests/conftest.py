from datetime import timedelta

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from blogauth.core.database import Base
from blogauth.core.security import TokenSigner
from blogauth.services.refresh_token_store import RefreshTokenStore
from blogauth.services.session_service import SessionService
from blogauth.services.user_service import UserService


@pytest.fixture
def session_factory():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield sessionmaker(autocommit=False, autoflush=False, bind=engine)
    engine.dispose()


@pytest.fixture
def db(session_factory):
    session = session_factory()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def signer():
    return TokenSigner(
        access_secret="test-access-secret-0123456789abcdef",
        refresh_secret="test-refresh-secret-0123456789abcdef",
        access_ttl=timedelta(minutes=30),
        refresh_ttl=timedelta(minutes=60),
    )


@pytest.fixture
def sessions(signer):
    return SessionService(signer=signer, users=UserService(), tokens=RefreshTokenStore())


@pytest.fixture
def alice():
    return {
        "username": "alice01",
        "name": "Alice",
        "email": "alice@example.com",
        "password": "Passw0rd!",
        "confirm_password": "Passw0rd!",
    }
