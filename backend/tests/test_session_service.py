from datetime import timedelta

import pytest

from blogauth.core.exceptions import (
    AuthenticationError,
    DatabaseError,
    EmailInUseError,
    InvalidCredentialsError,
    InvalidPasswordError,
    InvalidUsernameError,
    UsernameUnavailableError,
    ValidationError,
)
from blogauth.core.security import TokenSigner
from blogauth.models.security import RefreshToken
from blogauth.models.user import User
from blogauth.services.refresh_token_store import RefreshTokenStore
from blogauth.services.session_service import SessionService
from blogauth.services.user_service import UserService


def _login(sessions, db, password="Passw0rd!"):
    return sessions.login(db, username="alice01", password=password)


def test_register_then_login(sessions, db, alice):
    registered = sessions.register(db, **alice)
    assert registered.user.username == "alice01"
    assert registered.user.email == "alice@example.com"
    assert registered.access_token and registered.refresh_token

    logged_in = _login(sessions, db)
    assert logged_in.user.id == registered.user.id


def test_register_persists_refresh_record(sessions, db, alice):
    result = sessions.register(db, **alice)
    record = db.query(RefreshToken).one()
    assert record.user_id == result.user.id
    assert record.token == result.refresh_token


def test_public_view_hides_password_hash(sessions, db, alice):
    result = sessions.register(db, **alice)
    dumped = result.user.model_dump()
    assert set(dumped) == {"id", "username", "email", "name"}
    stored = db.query(User).one()
    assert stored.password_hash != alice["password"]


@pytest.mark.parametrize(
    "overrides",
    [
        {"username": "abc"},
        {"username": "a" * 31},
        {"email": "not-an-email"},
        {"password": "short1A", "confirm_password": "short1A"},
        {"password": "alllowercase1", "confirm_password": "alllowercase1"},
        {"password": "NoDigitsHere", "confirm_password": "NoDigitsHere"},
        {"password": "Passw0rd!" + "x" * 20, "confirm_password": "Passw0rd!" + "x" * 20},
        {"confirm_password": "Passw0rd?"},
        {"name": ""},
        {"email": None},
    ],
)
def test_register_rejects_bad_shape(sessions, db, alice, overrides):
    with pytest.raises(ValidationError) as exc_info:
        sessions.register(db, **{**alice, **overrides})
    assert exc_info.value.status_code == 400
    assert db.query(User).count() == 0


def test_register_duplicate_email(sessions, db, alice):
    sessions.register(db, **alice)
    with pytest.raises(EmailInUseError):
        sessions.register(db, **{**alice, "username": "alice02"})
    assert db.query(User).count() == 1
    assert db.query(User).one().username == "alice01"


def test_register_duplicate_username(sessions, db, alice):
    sessions.register(db, **alice)
    with pytest.raises(UsernameUnavailableError) as exc_info:
        sessions.register(db, **{**alice, "email": "other@example.com"})
    assert exc_info.value.status_code == 409
    assert db.query(User).count() == 1
    assert db.query(User).one().email == "alice@example.com"


class _BlindUserService(UserService):
    """Existence checks that miss a concurrent registration."""

    def exists_by_email(self, db, email):
        return False

    def exists_by_username(self, db, username):
        return False


@pytest.mark.parametrize(
    "overrides, expected",
    [
        ({"username": "alice02"}, EmailInUseError),
        ({"email": "other@example.com"}, UsernameUnavailableError),
    ],
)
def test_insert_time_unique_violation_maps_to_conflict(signer, db, alice, overrides, expected):
    sessions = SessionService(signer=signer, users=_BlindUserService(), tokens=RefreshTokenStore())
    sessions.register(db, **alice)
    with pytest.raises(expected):
        sessions.register(db, **{**alice, **overrides})
    assert db.query(User).count() == 1


def test_login_unknown_username(sessions, db, alice):
    sessions.register(db, **alice)
    with pytest.raises(InvalidUsernameError):
        sessions.login(db, username="nobody1", password="Passw0rd!")


@pytest.mark.parametrize("password", ["wrongpass1A", "Passw0rd?", "Abcdefg1"])
def test_login_wrong_password_is_unauthorized_not_validation(sessions, db, alice, password):
    sessions.register(db, **alice)
    with pytest.raises(InvalidPasswordError) as exc_info:
        _login(sessions, db, password=password)
    assert exc_info.value.status_code == 401


def test_login_rejects_bad_shape(sessions, db):
    with pytest.raises(ValidationError):
        sessions.login(db, username="al", password="Passw0rd!")
    with pytest.raises(ValidationError):
        sessions.login(db, username="alice01", password="weak")


def test_uniform_login_errors(signer, db, alice):
    sessions = SessionService(
        signer=signer, users=UserService(), tokens=RefreshTokenStore(), uniform_login_errors=True
    )
    sessions.register(db, **alice)
    with pytest.raises(InvalidCredentialsError):
        sessions.login(db, username="nobody1", password="Passw0rd!")
    with pytest.raises(InvalidCredentialsError):
        _login(sessions, db, password="wrongpass1A")


def test_login_overwrites_refresh_record(sessions, db, alice):
    sessions.register(db, **alice)
    result = _login(sessions, db)
    record = db.query(RefreshToken).one()
    assert record.token == result.refresh_token


def test_refresh_rotates_pair_and_voids_original(sessions, db, alice):
    sessions.register(db, **alice)
    original = _login(sessions, db)

    rotated = sessions.refresh(db, original.refresh_token)
    assert rotated.user.username == "alice01"
    assert rotated.refresh_token != original.refresh_token
    assert rotated.access_token != original.access_token

    with pytest.raises(AuthenticationError):
        sessions.refresh(db, original.refresh_token)

    again = sessions.refresh(db, rotated.refresh_token)
    assert again.refresh_token != rotated.refresh_token


def test_refresh_rejects_rotated_out_token_with_valid_signature(sessions, db, alice, signer):
    first = sessions.register(db, **alice)
    _login(sessions, db)  # a second device takes over the single session

    assert signer.verify_refresh(first.refresh_token) == str(first.user.id)
    with pytest.raises(AuthenticationError):
        sessions.refresh(db, first.refresh_token)


def test_refresh_rejects_expired_token(db, alice):
    stale_signer = TokenSigner(
        access_secret="a-secret",
        refresh_secret="r-secret",
        refresh_ttl=timedelta(minutes=-1),
    )
    sessions = SessionService(signer=stale_signer, users=UserService(), tokens=RefreshTokenStore())
    result = sessions.register(db, **alice)

    with pytest.raises(AuthenticationError):
        sessions.refresh(db, result.refresh_token)


def test_refresh_rejects_access_token_and_garbage(sessions, db, alice):
    result = sessions.register(db, **alice)
    for bogus in (result.access_token, "garbage", "", None):
        with pytest.raises(AuthenticationError):
            sessions.refresh(db, bogus)


def test_refresh_rejects_token_of_deleted_user(sessions, db, alice):
    result = sessions.register(db, **alice)
    db.query(User).delete()
    db.commit()
    with pytest.raises(AuthenticationError):
        sessions.refresh(db, result.refresh_token)


def test_logout_then_refresh_fails(sessions, db, alice):
    result = sessions.register(db, **alice)

    assert sessions.logout(db, result.refresh_token) is True
    with pytest.raises(AuthenticationError):
        sessions.refresh(db, result.refresh_token)


def test_logout_is_idempotent(sessions, db, alice):
    result = sessions.register(db, **alice)
    sessions.logout(db, result.refresh_token)
    assert sessions.logout(db, result.refresh_token) is False
    assert sessions.logout(db, None) is False


def test_authenticate_access_token(sessions, db, alice):
    result = sessions.register(db, **alice)
    assert sessions.authenticate(result.access_token) == str(result.user.id)
    for bogus in (result.refresh_token, "garbage", None):
        with pytest.raises(AuthenticationError):
            sessions.authenticate(bogus)


class _BrokenTokenStore(RefreshTokenStore):
    def put(self, db, owner_id, token):
        raise DatabaseError()


def test_store_failure_propagates(signer, db, alice):
    sessions = SessionService(signer=signer, users=UserService(), tokens=_BrokenTokenStore())
    with pytest.raises(DatabaseError):
        sessions.register(db, **alice)


def test_register_rejects_password_over_bcrypt_byte_limit(sessions, db, alice):
    password = "Passw0rd" + "\U0001F600" * 17  # 25 characters, 76 bytes
    with pytest.raises(ValidationError):
        sessions.register(db, **{**alice, "password": password, "confirm_password": password})
    assert db.query(User).count() == 0


def test_login_rejects_password_over_bcrypt_byte_limit(sessions, db, alice):
    sessions.register(db, **alice)
    with pytest.raises(ValidationError):
        _login(sessions, db, password="Passw0rd" + "\U0001F600" * 17)


def test_multibyte_password_within_limit_round_trips(sessions, db, alice):
    password = "Pässw0rdé"
    sessions.register(db, **{**alice, "password": password, "confirm_password": password})
    assert _login(sessions, db, password=password).user.username == "alice01"


class _RacingTokenStore(RefreshTokenStore):
    """Lets a concurrent refresh swap the record right after the lookup."""

    winner = "token-of-the-concurrent-refresh"

    def find_by_owner_and_token(self, db, owner_id, token):
        record = super().find_by_owner_and_token(db, owner_id, token)
        if record is not None:
            assert self.replace(db, owner_id, token, self.winner) is True
        return record


def test_refresh_loses_concurrent_rotation(signer, db, alice):
    tokens = _RacingTokenStore()
    sessions = SessionService(signer=signer, users=UserService(), tokens=tokens)
    result = sessions.register(db, **alice)

    with pytest.raises(AuthenticationError):
        sessions.refresh(db, result.refresh_token)

    record = db.query(RefreshToken).one()
    assert record.token == _RacingTokenStore.winner
