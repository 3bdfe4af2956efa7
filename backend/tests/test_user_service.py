import pytest

from blogauth.core.exceptions import EmailInUseError, UsernameUnavailableError
from blogauth.services.user_service import conflict_for_integrity_error


@pytest.mark.parametrize(
    "message, expected",
    [
        ("UNIQUE constraint failed: users.email", EmailInUseError),
        ("UNIQUE constraint failed: users.username", UsernameUnavailableError),
        (
            'duplicate key value violates unique constraint "ix_users_email"\n'
            "DETAIL:  Key (email)=(alice@example.com) already exists.",
            EmailInUseError,
        ),
        (
            'duplicate key value violates unique constraint "users_email_key"',
            EmailInUseError,
        ),
        (
            'duplicate key value violates unique constraint "ix_users_username"\n'
            "DETAIL:  Key (username)=(myemail1) already exists.",
            UsernameUnavailableError,
        ),
    ],
)
def test_conflict_error_follows_constraint_name(message, expected):
    assert isinstance(conflict_for_integrity_error(message), expected)
