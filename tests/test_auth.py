from datetime import timedelta
from uuid import uuid4

import pytest

from conftest import STRONG_PASSWORD
from identity_hub.models import Token, User
from identity_hub.services.auth import (
    forgot_password,
    get_current_user,
    login_with_email_and_password,
    logout,
    refresh_auth,
    reset_password,
    send_verification_email,
    verify_email,
)
from identity_hub.services.token import generate_auth_tokens, generate_token, save_token
from identity_hub.utils.base import Err, Ok, TokenType, utcnow
from identity_hub.utils.config import settings
from identity_hub.utils.errors import Forbidden, NotFound, Unauthorized


@pytest.fixture
def user():
    user = User(name="Jane Doe", email="jane@example.com", password=STRONG_PASSWORD)
    user.save()
    return user


class TestLogin:
    def test_success(self, user):
        result = login_with_email_and_password("Jane@Example.com", STRONG_PASSWORD)
        assert isinstance(result, Ok)
        assert result.value.uid == user.uid

    def test_unknown_email(self, user):
        assert isinstance(login_with_email_and_password("x@example.com", STRONG_PASSWORD).error, Unauthorized)

    def test_failures_count_down_and_lock(self, user, notifier):
        for remaining in range(settings.maximum_login_attempts - 1, -1, -1):
            result = login_with_email_and_password(user.email, "Wr0ng!Pass")
            assert isinstance(result.error, Unauthorized)
            assert User.objects(uid=user.uid).first().login_attempts == remaining

        stored = User.objects(uid=user.uid).first()
        assert stored.is_locked
        assert isinstance(login_with_email_and_password(user.email, STRONG_PASSWORD).error, Forbidden)
        assert notifier.sent == [("account_locked", user.email, None)]

    def test_success_resets_counter(self, user):
        login_with_email_and_password(user.email, "Wr0ng!Pass")
        login_with_email_and_password(user.email, STRONG_PASSWORD)
        assert User.objects(uid=user.uid).first().login_attempts == settings.maximum_login_attempts

    def test_active_session_cap(self, user, notifier):
        for _ in range(settings.max_active_sessions):
            generate_auth_tokens(user)

        result = login_with_email_and_password(user.email, STRONG_PASSWORD)
        assert isinstance(result.error, Forbidden)
        assert notifier.sent[-1][0] == "maximum_active_sessions"

        logout(Token.objects(user=user.uid).first().token)
        assert isinstance(login_with_email_and_password(user.email, STRONG_PASSWORD), Ok)

    def test_expired_sessions_are_dropped_at_login(self, user):
        expired = utcnow() - timedelta(minutes=1)
        for _ in range(settings.max_active_sessions):
            token = generate_token(user.uid, utcnow() + timedelta(days=1), TokenType.REFRESH, token_id=uuid4().hex)
            save_token(token, user.uid, expired, TokenType.REFRESH)

        assert isinstance(login_with_email_and_password(user.email, STRONG_PASSWORD), Ok)
        assert Token.objects(user=user.uid).count() == 0

    def test_deactivated_account(self, user):
        user.is_active = False
        user.save()
        assert isinstance(login_with_email_and_password(user.email, STRONG_PASSWORD).error, Forbidden)


def test_refresh_rotates_tokens(user):
    old_refresh = generate_auth_tokens(user).value["refresh"]["token"]

    result = refresh_auth(old_refresh)
    assert isinstance(result, Ok)
    assert Token.objects(token=old_refresh).count() == 0
    assert isinstance(refresh_auth(old_refresh).error, Unauthorized)


def test_logout_removes_refresh_token(user):
    refresh = generate_auth_tokens(user).value["refresh"]["token"]
    assert isinstance(logout(refresh), Ok)
    assert isinstance(logout(refresh).error, NotFound)


def test_forgot_and_reset_password(user, notifier):
    assert isinstance(forgot_password("jane@example.com"), Ok)
    kind, email, token = notifier.sent[-1]
    assert (kind, email) == ("reset_password", "jane@example.com")

    assert isinstance(reset_password(token, "weak"), Err)
    assert isinstance(reset_password(token, "N3w!Password"), Ok)
    assert User.objects(uid=user.uid).first().is_password_match("N3w!Password")
    assert Token.objects(user=user.uid, type=TokenType.RESET_PASSWORD.value).count() == 0
    assert isinstance(reset_password(token, "An0ther!Pass").error, Unauthorized)


def test_email_verification(user, notifier):
    assert isinstance(send_verification_email(user), Ok)
    _, _, token = notifier.sent[-1]

    assert isinstance(verify_email(token), Ok)
    stored = User.objects(uid=user.uid).first()
    assert stored.is_email_verified
    assert isinstance(send_verification_email(stored).error, Forbidden)
    assert isinstance(verify_email(token).error, Unauthorized)


class TestCurrentUser:
    def test_valid_access_token(self, user):
        access = generate_auth_tokens(user).value["access"]["token"]
        assert get_current_user(access).uid == user.uid

    def test_missing_token(self):
        with pytest.raises(Unauthorized):
            get_current_user(None)

    def test_refresh_token_is_not_accepted(self, user):
        refresh = generate_auth_tokens(user).value["refresh"]["token"]
        with pytest.raises(Unauthorized):
            get_current_user(refresh)

    def test_garbage_token(self):
        with pytest.raises(Unauthorized):
            get_current_user("not-a-jwt")


def test_forgot_password_matches_email_case_insensitively(user, notifier):
    assert isinstance(forgot_password(" Jane@Example.com "), Ok)
    assert notifier.sent[-1][:2] == ("reset_password", "jane@example.com")
    assert Token.objects(user=user.uid, type=TokenType.RESET_PASSWORD.value).count() == 1
    assert isinstance(forgot_password("nobody@example.com").error, NotFound)
