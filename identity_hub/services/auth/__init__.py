from __future__ import annotations

from datetime import timedelta

from fastapi import Depends
from fastapi.security import OAuth2PasswordBearer
from jose import JWTError

from identity_hub.models.token import Token
from identity_hub.models.user import User, pwd_context
from identity_hub.services.email import Notifier, get_notifier
from identity_hub.services.token import (
    decode_token,
    generate_auth_tokens,
    generate_reset_password_token,
    generate_verify_email_token,
    verify_token,
)
from identity_hub.services.users import get_user_by_email
from identity_hub.services.validation import validate_password
from identity_hub.utils.base import Err, Ok, Result, TokenType, as_utc, to_query_datetime, utcnow
from identity_hub.utils.config import settings
from identity_hub.utils.errors import Forbidden, NotFound, Unauthorized
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)

oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/auth/login", auto_error=False)


def verify_password(plain: str, hashed: str) -> bool:
    """Verify plaintext password against a bcrypt hash."""
    return pwd_context.verify(plain, hashed)


def get_current_user(token: str | None = Depends(oauth2_scheme)) -> User:
    """Auth dependency that validates an access token and returns the user."""
    if not token:
        raise Unauthorized("Please authenticate.")
    try:
        payload = decode_token(token)
    except JWTError:
        raise Unauthorized("Please authenticate.")

    if payload.get("type") != TokenType.ACCESS.value or not payload.get("sub"):
        raise Unauthorized("Invalid token type.")

    user: User | None = User.objects(uid=payload["sub"]).first()
    if not user or not user.is_active:
        raise Unauthorized("Please authenticate.")
    return user


def _is_locked(user: User) -> bool:
    if not user.is_locked:
        return False
    lock_until = as_utc(user.lock_until)
    return lock_until is None or lock_until > utcnow()


def _register_failed_login(user: User, notifier: Notifier) -> None:
    remaining = max((user.login_attempts or 0) - 1, 0)
    user.login_attempts = remaining
    if remaining == 0:
        user.is_locked = True
        user.lock_until = utcnow() + timedelta(minutes=settings.account_lock_minutes)
    user.save()
    if remaining == 0:
        logger.warning("account_locked", user=user.uid, minutes=settings.account_lock_minutes)
        notifier.send_account_locked_email(user.name, user.email)


def _register_successful_login(user: User) -> None:
    if user.login_attempts == settings.maximum_login_attempts and not user.is_locked:
        return
    user.login_attempts = settings.maximum_login_attempts
    user.is_locked = False
    user.lock_until = None
    user.save()


def _check_active_sessions(user: User, notifier: Notifier) -> Result[None]:
    """Drop expired refresh tokens, then refuse a login that would exceed the session cap."""
    Token.objects(
        user=user.uid, type=TokenType.REFRESH.value, expires__lte=to_query_datetime(utcnow())
    ).delete()
    active = Token.objects(user=user.uid, type=TokenType.REFRESH.value, blacklisted=False).count()
    if active >= settings.max_active_sessions:
        notifier.send_maximum_active_session_email(user.name, user.email)
        return Err(Forbidden(
            f"Too many active sessions. Maximum {settings.max_active_sessions} sessions allowed at a time. "
            "Please logout from one of the active sessions."
        ))
    return Ok(None)


def login_with_email_and_password(email: str, password: str, notifier: Notifier | None = None) -> Result[User]:
    """Check credentials, counting failures towards a temporary lock and capping live sessions."""
    notifier = notifier or get_notifier()
    user: User | None = get_user_by_email(email)
    if not user:
        return Err(Unauthorized("Incorrect email or password."))
    if _is_locked(user):
        return Err(Forbidden("Account is locked. Please try again later."))
    if not user.is_active:
        return Err(Forbidden("Account is deactivated."))

    if not verify_password(password, user.password):
        _register_failed_login(user, notifier)
        if user.is_locked:
            return Err(Unauthorized("Account locked due to too many failed login attempts."))
        return Err(Unauthorized(f"Incorrect email or password. {user.login_attempts} attempts left."))

    _register_successful_login(user)
    sessions = _check_active_sessions(user, notifier)
    if isinstance(sessions, Err):
        return sessions
    return Ok(user, message="Login successful.")


def logout(refresh_token: str) -> Result[None]:
    record: Token | None = Token.objects(
        token=refresh_token, type=TokenType.REFRESH.value, blacklisted=False
    ).first()
    if not record:
        return Err(NotFound("Refresh token not found."))
    record.delete()
    return Ok(None, message="Logged out successfully.")


def refresh_auth(refresh_token: str) -> Result[dict]:
    """Rotate a refresh token: the presented record is consumed."""
    verified = verify_token(refresh_token, TokenType.REFRESH)
    if isinstance(verified, Err):
        return Err(Unauthorized("Please authenticate."))

    record = verified.value
    user: User | None = User.objects(uid=record.user).first()
    if not user:
        return Err(Unauthorized("Please authenticate."))

    record.delete()
    tokens = generate_auth_tokens(user)
    if isinstance(tokens, Err):
        return tokens
    return Ok(tokens.value, message="Tokens refreshed successfully.")


def forgot_password(email: str, notifier: Notifier | None = None) -> Result[None]:
    email = (email or "").strip().lower()
    issued = generate_reset_password_token(email)
    if isinstance(issued, Err):
        return issued
    (notifier or get_notifier()).send_reset_password_email(email, issued.value)
    return Ok(None, message="Reset password email sent.")


def reset_password(reset_password_token: str, new_password: str) -> Result[None]:
    verified = verify_token(reset_password_token, TokenType.RESET_PASSWORD)
    if isinstance(verified, Err):
        return Err(Unauthorized("Password reset failed."))

    checked = validate_password(new_password)
    if isinstance(checked, Err):
        return checked

    user: User | None = User.objects(uid=verified.value.user).first()
    if not user:
        return Err(Unauthorized("Password reset failed."))

    user.set_password(checked.value)
    user.updated_by = user.uid
    user.save()
    Token.objects(user=user.uid, type=TokenType.RESET_PASSWORD.value).delete()
    return Ok(None, message="Password reset successfully.")


def send_verification_email(user: User, notifier: Notifier | None = None) -> Result[None]:
    if user.is_email_verified:
        return Err(Forbidden("Email is already verified."))
    issued = generate_verify_email_token(user.uid)
    if isinstance(issued, Err):
        return issued
    (notifier or get_notifier()).send_verification_email(user.name, user.email, issued.value)
    return Ok(None, message="Verification email sent.")


def verify_email(verify_email_token: str) -> Result[None]:
    verified = verify_token(verify_email_token, TokenType.VERIFY_EMAIL)
    if isinstance(verified, Err):
        return Err(Unauthorized("Email verification failed."))

    user: User | None = User.objects(uid=verified.value.user).first()
    if not user:
        return Err(Unauthorized("Email verification failed."))

    Token.objects(user=user.uid, type=TokenType.VERIFY_EMAIL.value).delete()
    user.is_email_verified = True
    user.save()
    return Ok(None, message="Email verified successfully.")
