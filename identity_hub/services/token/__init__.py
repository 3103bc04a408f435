"""Issue, persist and verify bearer tokens.

Access tokens are self-contained and never stored. Refresh, reset-password
and verify-email tokens are only valid while a matching, non-blacklisted
record exists in the `tokens` collection.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from uuid import uuid4

from jose import JWTError, jwt
from mongoengine import OperationError, ValidationError
from pymongo.errors import PyMongoError

from identity_hub.models.token import Token
from identity_hub.models.user import User
from identity_hub.utils.base import Err, Ok, Result, TokenType, as_utc, to_query_datetime, utcnow
from identity_hub.utils.config import settings
from identity_hub.utils.errors import InternalError, NotFound, TokenNotFound, Unauthorized
from identity_hub.utils.logging import get_logger


logger = get_logger(__name__)


def generate_token(user_id: str, expires: datetime, token_type: TokenType, secret: str | None = None,
                   issued_at: datetime | None = None, token_id: str | None = None) -> str:
    """Create a signed JWT with subject, issued-at, expiry and type.

    Deterministic for identical inputs; `token_id` adds a `jti` claim so two
    tokens issued in the same second differ.
    """
    issued_at = issued_at or utcnow()
    payload = {
        "sub": user_id,
        "iat": int(issued_at.timestamp()),
        "exp": int(expires.timestamp()),
        "type": token_type.value,
    }
    if token_id:
        payload["jti"] = token_id
    return jwt.encode(payload, secret or settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_token(token: str, secret: str | None = None) -> dict:
    """Verify signature and expiry; raises JWTError on failure."""
    return jwt.decode(token, secret or settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])


def save_token(token: str, user_id: str, expires: datetime, token_type: TokenType, blacklisted: bool = False) -> Token:
    record = Token(token=token, user=user_id, expires=to_query_datetime(expires), type=token_type.value, blacklisted=blacklisted)
    record.save()
    return record


def verify_token(token: str, token_type: TokenType, secret: str | None = None) -> Result[Token]:
    """Valid only with a correct signature AND a live persisted record."""
    try:
        payload = decode_token(token, secret)
    except JWTError:
        return Err(Unauthorized("Invalid or expired token."))

    if payload.get("type") != token_type.value:
        return Err(Unauthorized("Invalid token type."))

    record: Token | None = Token.objects(
        token=token,
        type=token_type.value,
        user=payload.get("sub"),
        blacklisted=False,
    ).first()
    if not record:
        return Err(TokenNotFound("Token not found."))
    if as_utc(record.expires) <= utcnow():
        return Err(TokenNotFound("Token expired."))
    return Ok(record)


def generate_auth_tokens(user: User) -> Result[dict]:
    """Issue an access/refresh pair; failures come back as Err, never raised."""
    try:
        now = utcnow()
        access_expires = now + timedelta(minutes=settings.access_token_expires_minutes)
        access_token = generate_token(user.uid, access_expires, TokenType.ACCESS, issued_at=now, token_id=uuid4().hex)

        refresh_expires = now + timedelta(days=settings.refresh_token_expires_days)
        refresh_token = generate_token(user.uid, refresh_expires, TokenType.REFRESH, issued_at=now, token_id=uuid4().hex)
        save_token(refresh_token, user.uid, refresh_expires, TokenType.REFRESH)
    except (JWTError, OperationError, ValidationError, PyMongoError) as exc:
        logger.error("auth_token_generation_failed", user=user.uid, error=str(exc))
        return Err(InternalError("Failed to generate authentication tokens."))

    return Ok({
        "access": {"token": access_token, "expires": access_expires},
        "refresh": {"token": refresh_token, "expires": refresh_expires},
    })


def generate_reset_password_token(email: str) -> Result[str]:
    user: User | None = User.find_by_email(email)
    if not user:
        return Err(NotFound("No users found with this email."))

    expires = utcnow() + timedelta(minutes=settings.reset_password_token_expires_minutes)
    token = generate_token(user.uid, expires, TokenType.RESET_PASSWORD)
    save_token(token, user.uid, expires, TokenType.RESET_PASSWORD)
    return Ok(token)


def generate_verify_email_token(user_id: str) -> Result[str]:
    if not User.objects(uid=user_id).first():
        return Err(NotFound("User not found."))

    expires = utcnow() + timedelta(minutes=settings.verify_email_token_expires_minutes)
    token = generate_token(user_id, expires, TokenType.VERIFY_EMAIL)
    save_token(token, user_id, expires, TokenType.VERIFY_EMAIL)
    return Ok(token)


def blacklist_token(token: str) -> Result[int]:
    updated = Token.objects(token=token, blacklisted=False).update(set__blacklisted=True)
    if not updated:
        return Err(TokenNotFound("Token not found."))
    return Ok(updated)


def purge_expired_tokens(now: datetime | None = None) -> int:
    """Delete every persisted token whose expiry has passed."""
    cutoff = to_query_datetime(now or utcnow())
    deleted = Token.objects(expires__lt=cutoff).delete()
    logger.info("expired_tokens_purged", count=deleted)
    return deleted
