from datetime import datetime, timedelta, timezone
from uuid import uuid4

import bcrypt
from jose import JWTError, jwt

from app.core.config import settings

ALGORITHM = "HS256"
ACCESS_TOKEN_TYPE = "access"
BCRYPT_MAX_BYTES = 72

_REQUIRED_CLAIMS = (
    ("sub", "Invalid token subject"),
    ("jti", "Invalid token id"),
    ("exp", "Invalid token expiration"),
)


class TokenValidationError(ValueError):
    pass


def _password_bytes(password: str) -> bytes:
    # bcrypt ignores everything past 72 bytes; schemas reject longer passwords.
    return password.encode("utf-8")[:BCRYPT_MAX_BYTES]


def hash_password(password: str) -> str:
    return bcrypt.hashpw(_password_bytes(password), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, hashed: str) -> bool:
    try:
        return bcrypt.checkpw(_password_bytes(password), hashed.encode("utf-8"))
    except ValueError:
        # Malformed stored hash.
        return False


def create_token(
    subject: str,
    expires_delta: timedelta,
    token_type: str,
    extra_claims: dict | None = None,
) -> str:
    issued_at = datetime.now(timezone.utc)
    claims = dict(extra_claims or {})
    claims.update(
        sub=subject,
        type=token_type,
        jti=uuid4().hex,
        iat=int(issued_at.timestamp()),
        exp=int((issued_at + expires_delta).timestamp()),
    )
    return jwt.encode(claims, settings.secret_key, algorithm=ALGORITHM)


def decode_token(token: str, *, expected_type: str | None = None) -> dict:
    try:
        claims = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
    except JWTError as exc:
        raise TokenValidationError("Invalid token") from exc

    for claim, message in _REQUIRED_CLAIMS:
        if not claims.get(claim):
            raise TokenValidationError(message)
    if expected_type and claims.get("type") != expected_type:
        raise TokenValidationError("Invalid token type")
    return claims


def create_access_token(user_id: str, *, email: str | None = None, name: str | None = None) -> str:
    profile = {key: value for key, value in (("email", email), ("name", name)) if value}
    return create_token(
        subject=user_id,
        expires_delta=timedelta(minutes=settings.access_token_expire_minutes),
        token_type=ACCESS_TOKEN_TYPE,
        extra_claims=profile,
    )
