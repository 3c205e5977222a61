from datetime import datetime, timedelta, timezone

import jwt

from medbook.core.config import JwtSettings


def create_access_token(
    subject: str,
    role: str,
    settings: JwtSettings,
    expires_minutes: int | None = None,
) -> str:
    expire_minutes = expires_minutes or settings.expires_minutes
    expire = datetime.now(timezone.utc) + timedelta(minutes=expire_minutes)
    payload = {"sub": subject, "role": role, "exp": expire, "iat": datetime.now(timezone.utc)}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.algorithm)


def decode_access_token(token: str, settings: JwtSettings) -> dict:
    return jwt.decode(token, settings.secret_key, algorithms=[settings.algorithm])
