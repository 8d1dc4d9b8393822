from datetime import UTC, datetime, timedelta
from typing import Any

from jose import JWTError, jwt

from storefront.core.config import get_settings

settings = get_settings()

ADMIN_ROLE = "admin"


def create_access_token(subject: str, *, role: str = ADMIN_ROLE) -> str:
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    payload: dict[str, Any] = {"sub": subject, "role": role, "exp": expire}
    return jwt.encode(payload, settings.secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> dict[str, Any]:
    try:
        return jwt.decode(
            token,
            settings.secret_key,
            algorithms=[settings.jwt_algorithm],
        )
    except JWTError as exc:
        raise ValueError("Invalid token") from exc
