import os
from datetime import UTC, datetime, timedelta
from typing import Any, cast

from jose import jwt

# Tokens are issued by the identity provider and signed with its project secret.
SECRET_KEY = os.environ.get("PATCHOULI_JWT_SECRET", "dev-secret-unsafe")
ALGORITHM = "HS256"


def create_access_token(
    data: dict[str, Any],
    expires_delta: timedelta | None = None,
    now_utc: datetime | None = None,
    secret: str | None = None,
) -> str:
    """
    Create a JWT access token the way the identity provider does.

    Used by the CLI and tests; production tokens come from the provider.
    """
    to_encode = data.copy()
    current_time = now_utc if now_utc is not None else datetime.now(UTC)

    if expires_delta:
        expire = current_time + expires_delta
    else:
        expire = current_time + timedelta(minutes=15)

    to_encode.update({"exp": expire})
    encoded_jwt: str = jwt.encode(to_encode, secret or SECRET_KEY, algorithm=ALGORITHM)
    return encoded_jwt


def decode_access_token(token: str, secret: str | None = None) -> dict[str, Any] | None:
    try:
        payload = jwt.decode(
            token,
            secret or SECRET_KEY,
            algorithms=[ALGORITHM],
            # Provider tokens carry an "authenticated" audience we do not pin.
            options={"verify_aud": False},
        )
        return cast(dict[str, Any], payload)
    except jwt.JWTError:
        return None
