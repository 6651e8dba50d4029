"""Bearer tokens identifying a registered wallet."""
from datetime import datetime, timedelta, timezone
from typing import Any

from jose import JWTError, jwt

from tutor_market.config import settings


def create_access_token(wallet: str, expires_delta: timedelta | None = None) -> str:
    """Encode a token whose 'sub' is the wallet address."""
    expire = datetime.now(timezone.utc) + (expires_delta or timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES))
    to_encode: dict[str, Any] = {"sub": wallet, "exp": expire}
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_wallet(token: str) -> str | None:
    """Return the wallet from a valid token, or None if invalid/expired."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])
    except JWTError:
        return None
    wallet = payload.get("sub")
    return wallet if isinstance(wallet, str) and wallet else None
