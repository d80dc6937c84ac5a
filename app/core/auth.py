# app/core/auth.py
from typing import Any

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials
from jose import jwt, JWTError

from app.core.config import get_settings
from app.models.user import Shopper

# HTTP Bearer scheme:
# - auto_error=False => missing Authorization header will NOT raise immediately
#   so public routes can still resolve a "guest".
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and verify a shopper access token (JWT).

    Verification:
      - signature (JWT_ALG using JWT_SECRET)
      - expiration time (exp)
      - audience is NOT verified (issuer-specific)

    Raises:
        HTTPException(401): if token is invalid/expired.
    """
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            settings.JWT_SECRET,
            algorithms=[settings.JWT_ALG],
            options={"verify_aud": False},
        )
    except JWTError:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
        )


def get_current_shopper(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
) -> Shopper | None:
    """
    Resolve the current shopper from the bearer token.

    Returns:
        Shopper if a valid token was sent, else None for guests.

    Raises:
        HTTPException(401): if the token is malformed or has no 'sub'.
    """
    if credentials is None:
        return None  # guest mode

    payload = decode_access_token(credentials.credentials)
    sub = payload.get("sub")
    if not sub:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token missing sub",
        )

    return Shopper(
        id=str(sub),
        email=payload.get("email"),
        token=credentials.credentials,
    )


def require_shopper(shopper: Shopper | None = Depends(get_current_shopper)) -> Shopper:
    """
    Enforce authentication for cart, wishlist and checkout routes.

    Raises:
        HTTPException(401): if no shopper token was provided.
    """
    if shopper is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Please sign in to continue",
        )
    return shopper
