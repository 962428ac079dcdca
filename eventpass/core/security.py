"""
Bearer token validation for organizer endpoints.

Sign-in happens at the external identity provider; this service only checks
the signature and audience of the access token it issued and uses the `sub`
claim as the organizer id.
"""

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from jose import JWTError, jwt

from eventpass.core.config import get_settings
from eventpass.core.logging import get_logger

logger = get_logger(__name__)
bearer_scheme = HTTPBearer(auto_error=False)


def decode_access_token(token: str) -> dict:
    settings = get_settings()
    return jwt.decode(
        token,
        settings.AUTH_JWT_SECRET,
        algorithms=[settings.AUTH_JWT_ALGORITHM],
        audience=settings.AUTH_JWT_AUDIENCE,
    )


def create_access_token(subject: str) -> str:
    """Mint a token the way the identity provider does. Used by tests and local tooling."""
    settings = get_settings()
    claims = {"sub": subject, "aud": settings.AUTH_JWT_AUDIENCE}
    return jwt.encode(claims, settings.AUTH_JWT_SECRET, algorithm=settings.AUTH_JWT_ALGORITHM)


async def get_current_user_id(
    credentials: HTTPAuthorizationCredentials = Depends(bearer_scheme),
) -> str:
    unauthorized = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise unauthorized

    try:
        claims = decode_access_token(credentials.credentials)
    except JWTError as e:
        logger.warning("token_rejected", error=str(e))
        raise unauthorized

    subject = claims.get("sub")
    if not subject:
        raise unauthorized
    return str(subject)
