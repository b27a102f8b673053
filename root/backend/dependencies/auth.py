# ABOUTME: JWT token verification dependency for FastAPI endpoints
# ABOUTME: Validates Supabase Auth tokens, admin API keys and user ownership of request ids

import os
import jwt
import logging
from typing import Optional, Dict, Any
from fastapi import Depends, Header, HTTPException, status
from fastapi.security import HTTPBearer, HTTPAuthorizationCredentials

from backend.config.settings import get_admin_api_key

logger = logging.getLogger(__name__)

# Standard security (requires auth, returns 403 if missing)
security = HTTPBearer()

# Optional security (allows requests without auth header)
optional_security = HTTPBearer(auto_error=False)


def _decode_token(token: str) -> Dict[str, Any]:
    # Supabase signs access tokens with HS256 using the project JWT secret
    return jwt.decode(
        token,
        os.getenv("SUPABASE_JWT_SECRET"),
        algorithms=["HS256"],
        options={"verify_aud": False}
    )


async def get_current_user(credentials: HTTPAuthorizationCredentials = Depends(security)) -> Dict[str, Any]:
    """
    Dependency to validate Supabase JWT tokens.

    Returns:
        Decoded JWT payload containing user info

    Raises:
        HTTPException(401): If token is expired or invalid
        HTTPException(500): If there's an auth system error
    """
    try:
        return _decode_token(credentials.credentials)

    except jwt.ExpiredSignatureError:
        logger.debug("Token expired, returning 401")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Token expired",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except jwt.PyJWTError as e:
        logger.warning(f"Invalid token: {e}")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"Invalid token: {str(e)}",
            headers={"WWW-Authenticate": "Bearer"},
        )
    except Exception as e:
        logger.error(f"Auth system error: {e}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Authentication system error"
        )


async def get_optional_user(credentials: Optional[HTTPAuthorizationCredentials] = Depends(optional_security)) -> Optional[Dict[str, Any]]:
    """
    Dependency that attempts to validate token but returns None instead of 401 if invalid.

    Used for endpoints that can work with or without authentication.
    """
    if not credentials:
        return None

    try:
        return _decode_token(credentials.credentials)
    except Exception:
        return None


async def require_admin_api_key(x_api_key: Optional[str] = Header(default=None)) -> str:
    """Dependency guarding admin maintenance routes with the x-api-key header."""
    expected = get_admin_api_key()
    if not expected or x_api_key != expected:
        logger.warning("Rejected admin request with invalid API key")
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized: Invalid API key"
        )
    return x_api_key


def ensure_same_user(user: Optional[Dict[str, Any]], user_id: Optional[str]) -> None:
    """Reject requests whose token subject differs from the user id they act on."""
    if user and user_id and user.get("sub") != user_id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Forbidden: user mismatch"
        )
