"""Authentication layer for the ideagen API.

Token-based auth against the users configured in ``AUTH_USERS``.
Tokens are stored in-memory and expire after TOKEN_TTL_SECONDS. The
username doubles as the owner id for sessions, ideas and usage.
"""

import hashlib
import hmac
import logging
import secrets
import time
from typing import Optional

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from ideagen.config import get_settings

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Password hashing
# ---------------------------------------------------------------------------
_SALT = secrets.token_hex(8)


def _hash_pw(password: str) -> str:
    return hashlib.sha256(f"{_SALT}:{password}".encode()).hexdigest()


# ---------------------------------------------------------------------------
# Credential store  (username -> password_hash)
# ---------------------------------------------------------------------------
def _load_users() -> dict[str, dict]:
    return {
        name: {"password_hash": _hash_pw(password), "display_name": name}
        for name, password in get_settings().auth_user_map.items()
    }


USERS: dict[str, dict] = _load_users()

# ---------------------------------------------------------------------------
# Token store  (token -> {username, display_name, created_at})
# ---------------------------------------------------------------------------
TOKEN_TTL_SECONDS = 24 * 60 * 60  # 24 hours
_tokens: dict[str, dict] = {}

_bearer_scheme = HTTPBearer(auto_error=False)


def authenticate(username: str, password: str) -> Optional[dict]:
    """Verify credentials and return a login dict, or None on failure."""
    user = USERS.get(username.lower())
    if not user:
        return None
    if not hmac.compare_digest(user["password_hash"], _hash_pw(password)):
        return None

    token = secrets.token_hex(32)
    login = {
        "token": token,
        "username": username.lower(),
        "display_name": user["display_name"],
        "created_at": time.time(),
    }
    _tokens[token] = login
    logger.info("User '%s' authenticated", username)
    return login


def _prune_expired():
    now = time.time()
    expired = [t for t, s in _tokens.items() if now - s["created_at"] > TOKEN_TTL_SECONDS]
    for t in expired:
        del _tokens[t]


def validate_token(token: str) -> Optional[dict]:
    """Return login dict if valid, else None."""
    _prune_expired()
    return _tokens.get(token)


def revoke_token(token: str) -> bool:
    """Revoke (logout) a token. Returns True if it existed."""
    return _tokens.pop(token, None) is not None


# ---------------------------------------------------------------------------
# FastAPI dependency: require auth on protected routes
# ---------------------------------------------------------------------------
PUBLIC_PATHS = {
    "/health",
    "/api/health",
    "/api/",
    "/api/docs",
    "/api/redoc",
    "/api/openapi.json",
    "/api/auth/login",
}


async def require_auth(
    request: Request,
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(_bearer_scheme),
) -> dict:
    """FastAPI dependency: extract and validate bearer token.

    Returns the login dict on success, raises 401 otherwise.
    """
    if not credentials or not credentials.credentials:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )

    login = validate_token(credentials.credentials)
    if not login:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return login


def current_owner(login: dict = Depends(require_auth)) -> str:
    return login["username"]
