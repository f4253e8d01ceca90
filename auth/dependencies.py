"""
auth/dependencies.py -- FastAPI Depends() helpers for the identity gateway.

Two credential sources are checked in priority order:
  1. Session cookie ("access_token") -- set by POST /login?useCookies=true.
  2. Authorization: Bearer <token> header -- set by API clients from the
     POST /login token response.

Both converge on a User object after successful verification.

try_get_current_user() is the soft variant (returns None on failure).
get_current_user() wraps it and raises HTTP 401 if unauthenticated, or
HTTP 403 if the token is valid but the account has been deactivated.
Neither ever redirects: API clients get a status code, not a login page.

Layer rule: no imports from api/ or books/.
  auth/dependencies.py may import from fastapi (for HTTPException/Request)
  because this module is part of the FastAPI dependency injection system.
"""

from __future__ import annotations

from fastapi import HTTPException, Request

from auth.models import User
from auth.tokens import AUTH_COOKIE, decode_access_token


def _resolve_user(request: Request) -> User | None:
    """Return the user the request's access token points at, active or not."""
    user_store = request.app.state.user_store

    # 1. Cookie (browser session)
    token: str | None = request.cookies.get(AUTH_COOKIE)

    # 2. Authorization: Bearer header (API clients)
    if not token:
        auth_header = request.headers.get("Authorization", "")
        if auth_header.startswith("Bearer "):
            token = auth_header[7:]

    if not token:
        return None
    payload = decode_access_token(token)
    if payload is None:
        return None
    user = user_store.get_by_id(payload["user_id"])
    # A token minted for a username that has since been replaced is stale.
    if user is None or user.username != payload["sub"]:
        return None
    return user


def try_get_current_user(request: Request) -> User | None:
    """Attempt to authenticate the request via cookie or Bearer token.

    Returns the authenticated, active User on success, None on any failure.
    Never raises -- callers that need a hard 401 should use get_current_user().
    """
    user = _resolve_user(request)
    if user is None or not user.is_active:
        return None
    return user


def get_current_user(request: Request) -> User:
    """Require authentication. Raises HTTP 401 without a session, HTTP 403 for a disabled account.

    Use as a FastAPI dependency:
        @router.get("/protected")
        def route(user: User = Depends(get_current_user)): ...
    """
    user = _resolve_user(request)
    if user is None:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    if not user.is_active:
        raise HTTPException(
            status_code=403,
            detail={"code": "forbidden", "message": "Account is disabled."},
        )
    return user


def get_identity_name(request: Request) -> str:
    """Return the caller's identity name, the ownership key for books.

    Raises HTTP 401 when the session carries no name, before any store access.
    """
    user = get_current_user(request)
    if not user.username:
        raise HTTPException(
            status_code=401,
            detail={"code": "unauthorized", "message": "Authentication required."},
        )
    return user.username
