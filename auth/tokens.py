"""
auth/tokens.py -- JWT, password hashing, and session cookie utilities.

Security design decisions:
  JWT: python-jose with HS256. Tokens are signed with SECRET_KEY and carry
       user_id, the identity name (sub), a token type (access/refresh) and
       expiry. Verification returns None on any failure -- the gateway turns
       that into a 401.

  Token types: access tokens authenticate requests; refresh tokens only buy a
       new token pair at POST /refresh. Each decoder rejects the other type so
       a long-lived refresh token can never be replayed as a session.

  Passwords: bcrypt. The _DUMMY_HASH constant enables timing equalization in
       authenticate_user() so response time does not reveal whether a username
       exists [C1].

  Cookie: the access token doubles as the session cookie for browser clients
       (POST /login?useCookies=true). SameSite and Secure come from Settings.

Layer rule: no imports from api/ or books/. Import from core/ is allowed.
"""

from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import TYPE_CHECKING

import bcrypt
from jose import JWTError, jwt

from core.config import get_settings

if TYPE_CHECKING:
    from auth.models import User
    from auth.store import UserStore

logger = logging.getLogger("booknest.auth")

# ---------------------------------------------------------------------------
# Config -- read once at module load via the lru_cache singleton [M6]
# ---------------------------------------------------------------------------

_settings = get_settings()

_ALGORITHM = "HS256"

AUTH_COOKIE = "access_token"

_ACCESS = "access"
_REFRESH = "refresh"

# ---------------------------------------------------------------------------
# Password hashing (bcrypt -- direct usage, no passlib wrapper)
# ---------------------------------------------------------------------------


def hash_password(plain: str) -> str:
    """Return a bcrypt hash of the given plaintext password.

    bcrypt only looks at the first 72 bytes. The API layer caps passwords at
    128 characters (Pydantic field).
    """
    return bcrypt.hashpw(plain.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain: str, hashed: str) -> bool:
    """Return True if the plaintext password matches the bcrypt hash."""
    try:
        return bcrypt.checkpw(plain.encode("utf-8"), hashed.encode("utf-8"))
    except ValueError:
        return False


# Timing equalization dummy hash [C1].
# Always call verify_password() even when the username does not exist.
_DUMMY_HASH: str = hash_password("booknest_timing_dummy")


# ---------------------------------------------------------------------------
# JWT encode / decode
# ---------------------------------------------------------------------------


def _encode(user_id: int, username: str, token_type: str, duration: int) -> str:
    expire = datetime.now(timezone.utc) + timedelta(seconds=duration)
    payload = {
        "sub": username,
        "user_id": user_id,
        "typ": token_type,
        "exp": expire,
    }
    return jwt.encode(payload, _settings.secret_key, algorithm=_ALGORITHM)


def _decode(token: str, token_type: str) -> dict | None:
    try:
        payload = jwt.decode(token, _settings.secret_key, algorithms=[_ALGORITHM])
    except JWTError:
        return None
    if payload.get("typ") != token_type or "user_id" not in payload or not payload.get("sub"):
        return None
    return payload


def create_access_token(user_id: int, username: str, expire_seconds: int = 0) -> str:
    """Encode a signed access JWT for the given identity.

    Args:
        user_id:        Numeric user ID stored in the DB.
        username:       Identity name stored as the JWT subject claim.
        expire_seconds: Lifetime in seconds. If 0 (default), uses
                        Settings.token_expire_seconds.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    return _encode(user_id, username, _ACCESS, duration)


def create_refresh_token(user_id: int, username: str) -> str:
    """Encode a signed refresh JWT valid for Settings.refresh_expire_seconds."""
    return _encode(user_id, username, _REFRESH, _settings.refresh_expire_seconds)


def decode_access_token(token: str) -> dict | None:
    """Decode and verify an access JWT. Returns the payload dict or None on any failure."""
    return _decode(token, _ACCESS)


def decode_refresh_token(token: str) -> dict | None:
    """Decode and verify a refresh JWT. Returns the payload dict or None on any failure."""
    return _decode(token, _REFRESH)


# ---------------------------------------------------------------------------
# User authentication (constant-time) [C1]
# ---------------------------------------------------------------------------


def authenticate_user(store: UserStore, username: str, password: str) -> User | None:
    """Authenticate a username/password login with timing equalization.

    Always runs bcrypt whether or not the user exists:
    - Unknown username: bcrypt runs against _DUMMY_HASH (same cost as real check)
    - Wrong password: bcrypt runs against the real hash (same cost)

    Returns the User on success, None on any failure. Deactivated users still
    pass here; the route decides how to report them.
    """
    user = store.get_by_username(username)
    if user is None:
        verify_password(password, _DUMMY_HASH)
        return None
    if not verify_password(password, user.hashed_password):
        return None
    return user


# ---------------------------------------------------------------------------
# Cookie helpers
# ---------------------------------------------------------------------------


def set_auth_cookie(response, token: str, expire_seconds: int = 0) -> None:
    """Write the access token as an httpOnly session cookie on the response.

    httponly=True: JS cannot read the cookie (XSS mitigation).
    samesite/secure: from Settings; the defaults (none + secure) let the SPA on
        CORS_ORIGIN send the cookie cross-site over HTTPS.
    max_age: matches the JWT expiry so both expire together.
    """
    duration = expire_seconds if expire_seconds > 0 else _settings.token_expire_seconds
    response.set_cookie(
        AUTH_COOKIE,
        value=token,
        httponly=True,
        samesite=_settings.cookie_samesite,
        secure=_settings.secure_cookies,
        max_age=duration,
    )


def clear_auth_cookie(response) -> None:
    """Expire the session cookie. Attributes must match set_auth_cookie() or browsers keep it."""
    response.delete_cookie(
        AUTH_COOKIE,
        httponly=True,
        samesite=_settings.cookie_samesite,
        secure=_settings.secure_cookies,
    )
