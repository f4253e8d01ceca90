"""
api/routes/identity.py -- Identity endpoint group (registration, login, tokens).

Routes (mounted at the application root):
  POST /register                 -- create an account; 200 empty body
  POST /login?useCookies=bool    -- password login; cookie session or bearer token pair
  POST /refresh                  -- trade a refresh token for a new token pair
  GET  /manage/info              -- identity info for the caller (requires auth)
  POST /manage/info              -- change the caller's password (requires auth)

Security:
  [H2] POST /login is rate-limited per client IP (Settings.login_rate_limit).
  [C1] authenticate_user() provides timing equalization -- use it, never inline.
  [M5] Cache-Control: no-store on every response that carries a credential.
  Unknown username and wrong password return the same bad_credentials error.
"""

from __future__ import annotations

import logging
import re

from fastapi import APIRouter, Depends, HTTPException, Query, Request, Response
from fastapi.responses import JSONResponse
from sqlalchemy.exc import IntegrityError

from api.limiter import limiter
from api.models import (
    AccessTokenResponse,
    ErrorDetail,
    InfoResponse,
    LoginRequest,
    ManageInfoRequest,
    RefreshRequest,
    RegisterRequest,
)
from auth.dependencies import get_current_user
from auth.models import User
from auth.store import UserStore
from auth.tokens import (
    authenticate_user,
    create_access_token,
    create_refresh_token,
    decode_refresh_token,
    hash_password,
    set_auth_cookie,
    verify_password,
)
from core.config import get_settings

logger = logging.getLogger("booknest.auth")

# Auth policy:
# - POST /register:     public
# - POST /login:        public, rate limited
# - POST /refresh:      public -- the refresh token is the credential
# - GET  /manage/info:  requires auth (get_current_user)
# - POST /manage/info:  requires auth (get_current_user) and the old password
router = APIRouter()

_settings = get_settings()

_PASSWORD_MIN_LENGTH = 8


def password_problems(password: str) -> list[str]:
    """Return the password policy rules this password breaks (empty if it passes)."""
    problems = []
    if len(password) < _PASSWORD_MIN_LENGTH:
        problems.append(f"Passwords must be at least {_PASSWORD_MIN_LENGTH} characters.")
    if not re.search(r"\d", password):
        problems.append("Passwords must have at least one digit ('0'-'9').")
    if not re.search(r"[a-z]", password):
        problems.append("Passwords must have at least one lowercase ('a'-'z').")
    if not re.search(r"[A-Z]", password):
        problems.append("Passwords must have at least one uppercase ('A'-'Z').")
    if not re.search(r"[^a-zA-Z0-9]", password):
        problems.append("Passwords must have at least one non alphanumeric character.")
    return problems


def _check_password_policy(password: str) -> None:
    problems = password_problems(password)
    if problems:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="invalid_password",
                message="Password does not meet the policy.",
                detail=" ".join(problems),
            ).model_dump(),
        )


def _token_response(user: User) -> JSONResponse:
    body = AccessTokenResponse(
        access_token=create_access_token(user.id, user.username),
        expires_in=_settings.token_expire_seconds,
        refresh_token=create_refresh_token(user.id, user.username),
    )
    resp = JSONResponse(status_code=200, content=body.model_dump(by_alias=True))
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


def _unauthorized(code: str, message: str) -> JSONResponse:
    resp = JSONResponse(status_code=401, content={"error": {"code": code, "message": message}})
    resp.headers["Cache-Control"] = "no-store"  # [M5]
    return resp


# ---------------------------------------------------------------------------
# Public endpoints
# ---------------------------------------------------------------------------


@router.post("/register")
def register(request: Request, body: RegisterRequest) -> Response:
    """Create a local account. The email address becomes the identity name."""
    _check_password_policy(body.password)

    user_store: UserStore = request.app.state.user_store
    try:
        user_store.create_user(User(username=body.email, hashed_password=hash_password(body.password)))
    except IntegrityError as exc:
        raise HTTPException(
            status_code=400,
            detail=ErrorDetail(
                code="duplicate_user",
                message=f"Username '{body.email}' is already taken.",
            ).model_dump(),
        ) from exc

    logger.info("Registered user %s", body.email)
    return Response(status_code=200)


@router.post("/login")
@limiter.limit(_settings.login_rate_limit)  # [H2]
def login(
    request: Request,
    body: LoginRequest,
    use_cookies: bool = Query(default=False, alias="useCookies"),
) -> Response:
    """Authenticate with email and password.

    useCookies=true sets the httpOnly session cookie and returns an empty 200.
    Otherwise the body carries a bearer token pair for API clients.
    """
    user_store: UserStore = request.app.state.user_store
    user = authenticate_user(user_store, body.email, body.password)
    if user is None:
        logger.info("Failed login for %s", body.email)
        return _unauthorized("bad_credentials", "Invalid username or password.")
    if not user.is_active:
        logger.info("Login refused for disabled account %s", user.username)
        return _unauthorized("account_disabled", "Account is disabled.")

    user_store.update_last_login(user.id)
    logger.info("User %s logged in (cookie=%s)", user.username, use_cookies)

    if use_cookies:
        resp = Response(status_code=200)
        set_auth_cookie(resp, create_access_token(user.id, user.username))
        resp.headers["Cache-Control"] = "no-store"  # [M5]
        return resp
    return _token_response(user)


@router.post("/refresh")
def refresh(request: Request, body: RefreshRequest) -> Response:
    """Issue a fresh token pair for a valid refresh token of an active account."""
    payload = decode_refresh_token(body.refresh_token)
    if payload is None:
        return _unauthorized("invalid_token", "Refresh token is invalid or expired.")
    user_store: UserStore = request.app.state.user_store
    user = user_store.get_by_id(payload["user_id"])
    if user is None or user.username != payload["sub"] or not user.is_active:
        return _unauthorized("invalid_token", "Refresh token is invalid or expired.")
    return _token_response(user)


# ---------------------------------------------------------------------------
# Authenticated endpoints
# ---------------------------------------------------------------------------


@router.get("/manage/info", response_model=InfoResponse)
def manage_info(current_user: User = Depends(get_current_user)) -> InfoResponse:
    """Return identity information for the currently authenticated user."""
    return InfoResponse(email=current_user.username)


@router.post("/manage/info", response_model=InfoResponse)
def update_info(
    request: Request,
    body: ManageInfoRequest,
    current_user: User = Depends(get_current_user),
) -> InfoResponse:
    """Change the caller's password. The old password must be supplied and correct.

    A body without newPassword changes nothing and returns the current info.
    Issued tokens stay valid until they expire.
    """
    if body.new_password is not None:
        if not body.old_password or not verify_password(body.old_password, current_user.hashed_password):
            raise HTTPException(
                status_code=400,
                detail=ErrorDetail(
                    code="invalid_old_password",
                    message="The old password is missing or incorrect.",
                ).model_dump(),
            )
        _check_password_policy(body.new_password)
        user_store: UserStore = request.app.state.user_store
        user_store.update_user(current_user.id, hashed_password=hash_password(body.new_password))
        logger.info("Password changed for %s", current_user.username)
    return InfoResponse(email=current_user.username)
