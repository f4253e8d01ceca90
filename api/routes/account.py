"""
api/routes/account.py -- Session sign-out and the identity echo endpoint.

Routes:
  POST /api/account/signout  -- clear the session cookie; 200 (no auth needed)
  GET  /hello                -- caller's identity name as text/plain (auth required)
"""

import logging

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse

from api.models import MessageResponse
from auth.dependencies import get_identity_name, try_get_current_user
from auth.tokens import clear_auth_cookie

logger = logging.getLogger("booknest.auth")

router = APIRouter()


@router.post("/api/account/signout", response_model=MessageResponse)
def signout(request: Request) -> JSONResponse:
    """End the cookie session. Bearer tokens stay valid until they expire."""
    user = try_get_current_user(request)
    if user is not None:
        logger.info("User %s signed out", user.username)
    resp = JSONResponse(content=MessageResponse(message="Signed out.").model_dump())
    clear_auth_cookie(resp)
    return resp


@router.get("/hello", response_class=PlainTextResponse)
def hello(identity: str = Depends(get_identity_name)) -> str:
    """Return the caller's identity name as plain text."""
    return identity
