"""Account endpoints — sign up, sign in, session lookup, sign out."""

from __future__ import annotations

import logging
from typing import Any

from fastapi import APIRouter, Depends, HTTPException

from .. import auth
from ..auth import AuthContext, current_auth, require_owner
from ..helpers import iso
from ..models import SignInRequest, SignUpRequest
from ..store import HospitalStore, get_store
from . import store_errors

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/api/auth/signup", status_code=201)
async def signup(
    req: SignUpRequest,
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Create a hospital-owner account."""
    try:
        with store_errors():
            account = auth.sign_up(store, req.email, req.password)
    except auth.WeakPassword as e:
        raise HTTPException(status_code=422, detail=str(e))
    return {"data": {"account_id": account.id, "email": account.email}}


@router.post("/api/auth/signin")
async def signin(
    req: SignInRequest,
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    """Exchange email + password for a bearer session token."""
    try:
        with store_errors():
            session = auth.sign_in(store, req.email, req.password)
    except auth.InvalidCredentials as e:
        raise HTTPException(
            status_code=401,
            detail=str(e),
            headers={"WWW-Authenticate": "Bearer"},
        )
    return {
        "data": {
            "token": session.token,
            "token_type": "bearer",
            "account_id": session.account_id,
            "email": session.email,
            "expires_at": iso(session.expires_at),
        }
    }


@router.get("/api/auth/session")
async def session(ctx: AuthContext = Depends(current_auth)) -> dict[str, Any]:
    """Current session, or null for anonymous callers."""
    if not ctx.is_authenticated:
        return {"data": None}
    return {"data": {"account_id": ctx.account_id, "email": ctx.email}}


@router.post("/api/auth/signout")
async def signout(
    ctx: AuthContext = Depends(require_owner()),
    store: HospitalStore = Depends(get_store),
) -> dict[str, Any]:
    with store_errors():
        auth.sign_out(store, ctx.token)
    return {"success": True}
