"""
api/routes/v1/auth.py -- Account and session endpoints.

Routes:
  POST /signup       -- create a local account; returns a session
  POST /signin       -- password login; returns a session
  POST /google-auth  -- Google ID token login; creates the account on first use

All three return the same session payload:
  {"access_token", "profile_img", "username", "fullname"}

The routes are thin: every rule (validation, one-identity-per-email, method
segregation) lives in auth/reconciler.py. Failures arrive as InkwellError and
are rendered by the handler in api/main.py.

Security:
  Cache-Control: no-store on every response that carries a token.
"""

from __future__ import annotations

from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from api.models import GoogleAuthRequest, SessionResponse, SigninRequest, SignupRequest
from auth.models import Session
from auth.reconciler import AccountReconciler

# Auth policy: all three endpoints are public -- they are how a caller gets a token.
router = APIRouter()


@router.post("/signup", response_model=SessionResponse)
async def signup(request: Request, body: SignupRequest) -> JSONResponse:
    """Create a local account and sign it in."""
    reconciler: AccountReconciler = request.app.state.reconciler
    session = await reconciler.signup(body.fullname, body.email, body.password)
    return _session_response(session)


@router.post("/signin", response_model=SessionResponse)
async def signin(request: Request, body: SigninRequest) -> JSONResponse:
    """Sign in to a local account with email and password."""
    reconciler: AccountReconciler = request.app.state.reconciler
    session = await reconciler.signin(body.email, body.password)
    return _session_response(session)


@router.post("/google-auth", response_model=SessionResponse)
async def google_auth(request: Request, body: GoogleAuthRequest) -> JSONResponse:
    """Sign in with a Google ID token, creating the account on first login."""
    reconciler: AccountReconciler = request.app.state.reconciler
    session = await reconciler.federated_login(body.access_token)
    return _session_response(session)


def _session_response(session: Session) -> JSONResponse:
    resp = JSONResponse(status_code=200, content=SessionResponse(**session.to_dict()).model_dump())
    resp.headers["Cache-Control"] = "no-store"
    return resp
