from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from starlette.concurrency import run_in_threadpool
from supabase import Client

from rectrack.app.deps import (
    VISITOR_SESSION_HEADER,
    CurrentUser,
    build_facade,
    get_access_token,
    get_auth_gateway,
    get_current_user,
    get_query_cache,
    get_supabase,
    get_visitor_registry,
)
from rectrack.app.domain.errors import AuthenticationError
from rectrack.app.infra.auth.supabase_auth import AuthSession, SupabaseAuthGateway
from rectrack.app.schemas.auth import (
    AuthUserResponse,
    LoginRequest,
    RegisterRequest,
    SessionResponse,
    TransferSummary,
)
from rectrack.app.services.query_cache import QueryCache
from rectrack.app.services.session_oracle import SessionOracle
from rectrack.app.services.transfer import transfer_visitor_recommendations
from rectrack.app.services.visitor_store import VisitorSessionRegistry, is_valid_session_id

log = logging.getLogger("auth")
router = APIRouter(prefix="/auth", tags=["auth"])


def _session_response(session: AuthSession, transfer: Optional[TransferSummary] = None) -> SessionResponse:
    return SessionResponse(
        user=AuthUserResponse(id=session.user.id, email=session.user.email, name=session.user.name),
        accessToken=session.access_token,
        refreshToken=session.refresh_token,
        transfer=transfer,
    )


@router.get("/me", response_model=CurrentUser)
async def me(user: CurrentUser = Depends(get_current_user)):
    return user


@router.post("/register", response_model=SessionResponse, status_code=status.HTTP_201_CREATED)
async def register(
    payload: RegisterRequest,
    request: Request,
    gateway: SupabaseAuthGateway = Depends(get_auth_gateway),
    supa: Client = Depends(get_supabase),
    registry: VisitorSessionRegistry = Depends(get_visitor_registry),
    cache: QueryCache = Depends(get_query_cache),
) -> SessionResponse:
    try:
        session = await run_in_threadpool(gateway.sign_up, payload.email, payload.password, payload.name)
    except AuthenticationError as exc:
        raise HTTPException(status_code=400, detail=str(exc))

    visitor_session_id = request.headers.get(VISITOR_SESSION_HEADER)
    if not session.is_established or not visitor_session_id or not is_valid_session_id(visitor_session_id):
        return _session_response(session)

    # registration already succeeded; the transfer can only degrade to a warning
    summary: Optional[TransferSummary] = None
    try:
        oracle = SessionOracle(gateway, session.access_token)
        account = build_facade(supa, oracle, None)
        report = await transfer_visitor_recommendations(
            registry.get_or_create(visitor_session_id),
            account,
            cache,
            f"user:{session.user.id}",
        )
        summary = TransferSummary.from_report(report)
        registry.discard(visitor_session_id)
        cache.invalidate_all(f"visitor:{visitor_session_id}")
    except Exception:
        log.exception("Visitor transfer failed: user=%s, visitor=%s", session.user.id, visitor_session_id)

    return _session_response(session, summary)


@router.post("/login", response_model=SessionResponse)
async def login(
    payload: LoginRequest,
    gateway: SupabaseAuthGateway = Depends(get_auth_gateway),
) -> SessionResponse:
    try:
        session = await run_in_threadpool(gateway.sign_in, payload.email, payload.password)
    except AuthenticationError as exc:
        raise HTTPException(status_code=401, detail=str(exc))
    return _session_response(session)


@router.post("/logout", status_code=status.HTTP_204_NO_CONTENT)
async def logout(
    token: Optional[str] = Depends(get_access_token),
    gateway: SupabaseAuthGateway = Depends(get_auth_gateway),
) -> Response:
    if token:
        await run_in_threadpool(gateway.sign_out, token)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
