from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status

from rectrack.app.config import settings
from rectrack.app.deps import (
    VISITOR_SESSION_HEADER,
    VisitorSession,
    get_query_cache,
    get_visitor_registry,
    get_visitor_session,
)
from rectrack.app.schemas.visitor import VisitorSessionResponse, VisitorStatus
from rectrack.app.services.query_cache import QueryCache
from rectrack.app.services.visitor_store import VisitorSessionRegistry, is_valid_session_id

router = APIRouter(prefix="/visitor", tags=["visitor"])


@router.post("/session", response_model=VisitorSessionResponse, status_code=status.HTTP_201_CREATED)
async def start_session(
    response: Response,
    registry: VisitorSessionRegistry = Depends(get_visitor_registry),
) -> VisitorSessionResponse:
    session_id = registry.new_session_id()
    registry.get_or_create(session_id)
    response.headers[VISITOR_SESSION_HEADER] = session_id
    return VisitorSessionResponse(sessionId=session_id)


@router.get("/status", response_model=VisitorStatus)
async def visitor_status(
    visitor: VisitorSession = Depends(get_visitor_session),
) -> VisitorStatus:
    # the ceiling is advisory; the store itself never refuses additions
    count = visitor.store.visitor_count()
    limit = settings.VISITOR_RECOMMENDATION_LIMIT
    return VisitorStatus(
        sessionId=visitor.id,
        recommendationCount=count,
        limit=limit,
        limitReached=count >= limit,
    )


@router.delete("/session", status_code=status.HTTP_204_NO_CONTENT)
async def end_session(
    request: Request,
    registry: VisitorSessionRegistry = Depends(get_visitor_registry),
    cache: QueryCache = Depends(get_query_cache),
) -> Response:
    session_id = request.headers.get(VISITOR_SESSION_HEADER)
    if not session_id:
        raise HTTPException(status_code=400, detail=f"Missing {VISITOR_SESSION_HEADER} header")
    if not is_valid_session_id(session_id):
        raise HTTPException(status_code=400, detail=f"Malformed {VISITOR_SESSION_HEADER} header")
    if not registry.discard(session_id):
        raise HTTPException(status_code=404, detail="Visitor session not found")
    cache.invalidate_all(f"visitor:{session_id}")
    return Response(status_code=status.HTTP_204_NO_CONTENT)
