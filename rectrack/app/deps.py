# rectrack/app/deps.py (singletons exposed as FastAPI dependencies)

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, HTTPException, Request, Response, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel
from supabase import Client, create_client

from rectrack.app.config import settings
from rectrack.app.infra.auth.supabase_auth import SupabaseAuthGateway
from rectrack.app.infra.db.supabase_backend import RemoteBackend
from rectrack.app.services.query_cache import CachedStorage, QueryCache
from rectrack.app.services.session_oracle import IdentitySource, ResolvedSession, SessionOracle
from rectrack.app.services.storage_facade import StorageFacade
from rectrack.app.services.visitor_store import (
    VisitorSessionRegistry,
    VisitorStore,
    is_valid_session_id,
)

VISITOR_SESSION_HEADER = "X-Visitor-Session"

_client: Client | None = None
_registry: VisitorSessionRegistry | None = None
_cache: QueryCache | None = None


def get_supabase() -> Client:
    global _client
    if _client is None:
        _client = create_client(str(settings.SUPABASE_URL),
                                settings.SUPABASE_SERVICE_ROLE_KEY)
    return _client


def _create_auth_client() -> Client:
    key = settings.SUPABASE_ANON_KEY or settings.SUPABASE_SERVICE_ROLE_KEY
    return create_client(str(settings.SUPABASE_URL), key)


def get_auth_gateway(supa: Client = Depends(get_supabase)) -> SupabaseAuthGateway:
    return SupabaseAuthGateway(supa, _create_auth_client)


def get_visitor_registry() -> VisitorSessionRegistry:
    global _registry
    if _registry is None:
        _registry = VisitorSessionRegistry(
            show_samples=settings.SHOW_TEST_DATA_FOR_VISITORS,
            persistent=settings.VISITOR_PERSISTENT_STORE,
            directory=settings.VISITOR_STORE_DIR,
            idle_seconds=settings.VISITOR_SESSION_IDLE_SECONDS,
            max_sessions=settings.VISITOR_MAX_SESSIONS,
        )
    return _registry


def get_query_cache() -> QueryCache:
    global _cache
    if _cache is None:
        _cache = QueryCache(stale_seconds=settings.QUERY_STALE_SECONDS)
    return _cache


auth_scheme = HTTPBearer(auto_error=False)


def get_access_token(
    cred: HTTPAuthorizationCredentials | None = Depends(auth_scheme),
) -> Optional[str]:
    if cred is None or cred.scheme.lower() != "bearer":
        return None
    return cred.credentials


class CurrentUser(BaseModel):
    id: str
    email: str | None = None
    name: str | None = None


async def get_current_user(
    token: Optional[str] = Depends(get_access_token),
    gateway: SupabaseAuthGateway = Depends(get_auth_gateway),
) -> CurrentUser:
    """
    Receives Authorization: Bearer <access_token> from Supabase,
    validates it against GoTrue and returns the minimal user data.
    """
    if token is None:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing token")
    try:
        user = gateway.get_user(token)
    except Exception:
        raise HTTPException(status_code=401, detail="Invalid/expired token")
    if not user:
        raise HTTPException(status_code=401, detail="Invalid token")
    return CurrentUser(id=user.id, email=user.email, name=user.name)


def get_session_oracle(
    token: Optional[str] = Depends(get_access_token),
    gateway: SupabaseAuthGateway = Depends(get_auth_gateway),
) -> SessionOracle:
    return SessionOracle(gateway, token)


@dataclass
class VisitorSession:
    id: str
    store: VisitorStore


def resolve_visitor_session(
    request: Request,
    response: Response,
    registry: VisitorSessionRegistry,
) -> VisitorSession:
    """Use the caller's visitor session, starting one when the header is missing."""
    session_id = request.headers.get(VISITOR_SESSION_HEADER) or registry.new_session_id()
    if not is_valid_session_id(session_id):
        raise HTTPException(status_code=400, detail=f"Malformed {VISITOR_SESSION_HEADER} header")
    response.headers[VISITOR_SESSION_HEADER] = session_id
    return VisitorSession(id=session_id, store=registry.get_or_create(session_id))


def get_visitor_session(
    request: Request,
    response: Response,
    registry: VisitorSessionRegistry = Depends(get_visitor_registry),
) -> VisitorSession:
    return resolve_visitor_session(request, response, registry)


def build_facade(
    supa: Client,
    oracle: IdentitySource,
    visitor_store: VisitorStore | None,
) -> StorageFacade:
    return StorageFacade(
        oracle,
        lambda user_id: RemoteBackend(supa, user_id),
        visitor_store,
        allow_visitor_writes=settings.ALLOW_VISITOR_RECOMMENDATIONS,
        read_latency_seconds=settings.read_latency_seconds,
    )


def get_storage(
    request: Request,
    response: Response,
    oracle: SessionOracle = Depends(get_session_oracle),
    supa: Client = Depends(get_supabase),
    registry: VisitorSessionRegistry = Depends(get_visitor_registry),
    cache: QueryCache = Depends(get_query_cache),
) -> CachedStorage:
    user_id = oracle.current_user_id()
    if user_id:
        # the backend must match the scope chosen here, even if auth flakes later
        return CachedStorage(build_facade(supa, ResolvedSession(user_id), None), cache, f"user:{user_id}")

    visitor = resolve_visitor_session(request, response, registry)
    return CachedStorage(build_facade(supa, oracle, visitor.store), cache, f"visitor:{visitor.id}")
