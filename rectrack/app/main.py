# rectrack/app/main.py
from __future__ import annotations
import logging
import sys
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from rectrack import __version__
from rectrack.app.config import settings
from rectrack.app.deps import VISITOR_SESSION_HEADER
from rectrack.app.domain.errors import StorageOperationError, UnauthorizedError
from rectrack.app.routers.auth import router as auth_router
from rectrack.app.routers.categories import router as categories_router
from rectrack.app.routers.people import router as people_router
from rectrack.app.routers.recommendations import router as recommendations_router
from rectrack.app.routers.visitor import router as visitor_router

# Plain stdout logging (fine for dev and containers)
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s [%(name)s] %(message)s",
    handlers=[logging.StreamHandler(sys.stdout)],
)

log = logging.getLogger("rectrack")

app = FastAPI(title="Recommendation Tracker API", version=__version__)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.FRONTEND_CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
    expose_headers=[VISITOR_SESSION_HEADER],
)

app.include_router(recommendations_router)
app.include_router(people_router)
app.include_router(categories_router)
app.include_router(auth_router)
app.include_router(visitor_router)


@app.exception_handler(UnauthorizedError)
async def unauthorized_handler(request: Request, exc: UnauthorizedError) -> JSONResponse:
    return JSONResponse(status_code=403, content={"detail": str(exc)})


@app.exception_handler(StorageOperationError)
async def storage_failure_handler(request: Request, exc: StorageOperationError) -> JSONResponse:
    log.error("Backend failure on %s %s: %s", request.method, request.url.path, exc)
    return JSONResponse(status_code=502, content={"detail": "Operation failed", "operation": exc.operation})


@app.get("/health")
def health():
    return {"ok": True}
