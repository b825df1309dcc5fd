# rectrack/app/routers/categories.py
from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status
from starlette.concurrency import run_in_threadpool

from rectrack.app.deps import get_storage
from rectrack.app.domain.errors import CategoryConflictError
from rectrack.app.schemas.categories import CategoryCreate, CategoryResponse
from rectrack.app.services.query_cache import CachedStorage

router = APIRouter(prefix="/categories", tags=["categories"])


@router.get("/", response_model=list[CategoryResponse])
async def list_categories(
    storage: CachedStorage = Depends(get_storage),
) -> list[CategoryResponse]:
    categories = await run_in_threadpool(storage.list_categories)
    return [CategoryResponse.from_domain(category) for category in categories]


@router.post("/", response_model=CategoryResponse, status_code=status.HTTP_201_CREATED)
async def add_category(
    payload: CategoryCreate,
    storage: CachedStorage = Depends(get_storage),
) -> CategoryResponse:
    try:
        category = await run_in_threadpool(
            storage.add_category,
            payload.label,
            payload.color,
            payload.icon,
        )
    except CategoryConflictError as exc:
        raise HTTPException(status_code=409, detail=str(exc))
    return CategoryResponse.from_domain(category)
