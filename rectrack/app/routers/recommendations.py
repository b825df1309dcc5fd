# rectrack/app/routers/recommendations.py
from __future__ import annotations

import logging
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query, Response, status
from starlette.concurrency import run_in_threadpool

from rectrack.app.deps import get_storage
from rectrack.app.domain.errors import RecommendationNotFoundError
from rectrack.app.domain.models import RecommendationType
from rectrack.app.schemas.recommendations import (
    CompletionUpdate,
    RecommendationCreate,
    RecommendationResponse,
    RecommendationUpdate,
)
from rectrack.app.services.query_cache import CachedStorage
from rectrack.services.filtering import ALL_TAB, SortOrder, filter_recommendations

log = logging.getLogger("recommendations")
router = APIRouter(prefix="/recommendations", tags=["recommendations"])


@router.get("/", response_model=list[RecommendationResponse])
async def list_recommendations(
    type: Optional[RecommendationType] = Query(default=None),
    tab: str = Query(default=ALL_TAB),
    search: Optional[str] = Query(default=None, max_length=200),
    show_completed: bool = Query(default=True),
    sort: SortOrder = Query(default="desc"),
    storage: CachedStorage = Depends(get_storage),
) -> list[RecommendationResponse]:
    if type is not None:
        recs = await run_in_threadpool(storage.list_recommendations_by_type, type.value)
    else:
        recs = await run_in_threadpool(storage.list_recommendations)

    categories = []
    if tab not in (ALL_TAB, *(t.value for t in RecommendationType)):
        categories = await run_in_threadpool(storage.list_categories)

    filtered = filter_recommendations(
        recs,
        tab=tab,
        search=search,
        show_completed=show_completed,
        sort_order=sort,
        custom_categories=categories,
    )
    return [RecommendationResponse.from_domain(rec) for rec in filtered]


@router.get("/{recommendation_id}", response_model=RecommendationResponse)
async def get_recommendation(
    recommendation_id: str,
    storage: CachedStorage = Depends(get_storage),
) -> RecommendationResponse:
    rec = await run_in_threadpool(storage.get_recommendation, recommendation_id)
    if rec is None:
        raise HTTPException(status_code=404, detail="Recommendation not found")
    return RecommendationResponse.from_domain(rec)


@router.post("/", response_model=RecommendationResponse, status_code=status.HTTP_201_CREATED)
async def add_recommendation(
    payload: RecommendationCreate,
    storage: CachedStorage = Depends(get_storage),
) -> RecommendationResponse:
    rec = await run_in_threadpool(storage.add_recommendation, payload.to_domain())
    log.info("Recommendation added: id=%s, type=%s, scope=%s", rec.id, rec.type.value, storage.scope)
    return RecommendationResponse.from_domain(rec)


@router.put("/{recommendation_id}", response_model=RecommendationResponse)
async def update_recommendation(
    recommendation_id: str,
    payload: RecommendationUpdate,
    storage: CachedStorage = Depends(get_storage),
) -> RecommendationResponse:
    try:
        rec = await run_in_threadpool(
            storage.update_recommendation,
            payload.to_domain(recommendation_id),
        )
    except RecommendationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return RecommendationResponse.from_domain(rec)


@router.patch("/{recommendation_id}/completion", response_model=RecommendationResponse)
async def set_completion(
    recommendation_id: str,
    payload: CompletionUpdate,
    storage: CachedStorage = Depends(get_storage),
) -> RecommendationResponse:
    try:
        rec = await run_in_threadpool(storage.set_completed, recommendation_id, payload.isCompleted)
    except RecommendationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return RecommendationResponse.from_domain(rec)


@router.delete("/{recommendation_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_recommendation(
    recommendation_id: str,
    storage: CachedStorage = Depends(get_storage),
) -> Response:
    try:
        await run_in_threadpool(storage.delete_recommendation, recommendation_id)
    except RecommendationNotFoundError as exc:
        raise HTTPException(status_code=404, detail=str(exc))
    return Response(status_code=status.HTTP_204_NO_CONTENT)
