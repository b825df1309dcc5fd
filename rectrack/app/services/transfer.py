# rectrack/app/services/transfer.py
"""
Moves a visitor's own recommendations into the account they just created.
Runs once per registration; item failures are tallied, never raised.
"""
from __future__ import annotations

import asyncio
import dataclasses
import logging
from typing import Optional
from uuid import uuid4

from starlette.concurrency import run_in_threadpool

from rectrack.app.domain.errors import CategoryConflictError, RecommendationStoreError
from rectrack.app.domain.models import CustomCategory, Person, Recommendation, TransferReport
from rectrack.app.services.query_cache import QueryCache
from rectrack.app.services.storage_facade import StorageFacade
from rectrack.app.services.visitor_store import VisitorStore

logger = logging.getLogger(__name__)


def select_visitor_authored(recommendations: list[Recommendation]) -> list[Recommendation]:
    return [rec for rec in recommendations if rec.is_visitor_authored]


async def transfer_visitor_recommendations(
    visitor_store: VisitorStore,
    target: StorageFacade,
    cache: Optional[QueryCache] = None,
    scope: Optional[str] = None,
) -> TransferReport:
    """
    Copy every visitor-authored recommendation into the signed-in account.

    1. Read what the visitor can see and keep only what they wrote.
    2. Map recommenders onto the account's people (by name) and copy the
       custom categories those items use.
    3. Insert each item under a fresh id, concurrently and independently.
    4. Invalidate every cached read for the account.
    """
    selected = select_visitor_authored(visitor_store.list())
    report = TransferReport(attempted=len(selected))

    if not selected:
        logger.info("No visitor recommendations to transfer")
        _invalidate(cache, scope)
        return report

    logger.info("Transferring %d visitor recommendations", len(selected))

    people_map = await _map_recommenders(selected, target)
    report.categories_copied = await _copy_categories(selected, visitor_store, target)

    async def transfer_one(rec: Recommendation) -> bool:
        recommender = people_map.get(rec.recommender.id)
        if recommender is None:
            logger.error("Skipping recommendation without a recommender: id=%s", rec.id)
            return False
        new_rec = dataclasses.replace(rec, id=str(uuid4()), recommender=recommender)
        try:
            await run_in_threadpool(target.add_recommendation, new_rec)
            return True
        except Exception:
            logger.exception("Error transferring recommendation: visitor_id=%s", rec.id)
            return False

    results = await asyncio.gather(*(transfer_one(rec) for rec in selected))

    for rec, ok in zip(selected, results):
        if ok:
            report.succeeded += 1
        else:
            report.failed_ids.append(rec.id)

    _invalidate(cache, scope)

    if report.partial:
        logger.warning(
            "Transferred %d of %d recommendations; failed=%s",
            report.succeeded,
            report.attempted,
            report.failed_ids,
        )
    else:
        logger.info("Successfully transferred %d of %d recommendations", report.succeeded, report.attempted)
    return report


async def _map_recommenders(
    selected: list[Recommendation],
    target: StorageFacade,
) -> dict[str, Person]:
    """Visitor person id -> account person. Sequential, so no duplicates get created."""
    try:
        account_people = await run_in_threadpool(target.list_people)
    except RecommendationStoreError as exc:
        logger.warning("Could not read account people, creating new ones: %s", exc)
        account_people = []

    by_name = {person.name.strip().lower(): person for person in account_people}
    mapping: dict[str, Person] = {}

    for rec in selected:
        visitor_person = rec.recommender
        if visitor_person.id in mapping:
            continue
        match = by_name.get(visitor_person.name.strip().lower())
        if match is None:
            try:
                match = await run_in_threadpool(target.add_person, visitor_person.name, visitor_person.avatar)
            except RecommendationStoreError as exc:
                logger.error("Could not create recommender %r: %s", visitor_person.name, exc)
                continue
            by_name[match.name.strip().lower()] = match
        mapping[visitor_person.id] = match
    return mapping


async def _copy_categories(
    selected: list[Recommendation],
    visitor_store: VisitorStore,
    target: StorageFacade,
) -> int:
    used = {rec.custom_category for rec in selected if rec.custom_category}
    if not used:
        return 0

    wanted: list[CustomCategory] = [cat for cat in visitor_store.list_categories() if cat.type in used]
    if not wanted:
        return 0

    try:
        existing = {cat.type for cat in await run_in_threadpool(target.list_categories)}
    except RecommendationStoreError as exc:
        logger.warning("Could not read account categories: %s", exc)
        existing = set()

    copied = 0
    for category in wanted:
        if category.type in existing:
            continue
        try:
            await run_in_threadpool(target.add_category, category.label, category.color, category.icon)
            copied += 1
        except CategoryConflictError:
            continue
        except RecommendationStoreError as exc:
            logger.error("Could not copy custom category %s: %s", category.type, exc)
    return copied


def _invalidate(cache: Optional[QueryCache], scope: Optional[str]) -> None:
    if cache is not None and scope:
        cache.invalidate_all(scope)
