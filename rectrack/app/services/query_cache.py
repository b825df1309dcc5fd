# rectrack/app/services/query_cache.py
"""
Query cache.
Read results keyed by (scope, query key); writes invalidate whole families.
"""
from __future__ import annotations

import copy
import logging
import threading
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TypeVar

from rectrack.app.domain.models import CustomCategory, Person, Recommendation
from rectrack.app.services.storage_facade import StorageFacade

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_STALE_SECONDS = 60 * 5

RECOMMENDATIONS_FAMILY = "recommendations"
PEOPLE_FAMILY = "people"
CATEGORIES_FAMILY = "custom-categories"
ALL_FAMILIES = (RECOMMENDATIONS_FAMILY, PEOPLE_FAMILY, CATEGORIES_FAMILY)

QueryKey = tuple[str, ...]


class QueryKeys:
    """Key factory so every caller builds identical keys."""

    recommendations: QueryKey = ("recommendations",)
    people: QueryKey = ("people",)
    custom_categories: QueryKey = ("custom-categories",)

    @staticmethod
    def recommendation_by_id(recommendation_id: str) -> QueryKey:
        return ("recommendation", recommendation_id)

    @staticmethod
    def recommendations_by_type(type_value: str) -> QueryKey:
        return ("recommendations", type_value)


_FAMILY_HEADS: dict[str, frozenset[str]] = {
    RECOMMENDATIONS_FAMILY: frozenset({"recommendations", "recommendation"}),
    PEOPLE_FAMILY: frozenset({"people"}),
    CATEGORIES_FAMILY: frozenset({"custom-categories"}),
}


@dataclass
class _Entry:
    value: Any
    fetched_at: float


class QueryCache:
    """Thread-safe result cache with a fixed staleness window."""

    def __init__(
        self,
        stale_seconds: float = DEFAULT_STALE_SECONDS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.stale_seconds = stale_seconds
        self._clock = clock
        self._entries: dict[tuple[str, QueryKey], _Entry] = {}
        self._lock = threading.Lock()

    def get(self, scope: str, key: QueryKey) -> Optional[Any]:
        with self._lock:
            entry = self._entries.get((scope, key))
            if entry is None:
                return None
            if self._clock() - entry.fetched_at > self.stale_seconds:
                del self._entries[(scope, key)]
                return None
            return copy.deepcopy(entry.value)

    def set(self, scope: str, key: QueryKey, value: Any) -> None:
        with self._lock:
            now = self._clock()
            self._purge_stale(now)
            self._entries[(scope, key)] = _Entry(copy.deepcopy(value), now)

    def _purge_stale(self, now: float) -> None:
        # entries of abandoned scopes are otherwise never evicted
        stale = [k for k, entry in self._entries.items() if now - entry.fetched_at > self.stale_seconds]
        for k in stale:
            del self._entries[k]

    def __len__(self) -> int:
        return len(self._entries)

    def fetch(self, scope: str, key: QueryKey, loader: Callable[[], T]) -> T:
        cached = self.get(scope, key)
        if cached is not None:
            return cached
        value = loader()
        if value is not None:
            self.set(scope, key, value)
        return value

    def invalidate(self, scope: str, family: str) -> int:
        heads = _FAMILY_HEADS[family]
        with self._lock:
            doomed = [k for k in self._entries if k[0] == scope and k[1][0] in heads]
            for k in doomed:
                del self._entries[k]
        logger.debug("Invalidated %d cache entries: scope=%s, family=%s", len(doomed), scope, family)
        return len(doomed)

    def invalidate_all(self, scope: str) -> int:
        return sum(self.invalidate(scope, family) for family in ALL_FAMILIES)


class CachedStorage:
    """StorageFacade with cached reads. Writes pass through and invalidate."""

    def __init__(self, facade: StorageFacade, cache: QueryCache, scope: str):
        self.facade = facade
        self.cache = cache
        self.scope = scope

    def list_recommendations(self) -> list[Recommendation]:
        return self.cache.fetch(self.scope, QueryKeys.recommendations, self.facade.list_recommendations)

    def get_recommendation(self, recommendation_id: str) -> Optional[Recommendation]:
        return self.cache.fetch(
            self.scope,
            QueryKeys.recommendation_by_id(recommendation_id),
            lambda: self.facade.get_recommendation(recommendation_id),
        )

    def list_recommendations_by_type(self, type_value: str) -> list[Recommendation]:
        return self.cache.fetch(
            self.scope,
            QueryKeys.recommendations_by_type(type_value),
            lambda: self.facade.list_recommendations_by_type(type_value),
        )

    def list_people(self) -> list[Person]:
        return self.cache.fetch(self.scope, QueryKeys.people, self.facade.list_people)

    def list_categories(self) -> list[CustomCategory]:
        return self.cache.fetch(self.scope, QueryKeys.custom_categories, self.facade.list_categories)

    def add_recommendation(self, recommendation: Recommendation) -> Recommendation:
        try:
            return self.facade.add_recommendation(recommendation)
        finally:
            # a new recommender may have been created along the way
            self.cache.invalidate(self.scope, RECOMMENDATIONS_FAMILY)
            self.cache.invalidate(self.scope, PEOPLE_FAMILY)

    def update_recommendation(self, recommendation: Recommendation) -> Recommendation:
        try:
            return self.facade.update_recommendation(recommendation)
        finally:
            self.cache.invalidate(self.scope, RECOMMENDATIONS_FAMILY)
            self.cache.invalidate(self.scope, PEOPLE_FAMILY)

    def set_completed(self, recommendation_id: str, completed: bool) -> Recommendation:
        try:
            return self.facade.set_completed(recommendation_id, completed)
        finally:
            self.cache.invalidate(self.scope, RECOMMENDATIONS_FAMILY)

    def delete_recommendation(self, recommendation_id: str) -> None:
        try:
            self.facade.delete_recommendation(recommendation_id)
        finally:
            self.cache.invalidate(self.scope, RECOMMENDATIONS_FAMILY)

    def add_person(self, name: str, avatar: Optional[str] = None) -> Person:
        try:
            return self.facade.add_person(name, avatar)
        finally:
            self.cache.invalidate(self.scope, PEOPLE_FAMILY)

    def add_category(
        self,
        label: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> CustomCategory:
        try:
            return self.facade.add_category(label, color, icon)
        finally:
            self.cache.invalidate(self.scope, CATEGORIES_FAMILY)
