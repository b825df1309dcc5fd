# rectrack/app/services/visitor_store.py
"""
Visitor store.
Holds recommendations, people and categories for someone who has not signed in.
"""
from __future__ import annotations

import copy
import json
import logging
import re
import threading
import time
from pathlib import Path
from typing import Any, Callable, Optional
from uuid import uuid4

from rectrack.app.domain.errors import CategoryConflictError, RecommendationNotFoundError
from rectrack.app.domain.models import (
    CustomCategory,
    Person,
    Recommendation,
    RecommendationOrigin,
    RecommendationType,
)
from rectrack.app.infra.storage.base import (
    CUSTOM_CATEGORIES_KEY,
    PEOPLE_KEY,
    RECOMMENDATIONS_KEY,
    KeyValueStore,
)
from rectrack.app.infra.storage.json_file_store import JsonFileKeyValueStore
from rectrack.services.sample_data import SAMPLE_RECOMMENDATIONS, sample_people

logger = logging.getLogger(__name__)

DEFAULT_SESSION_IDLE_SECONDS = 60 * 60 * 6
DEFAULT_MAX_SESSIONS = 10_000

_SESSION_ID_RE = re.compile(r"[0-9a-f]{32}")


def is_valid_session_id(session_id: str) -> bool:
    """Session ids are the 32-char hex strings handed out by new_session_id."""
    return bool(_SESSION_ID_RE.fullmatch(session_id))


def person_to_dict(person: Person) -> dict[str, Any]:
    return {"id": person.id, "name": person.name, "avatar": person.avatar}


def person_from_dict(data: dict[str, Any]) -> Person:
    return Person(id=str(data["id"]), name=str(data["name"]), avatar=data.get("avatar"))


def recommendation_to_dict(rec: Recommendation) -> dict[str, Any]:
    return {
        "id": rec.id,
        "title": rec.title,
        "type": rec.type.value,
        "recommender": person_to_dict(rec.recommender),
        "reason": rec.reason,
        "source": rec.source,
        "date": rec.date,
        "isCompleted": rec.is_completed,
        "customCategory": rec.custom_category,
        "origin": rec.origin.value,
    }


def recommendation_from_dict(data: dict[str, Any]) -> Recommendation:
    return Recommendation(
        id=str(data["id"]),
        title=str(data["title"]),
        type=RecommendationType(data["type"]),
        recommender=person_from_dict(data["recommender"]),
        reason=data.get("reason"),
        source=data.get("source"),
        date=str(data["date"]),
        is_completed=bool(data.get("isCompleted", False)),
        custom_category=data.get("customCategory"),
        origin=RecommendationOrigin(data.get("origin", RecommendationOrigin.VISITOR.value)),
    )


def category_to_dict(category: CustomCategory) -> dict[str, Any]:
    return {
        "id": category.id,
        "type": category.type,
        "label": category.label,
        "color": category.color,
        "icon": category.icon,
    }


def category_from_dict(data: dict[str, Any]) -> CustomCategory:
    return CustomCategory(
        id=data.get("id"),
        type=str(data["type"]),
        label=str(data["label"]),
        color=data.get("color"),
        icon=data.get("icon"),
    )


class VisitorStore:
    """
    In-memory collections for one visitor session.

    Sample recommendations are never modified: editing one stores a shadow copy
    in ``_overrides`` and deleting one adds its id to ``_hidden_sample_ids``.
    When a KeyValueStore mirror is given, every write is flushed to it and the
    initial state is loaded from it.
    """

    def __init__(
        self,
        *,
        show_samples: bool = True,
        mirror: Optional[KeyValueStore] = None,
    ):
        self._samples: dict[str, Recommendation] = (
            {rec.id: rec for rec in SAMPLE_RECOMMENDATIONS} if show_samples else {}
        )
        self._overrides: dict[str, Recommendation] = {}
        self._hidden_sample_ids: set[str] = set()
        self._recommendations: list[Recommendation] = []
        self._people: list[Person] = sample_people() if show_samples else []
        self._categories: list[CustomCategory] = []
        self._mirror = mirror

        if mirror is not None:
            self._load_from_mirror(mirror)

    # Recommendations

    def list(self) -> list[Recommendation]:
        visible: list[Recommendation] = []
        for sample_id, sample in self._samples.items():
            if sample_id in self._hidden_sample_ids:
                continue
            visible.append(self._overrides.get(sample_id, sample))
        visible.extend(self._recommendations)
        return copy.deepcopy(visible)

    def get(self, recommendation_id: str) -> Optional[Recommendation]:
        for rec in self.list():
            if rec.id == recommendation_id:
                return rec
        return None

    def add(self, rec: Recommendation) -> Recommendation:
        stored = copy.deepcopy(rec)
        self._recommendations.append(stored)
        self._flush()
        return copy.deepcopy(stored)

    def update(self, rec: Recommendation) -> Recommendation:
        index = self._index_of(rec.id)
        if index is not None:
            stored = copy.deepcopy(rec)
            stored.origin = self._recommendations[index].origin
            self._recommendations[index] = stored
        elif rec.id in self._samples and rec.id not in self._hidden_sample_ids:
            stored = copy.deepcopy(rec)
            stored.origin = RecommendationOrigin.SAMPLE
            self._overrides[rec.id] = stored
        else:
            raise RecommendationNotFoundError(rec.id)
        self._flush()
        return copy.deepcopy(stored)

    def remove(self, recommendation_id: str) -> None:
        index = self._index_of(recommendation_id)
        if index is not None:
            del self._recommendations[index]
        elif recommendation_id in self._samples and recommendation_id not in self._hidden_sample_ids:
            self._hidden_sample_ids.add(recommendation_id)
            self._overrides.pop(recommendation_id, None)
        else:
            raise RecommendationNotFoundError(recommendation_id)
        self._flush()

    def visitor_count(self) -> int:
        """Number of recommendations the visitor authored (samples excluded)."""
        return sum(1 for rec in self._recommendations if rec.is_visitor_authored)

    # People

    def list_people(self) -> list[Person]:
        return copy.deepcopy(self._people)

    def get_person(self, person_id: str) -> Optional[Person]:
        for person in self._people:
            if person.id == person_id:
                return copy.deepcopy(person)
        return None

    def add_person(self, person: Person) -> Person:
        stored = copy.deepcopy(person)
        self._people.append(stored)
        self._flush()
        return copy.deepcopy(stored)

    # Custom categories

    def list_categories(self) -> list[CustomCategory]:
        return copy.deepcopy(self._categories)

    def add_category(self, category: CustomCategory) -> CustomCategory:
        if any(existing.type == category.type for existing in self._categories):
            raise CategoryConflictError(category.type)
        stored = copy.deepcopy(category)
        if not stored.id:
            stored.id = f"temp-{uuid4().hex}"
        self._categories.append(stored)
        self._flush()
        return copy.deepcopy(stored)

    def clear(self) -> None:
        """Drop the visitor's own data, including its mirror."""
        self._recommendations.clear()
        self._categories.clear()
        self._overrides.clear()
        self._hidden_sample_ids.clear()
        if self._mirror is not None:
            self._mirror.clear()

    def _index_of(self, recommendation_id: str) -> Optional[int]:
        for index, rec in enumerate(self._recommendations):
            if rec.id == recommendation_id:
                return index
        return None

    def _flush(self) -> None:
        if self._mirror is None:
            return
        self._mirror.set(
            RECOMMENDATIONS_KEY,
            json.dumps([recommendation_to_dict(rec) for rec in self.list()]),
        )
        self._mirror.set(PEOPLE_KEY, json.dumps([person_to_dict(p) for p in self._people]))
        self._mirror.set(
            CUSTOM_CATEGORIES_KEY,
            json.dumps([category_to_dict(cat) for cat in self._categories]),
        )

    def _load_from_mirror(self, mirror: KeyValueStore) -> None:
        raw_recs = mirror.get(RECOMMENDATIONS_KEY)
        if raw_recs is None:
            # first visit: seed the mirror with the current state
            self._flush()
            return

        try:
            recs = [recommendation_from_dict(item) for item in json.loads(raw_recs)]
            people = [person_from_dict(item) for item in json.loads(mirror.get(PEOPLE_KEY) or "[]")]
            categories = [
                category_from_dict(item)
                for item in json.loads(mirror.get(CUSTOM_CATEGORIES_KEY) or "[]")
            ]
        except (ValueError, KeyError, TypeError) as error:
            logger.warning("Discarding unreadable visitor data: %s", error)
            self._flush()
            return

        present_ids = {rec.id for rec in recs}
        self._hidden_sample_ids = {sid for sid in self._samples if sid not in present_ids}
        self._overrides = {
            rec.id: rec for rec in recs if rec.id in self._samples and rec != self._samples[rec.id]
        }
        self._recommendations = [rec for rec in recs if rec.id not in self._samples]
        if people:
            self._people = people
        self._categories = categories


class VisitorSessionRegistry:
    """
    Owns one VisitorStore per visitor session id.

    Stores are created on first use and dropped by ``discard`` when the
    session ends (sign-up transfer, explicit reset). Sessions idle for longer
    than ``idle_seconds`` are evicted from memory, and at most
    ``max_sessions`` are held at once (least recently seen go first).
    Persisted sessions keep their file and reload on the next request.
    """

    def __init__(
        self,
        *,
        show_samples: bool = True,
        persistent: bool = False,
        directory: Path | str = ".visitor_data",
        mirror_factory: Optional[Callable[[str], KeyValueStore]] = None,
        idle_seconds: float = DEFAULT_SESSION_IDLE_SECONDS,
        max_sessions: int = DEFAULT_MAX_SESSIONS,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.show_samples = show_samples
        self.persistent = persistent
        self.directory = Path(directory)
        self.idle_seconds = idle_seconds
        self.max_sessions = max_sessions
        self._clock = clock
        self._mirror_factory = mirror_factory or self._json_mirror
        self._stores: dict[str, VisitorStore] = {}
        self._last_seen: dict[str, float] = {}
        self._lock = threading.Lock()

    def new_session_id(self) -> str:
        return uuid4().hex

    def __len__(self) -> int:
        return len(self._stores)

    def get_or_create(self, session_id: str) -> VisitorStore:
        with self._lock:
            now = self._clock()
            self._evict_idle(now)
            store = self._stores.get(session_id)
            if store is None:
                self._evict_oldest()
                mirror = self._mirror_factory(session_id) if self.persistent else None
                store = VisitorStore(show_samples=self.show_samples, mirror=mirror)
                self._stores[session_id] = store
                logger.info("Visitor session started: id=%s, persistent=%s", session_id, self.persistent)
            self._last_seen[session_id] = now
            return store

    def discard(self, session_id: str) -> bool:
        with self._lock:
            store = self._stores.pop(session_id, None)
            self._last_seen.pop(session_id, None)
        if store is None and self.persistent:
            # persisted session from an earlier process
            store = VisitorStore(show_samples=self.show_samples, mirror=self._mirror_factory(session_id))
        if store is None:
            return False
        store.clear()
        logger.info("Visitor session discarded: id=%s", session_id)
        return True

    def _evict_idle(self, now: float) -> None:
        idle = [sid for sid, seen in self._last_seen.items() if now - seen > self.idle_seconds]
        for sid in idle:
            self._drop(sid)
        if idle:
            logger.info("Evicted %d idle visitor sessions", len(idle))

    def _evict_oldest(self) -> None:
        while self._stores and len(self._stores) >= self.max_sessions:
            oldest = min(self._last_seen, key=self._last_seen.__getitem__)
            self._drop(oldest)
            logger.warning("Visitor session limit reached, evicted: id=%s", oldest)

    def _drop(self, session_id: str) -> None:
        self._stores.pop(session_id, None)
        self._last_seen.pop(session_id, None)

    def _json_mirror(self, session_id: str) -> KeyValueStore:
        return JsonFileKeyValueStore(self.directory, session_id)
