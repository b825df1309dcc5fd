# rectrack/app/services/storage_facade.py
"""
Storage facade.
Single CRUD entry point that routes every call to the signed-in user's
Supabase rows or to the visitor's session store.
"""
from __future__ import annotations

import dataclasses
import logging
import time
from typing import Callable, Optional
from uuid import uuid4

from rectrack.app.domain.errors import UnauthorizedError
from rectrack.app.domain.models import (
    AVATAR_PLACEHOLDER,
    DEFAULT_CATEGORY_COLOR,
    DEFAULT_CATEGORY_ICON,
    CustomCategory,
    Person,
    Recommendation,
    RecommendationOrigin,
)
from rectrack.app.infra.db.base import StorageBackend
from rectrack.app.infra.db.visitor_backend import VisitorBackend
from rectrack.app.services.session_oracle import IdentitySource
from rectrack.app.services.visitor_store import VisitorStore
from rectrack.services.slugify import category_slug

logger = logging.getLogger(__name__)

RemoteBackendFactory = Callable[[str], StorageBackend]


class StorageFacade:
    """
    Uniform CRUD over recommendations, people and custom categories.

    Responsibilities:
    - Ask the session oracle who is calling, on every operation
    - Scope signed-in calls to that user's rows
    - Serve anonymous calls from the visitor store, rejecting additions when
      visitor writes are disabled
    """

    def __init__(
        self,
        oracle: IdentitySource,
        remote_factory: RemoteBackendFactory,
        visitor_store: Optional[VisitorStore] = None,
        *,
        allow_visitor_writes: bool = True,
        read_latency_seconds: float = 0.0,
    ):
        self._oracle = oracle
        self._remote_factory = remote_factory
        self._visitor_store = visitor_store
        self.allow_visitor_writes = allow_visitor_writes
        self.read_latency_seconds = read_latency_seconds

    def _select_backend(self) -> tuple[StorageBackend, RecommendationOrigin]:
        user_id = self._oracle.current_user_id()
        if user_id:
            return self._remote_factory(user_id), RecommendationOrigin.ACCOUNT
        if self._visitor_store is None:
            raise UnauthorizedError("Unauthorized: no session")
        backend = VisitorBackend(self._visitor_store, allow_writes=self.allow_visitor_writes)
        return backend, RecommendationOrigin.VISITOR

    def _read_backend(self) -> StorageBackend:
        if self.read_latency_seconds > 0:
            time.sleep(self.read_latency_seconds)
        backend, _ = self._select_backend()
        return backend

    # Recommendations

    def list_recommendations(self) -> list[Recommendation]:
        return self._read_backend().list_recommendations()

    def get_recommendation(self, recommendation_id: str) -> Optional[Recommendation]:
        if not recommendation_id:
            return None
        return self._read_backend().get_recommendation(recommendation_id)

    def list_recommendations_by_type(self, type_value: str) -> list[Recommendation]:
        return self._read_backend().list_recommendations_by_type(type_value)

    def add_recommendation(self, recommendation: Recommendation) -> Recommendation:
        backend, origin = self._select_backend()
        new_rec = dataclasses.replace(
            recommendation,
            id=recommendation.id or str(uuid4()),
            origin=origin,
        )
        new_rec.recommender = self._ensure_person(backend, new_rec.recommender)
        return backend.add_recommendation(new_rec)

    def update_recommendation(self, recommendation: Recommendation) -> Recommendation:
        backend, _ = self._select_backend()
        # ownership and existence are settled before a recommender can be created
        backend.require_recommendation(recommendation.id)
        updated = dataclasses.replace(recommendation)
        updated.recommender = self._ensure_person(backend, updated.recommender, editing=True)
        return backend.update_recommendation(updated)

    def set_completed(self, recommendation_id: str, completed: bool) -> Recommendation:
        backend, _ = self._select_backend()
        current = backend.require_recommendation(recommendation_id)
        return backend.update_recommendation(dataclasses.replace(current, is_completed=completed))

    def delete_recommendation(self, recommendation_id: str) -> None:
        backend, _ = self._select_backend()
        backend.delete_recommendation(recommendation_id)

    # People

    def list_people(self) -> list[Person]:
        return self._read_backend().list_people()

    def add_person(self, name: str, avatar: Optional[str] = None) -> Person:
        backend, _ = self._select_backend()
        person = Person(id=str(uuid4()), name=name.strip(), avatar=avatar or AVATAR_PLACEHOLDER)
        return backend.add_person(person)

    def _ensure_person(
        self,
        backend: StorageBackend,
        person: Person,
        *,
        editing: bool = False,
    ) -> Person:
        """
        Make sure the recommender exists in the same store as the recommendation.

        When ``editing``, a new recommender is stored as part of the edit and
        is not subject to the visitor addition gate.
        """
        if person.id:
            existing = backend.get_person(person.id)
            if existing is not None:
                return existing
        # unknown ids are never reused; they may belong to another store
        new_person = Person(
            id=str(uuid4()),
            name=person.name.strip(),
            avatar=person.avatar or AVATAR_PLACEHOLDER,
        )
        if editing:
            return backend.add_recommender(new_person)
        return backend.add_person(new_person)

    # Custom categories

    def list_categories(self) -> list[CustomCategory]:
        return self._read_backend().list_categories()

    def add_category(
        self,
        label: str,
        color: Optional[str] = None,
        icon: Optional[str] = None,
    ) -> CustomCategory:
        backend, _ = self._select_backend()
        category = CustomCategory(
            type=category_slug(label),
            label=label.strip(),
            color=color or DEFAULT_CATEGORY_COLOR,
            icon=icon or DEFAULT_CATEGORY_ICON,
        )
        return backend.add_category(category)
