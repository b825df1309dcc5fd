# rectrack/app/infra/db/visitor_backend.py
from __future__ import annotations

import logging
from typing import Optional

from rectrack.app.domain.errors import UnauthorizedError
from rectrack.app.domain.models import CustomCategory, Person, Recommendation
from rectrack.app.infra.db.base import StorageBackend
from rectrack.app.services.visitor_store import VisitorStore

logger = logging.getLogger(__name__)


class VisitorBackend(StorageBackend):
    """Serves an anonymous visitor from their session's VisitorStore."""

    def __init__(self, store: VisitorStore, allow_writes: bool = True):
        self._store = store
        self.allow_writes = allow_writes

    def _require_writes(self, operation: str) -> None:
        if not self.allow_writes:
            logger.warning("Rejected visitor %s: visitor writes are disabled", operation)
            raise UnauthorizedError(f"Unauthorized: cannot {operation} without logging in")

    def list_recommendations(self) -> list[Recommendation]:
        return self._store.list()

    def get_recommendation(self, recommendation_id: str) -> Optional[Recommendation]:
        return self._store.get(recommendation_id)

    def add_recommendation(self, recommendation: Recommendation) -> Recommendation:
        self._require_writes("add recommendations")
        return self._store.add(recommendation)

    def update_recommendation(self, recommendation: Recommendation) -> Recommendation:
        return self._store.update(recommendation)

    def delete_recommendation(self, recommendation_id: str) -> None:
        self._store.remove(recommendation_id)

    def list_people(self) -> list[Person]:
        return self._store.list_people()

    def get_person(self, person_id: str) -> Optional[Person]:
        return self._store.get_person(person_id)

    def add_person(self, person: Person) -> Person:
        self._require_writes("add people")
        return self._store.add_person(person)

    def add_recommender(self, person: Person) -> Person:
        # part of an edit, not a new addition
        return self._store.add_person(person)

    def list_categories(self) -> list[CustomCategory]:
        return self._store.list_categories()

    def add_category(self, category: CustomCategory) -> CustomCategory:
        self._require_writes("add custom categories")
        return self._store.add_category(category)
