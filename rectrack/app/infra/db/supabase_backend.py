from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Optional

import httpx
from postgrest.exceptions import APIError
from supabase import Client

from rectrack.app.domain.errors import (
    CategoryConflictError,
    RecommendationNotFoundError,
    StorageOperationError,
    UnauthorizedError,
)
from rectrack.app.domain.models import (
    AVATAR_PLACEHOLDER,
    DEFAULT_CATEGORY_COLOR,
    CustomCategory,
    Person,
    Recommendation,
    RecommendationOrigin,
    RecommendationType,
)
from rectrack.app.infra.db.base import StorageBackend

logger = logging.getLogger(__name__)

BACKEND_ERRORS = (APIError, httpx.HTTPError, ConnectionError, TimeoutError)

RECOMMENDATION_COLUMNS = (
    "id,title,type,recommender_id,reason,source,date,is_completed,custom_category,user_id,created_at"
)
CATEGORY_COLUMNS = "id,type,label,color,user_id,created_at"
PEOPLE_COLUMNS = "id,user_id,friend_name,avatar_url,updated_at"


def _now_utc() -> datetime:
    return datetime.now(timezone.utc)


def _safe_str(value: object) -> str | None:
    return str(value) if value else None


def _row_to_person(row: dict[str, Any]) -> Person:
    return Person(
        id=str(row["id"]),
        name=str(row.get("friend_name") or ""),
        avatar=_safe_str(row.get("avatar_url")) or AVATAR_PLACEHOLDER,
    )


def _row_to_recommendation(row: dict[str, Any], people: dict[str, Person]) -> Recommendation:
    recommender_id = str(row.get("recommender_id") or "")
    recommender = people.get(recommender_id) or Person(
        id=recommender_id,
        name=recommender_id,
        avatar=AVATAR_PLACEHOLDER,
    )
    return Recommendation(
        id=str(row["id"]),
        title=str(row["title"]),
        type=RecommendationType(str(row["type"])),
        recommender=recommender,
        reason=_safe_str(row.get("reason")),
        source=_safe_str(row.get("source")),
        date=str(row.get("date") or ""),
        is_completed=bool(row.get("is_completed")),
        custom_category=_safe_str(row.get("custom_category")),
        origin=RecommendationOrigin.ACCOUNT,
    )


def _row_to_category(row: dict[str, Any]) -> CustomCategory:
    return CustomCategory(
        id=_safe_str(row.get("id")),
        type=str(row["type"]),
        label=str(row["label"]),
        color=_safe_str(row.get("color")) or DEFAULT_CATEGORY_COLOR,
        icon=None,
    )


class RemoteBackend(StorageBackend):
    """
    Supabase-backed storage for one signed-in user.

    Every read and write carries ``user_id = <owner>``; rows of other users
    are invisible to reads and rejected for writes.
    """

    RECOMMENDATIONS_TABLE = "recommendations"
    CATEGORIES_TABLE = "custom_categories"
    PEOPLE_TABLE = "user_friends"

    def __init__(self, client: Client, user_id: str):
        if not user_id:
            raise UnauthorizedError()
        self._client = client
        self.user_id = str(user_id)

    def _execute(self, operation: str, query: Any) -> list[dict[str, Any]]:
        try:
            result = query.execute()
        except BACKEND_ERRORS as error:
            logger.error("Supabase error during %s: user=%s, error=%s", operation, self.user_id, error)
            raise StorageOperationError(operation, str(error)) from error
        return list(getattr(result, "data", None) or [])

    def _people_by_id(self) -> dict[str, Person]:
        return {person.id: person for person in self.list_people()}

    def list_recommendations(self) -> list[Recommendation]:
        rows = self._execute(
            "list_recommendations",
            self._client.table(self.RECOMMENDATIONS_TABLE)
            .select(RECOMMENDATION_COLUMNS)
            .eq("user_id", self.user_id)
            .order("created_at", desc=True),
        )
        people = self._people_by_id()
        return [_row_to_recommendation(row, people) for row in rows]

    def get_recommendation(self, recommendation_id: str) -> Optional[Recommendation]:
        rows = self._execute(
            "get_recommendation",
            self._client.table(self.RECOMMENDATIONS_TABLE)
            .select(RECOMMENDATION_COLUMNS)
            .eq("id", recommendation_id)
            .eq("user_id", self.user_id)
            .limit(1),
        )
        if not rows:
            return None
        return _row_to_recommendation(rows[0], self._people_by_id())

    def require_recommendation(self, recommendation_id: str) -> Recommendation:
        rec = self.get_recommendation(recommendation_id)
        if rec is None:
            self._raise_missing_or_foreign(recommendation_id)
        return rec

    def list_recommendations_by_type(self, type_value: str) -> list[Recommendation]:
        rows = self._execute(
            "list_recommendations_by_type",
            self._client.table(self.RECOMMENDATIONS_TABLE)
            .select(RECOMMENDATION_COLUMNS)
            .eq("user_id", self.user_id)
            .eq("type", type_value)
            .order("created_at", desc=True),
        )
        people = self._people_by_id()
        return [_row_to_recommendation(row, people) for row in rows]

    def add_recommendation(self, recommendation: Recommendation) -> Recommendation:
        payload = self._recommendation_payload(recommendation)
        payload["id"] = recommendation.id
        payload["user_id"] = self.user_id
        payload["created_at"] = _now_utc().isoformat()

        rows = self._execute(
            "add_recommendation",
            self._client.table(self.RECOMMENDATIONS_TABLE).insert(payload),
        )
        if not rows:
            raise StorageOperationError("add_recommendation", "no row returned")

        logger.info("Added recommendation: id=%s, user=%s", recommendation.id, self.user_id)
        return _row_to_recommendation(rows[0], {recommendation.recommender.id: recommendation.recommender})

    def update_recommendation(self, recommendation: Recommendation) -> Recommendation:
        rows = self._execute(
            "update_recommendation",
            self._client.table(self.RECOMMENDATIONS_TABLE)
            .update(self._recommendation_payload(recommendation))
            .eq("id", recommendation.id)
            .eq("user_id", self.user_id),
        )
        if not rows:
            self._raise_missing_or_foreign(recommendation.id)

        logger.info("Updated recommendation: id=%s, user=%s", recommendation.id, self.user_id)
        return _row_to_recommendation(rows[0], {recommendation.recommender.id: recommendation.recommender})

    def delete_recommendation(self, recommendation_id: str) -> None:
        rows = self._execute(
            "delete_recommendation",
            self._client.table(self.RECOMMENDATIONS_TABLE)
            .delete()
            .eq("id", recommendation_id)
            .eq("user_id", self.user_id),
        )
        if not rows:
            self._raise_missing_or_foreign(recommendation_id)

        logger.info("Deleted recommendation: id=%s, user=%s", recommendation_id, self.user_id)

    def _recommendation_payload(self, recommendation: Recommendation) -> dict[str, Any]:
        return {
            "title": recommendation.title,
            "type": recommendation.type.value,
            "recommender_id": recommendation.recommender.id,
            "reason": recommendation.reason,
            "source": recommendation.source,
            "date": recommendation.date,
            "is_completed": recommendation.is_completed,
            "custom_category": recommendation.custom_category,
        }

    def _raise_missing_or_foreign(self, recommendation_id: str) -> None:
        rows = self._execute(
            "lookup_owner",
            self._client.table(self.RECOMMENDATIONS_TABLE)
            .select("id")
            .eq("id", recommendation_id)
            .limit(1),
        )
        if rows:
            logger.warning(
                "Blocked write to another user's recommendation: id=%s, user=%s",
                recommendation_id,
                self.user_id,
            )
            raise UnauthorizedError("Unauthorized: recommendation belongs to another account")
        raise RecommendationNotFoundError(recommendation_id)

    def list_people(self) -> list[Person]:
        rows = self._execute(
            "list_people",
            self._client.table(self.PEOPLE_TABLE)
            .select(PEOPLE_COLUMNS)
            .eq("user_id", self.user_id),
        )
        return [_row_to_person(row) for row in rows]

    def get_person(self, person_id: str) -> Optional[Person]:
        rows = self._execute(
            "get_person",
            self._client.table(self.PEOPLE_TABLE)
            .select(PEOPLE_COLUMNS)
            .eq("id", person_id)
            .eq("user_id", self.user_id)
            .limit(1),
        )
        return _row_to_person(rows[0]) if rows else None

    def add_person(self, person: Person) -> Person:
        payload = {
            "id": person.id,
            "user_id": self.user_id,
            "friend_name": person.name,
            "avatar_url": person.avatar or AVATAR_PLACEHOLDER,
            "updated_at": _now_utc().isoformat(),
        }
        rows = self._execute(
            "add_person",
            self._client.table(self.PEOPLE_TABLE).insert(payload),
        )
        if not rows:
            raise StorageOperationError("add_person", "no row returned")

        logger.info("Added person: id=%s, user=%s", person.id, self.user_id)
        return _row_to_person(rows[0])

    def list_categories(self) -> list[CustomCategory]:
        rows = self._execute(
            "list_categories",
            self._client.table(self.CATEGORIES_TABLE)
            .select(CATEGORY_COLUMNS)
            .eq("user_id", self.user_id)
            .order("created_at", desc=True),
        )
        return [_row_to_category(row) for row in rows]

    def add_category(self, category: CustomCategory) -> CustomCategory:
        existing = self._execute(
            "add_category",
            self._client.table(self.CATEGORIES_TABLE)
            .select("id")
            .eq("user_id", self.user_id)
            .eq("type", category.type)
            .limit(1),
        )
        if existing:
            raise CategoryConflictError(category.type)

        payload = {
            "type": category.type,
            "label": category.label,
            "color": category.color or DEFAULT_CATEGORY_COLOR,
            "user_id": self.user_id,
            "created_at": _now_utc().isoformat(),
        }
        rows = self._execute(
            "add_category",
            self._client.table(self.CATEGORIES_TABLE).insert(payload),
        )
        if not rows:
            raise StorageOperationError("add_category", "no row returned")

        stored = _row_to_category(rows[0])
        stored.icon = category.icon
        logger.info("Added custom category: type=%s, user=%s", stored.type, self.user_id)
        return stored
