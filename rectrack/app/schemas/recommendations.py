# rectrack/app/schemas/recommendations.py
from __future__ import annotations

import datetime as dt
from typing import Optional

from pydantic import BaseModel, Field

from rectrack.app.domain.models import (
    Person,
    Recommendation,
    RecommendationOrigin,
    RecommendationType,
    today_iso,
)


class PersonResponse(BaseModel):
    id: str
    name: str
    avatar: Optional[str] = None

    @classmethod
    def from_domain(cls, person: Person) -> "PersonResponse":
        return cls(id=person.id, name=person.name, avatar=person.avatar)


class PersonInput(BaseModel):
    """Pick an existing person by id, or type a new name."""
    id: Optional[str] = None
    name: str = Field(..., min_length=1, max_length=100)
    avatar: Optional[str] = None


class PersonCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)
    avatar: Optional[str] = None


class RecommendationResponse(BaseModel):
    id: str
    title: str
    type: RecommendationType
    recommender: PersonResponse
    reason: Optional[str] = None
    source: Optional[str] = None
    date: str
    isCompleted: bool = False
    customCategory: Optional[str] = None
    origin: RecommendationOrigin

    @classmethod
    def from_domain(cls, rec: Recommendation) -> "RecommendationResponse":
        return cls(
            id=rec.id,
            title=rec.title,
            type=rec.type,
            recommender=PersonResponse.from_domain(rec.recommender),
            reason=rec.reason,
            source=rec.source,
            date=rec.date,
            isCompleted=rec.is_completed,
            customCategory=rec.custom_category,
            origin=rec.origin,
        )


class RecommendationCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=200)
    type: RecommendationType
    recommender: PersonInput
    reason: Optional[str] = Field(default=None, max_length=2000)
    source: Optional[str] = Field(default=None, max_length=500)
    date: Optional[dt.date] = None
    isCompleted: bool = False
    customCategory: Optional[str] = Field(default=None, max_length=60)

    def to_domain(self, recommendation_id: str = "") -> Recommendation:
        custom = self.customCategory if self.type == RecommendationType.OTHER else None
        return Recommendation(
            id=recommendation_id,
            title=self.title.strip(),
            type=self.type,
            recommender=Person(
                id=self.recommender.id or "",
                name=self.recommender.name,
                avatar=self.recommender.avatar,
            ),
            reason=self.reason,
            source=self.source,
            date=self.date.isoformat() if self.date else today_iso(),
            is_completed=self.isCompleted,
            custom_category=custom or None,
        )


class RecommendationUpdate(RecommendationCreate):
    pass


class CompletionUpdate(BaseModel):
    isCompleted: bool
