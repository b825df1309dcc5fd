# rectrack/app/domain/models.py
"""
Domain models for recommendations, the people who make them and custom categories.
These are pure data structures with no infrastructure dependencies.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from enum import Enum
from typing import Optional

AVATAR_PLACEHOLDER = "/placeholder.svg"
DEFAULT_CATEGORY_COLOR = "bg-gray-50"
DEFAULT_CATEGORY_ICON = "HelpCircle"


class RecommendationType(str, Enum):
    """Fixed set of recommendation kinds."""
    BOOK = "book"
    MOVIE = "movie"
    TV = "tv"
    RECIPE = "recipe"
    RESTAURANT = "restaurant"
    PODCAST = "podcast"
    OTHER = "other"


class RecommendationOrigin(str, Enum):
    """Where a recommendation was created. Set once, at creation time."""
    SAMPLE = "sample"
    VISITOR = "visitor"
    ACCOUNT = "account"


@dataclass
class Person:
    """Someone who recommends things."""
    id: str
    name: str
    avatar: Optional[str] = None


@dataclass
class Recommendation:
    """
    A single recommended item.

    When ``type`` is OTHER, ``custom_category`` holds the slug of a
    CustomCategory or a free-form label.
    """
    id: str
    title: str
    type: RecommendationType
    recommender: Person
    date: str  # YYYY-MM-DD format
    reason: Optional[str] = None
    source: Optional[str] = None
    is_completed: bool = False
    custom_category: Optional[str] = None
    origin: RecommendationOrigin = RecommendationOrigin.ACCOUNT

    @property
    def is_visitor_authored(self) -> bool:
        return self.origin == RecommendationOrigin.VISITOR


@dataclass
class CustomCategory:
    """User-defined category; ``type`` is the slug derived from ``label``."""
    type: str
    label: str
    id: Optional[str] = None
    color: Optional[str] = DEFAULT_CATEGORY_COLOR
    icon: Optional[str] = DEFAULT_CATEGORY_ICON


@dataclass
class TransferReport:
    """Outcome of moving visitor recommendations into a new account."""
    attempted: int = 0
    succeeded: int = 0
    categories_copied: int = 0
    failed_ids: list[str] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return self.attempted - self.succeeded

    @property
    def partial(self) -> bool:
        """True when at least one item could not be moved."""
        return self.succeeded < self.attempted


def today_iso() -> str:
    return date.today().isoformat()
