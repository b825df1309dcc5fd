# rectrack/app/schemas/categories.py
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, Field, field_validator

from rectrack.app.domain.models import CustomCategory

COLOR_OPTIONS = (
    "bg-blue-50",
    "bg-purple-50",
    "bg-pink-50",
    "bg-green-50",
    "bg-amber-50",
    "bg-red-50",
    "bg-orange-50",
    "bg-teal-50",
    "bg-gray-50",
)


class CategoryCreate(BaseModel):
    label: str = Field(..., min_length=2, max_length=30)
    color: Optional[str] = None
    icon: Optional[str] = Field(default=None, max_length=40)

    @field_validator("label")
    @classmethod
    def _strip_label(cls, value: str) -> str:
        stripped = value.strip()
        if len(stripped) < 2:
            raise ValueError("Category name must be at least 2 characters")
        return stripped

    @field_validator("color")
    @classmethod
    def _known_color(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and value not in COLOR_OPTIONS:
            raise ValueError(f"Unknown color: {value}")
        return value


class CategoryResponse(BaseModel):
    id: Optional[str] = None
    type: str
    label: str
    color: Optional[str] = None
    icon: Optional[str] = None

    @classmethod
    def from_domain(cls, category: CustomCategory) -> "CategoryResponse":
        return cls(
            id=category.id,
            type=category.type,
            label=category.label,
            color=category.color,
            icon=category.icon,
        )
