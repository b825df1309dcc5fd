# rectrack/services/filtering.py
from __future__ import annotations

from typing import Iterable, Literal, Sequence

from rectrack.app.domain.models import CustomCategory, Recommendation, RecommendationType

SortOrder = Literal["asc", "desc"]

ALL_TAB = "all"


def _matches_tab(rec: Recommendation, tab: str, custom_slugs: set[str]) -> bool:
    if tab == ALL_TAB:
        return True
    if tab == RecommendationType.OTHER.value:
        return rec.type == RecommendationType.OTHER and not rec.custom_category
    if tab in custom_slugs:
        return rec.type == RecommendationType.OTHER and rec.custom_category == tab
    return rec.type.value == tab


def filter_recommendations(
    recommendations: Iterable[Recommendation],
    *,
    tab: str = ALL_TAB,
    search: str | None = None,
    show_completed: bool = True,
    sort_order: SortOrder = "desc",
    custom_categories: Sequence[CustomCategory] = (),
) -> list[Recommendation]:
    """
    Narrow a recommendation list the way the list view does.

    ``tab`` is "all", a RecommendationType value or a custom category slug.
    The "other" tab only keeps items without a custom category.
    """
    custom_slugs = {cat.type for cat in custom_categories}
    needle = (search or "").strip().lower()

    out: list[Recommendation] = []
    for rec in recommendations:
        if not _matches_tab(rec, tab, custom_slugs):
            continue
        if needle and needle not in rec.title.lower():
            continue
        if not show_completed and rec.is_completed:
            continue
        out.append(rec)

    # ISO dates sort lexicographically
    out.sort(key=lambda rec: rec.date, reverse=sort_order == "desc")
    return out
