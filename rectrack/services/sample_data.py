# rectrack/services/sample_data.py
"""Demo content shown to visitors so an empty session still has something to browse."""
from __future__ import annotations

import copy

from rectrack.app.domain.models import (
    Person,
    Recommendation,
    RecommendationOrigin,
    RecommendationType,
)

_SAMPLE = RecommendationOrigin.SAMPLE

SAMPLE_PEOPLE: tuple[Person, ...] = (
    Person(id="demo-person-1", name="Sarah Johnson", avatar="https://i.pravatar.cc/150?img=1"),
    Person(id="demo-person-2", name="Michael Chen", avatar="https://i.pravatar.cc/150?img=2"),
    Person(id="demo-person-3", name="Emma Thompson", avatar="https://i.pravatar.cc/150?img=3"),
    Person(id="demo-person-4", name="David Rodriguez", avatar="https://i.pravatar.cc/150?img=4"),
)

SAMPLE_RECOMMENDATIONS: tuple[Recommendation, ...] = (
    Recommendation(
        id="demo-1",
        title="Project Hail Mary",
        type=RecommendationType.BOOK,
        recommender=SAMPLE_PEOPLE[0],
        reason="Incredible sci-fi with actual science. The character development is amazing and there are some great twists.",
        date="2023-05-15",
        origin=_SAMPLE,
    ),
    Recommendation(
        id="demo-2",
        title="Everything Everywhere All at Once",
        type=RecommendationType.MOVIE,
        recommender=SAMPLE_PEOPLE[1],
        reason="Mind-bending multiverse story with heart. It's funny, sad, and thought-provoking all at once.",
        source="Available on Prime Video",
        date="2023-06-22",
        is_completed=True,
        origin=_SAMPLE,
    ),
    Recommendation(
        id="demo-3",
        title="Succession",
        type=RecommendationType.TV,
        recommender=SAMPLE_PEOPLE[2],
        reason="Best drama on television. The writing and acting are phenomenal.",
        source="HBO Max",
        date="2023-07-10",
        origin=_SAMPLE,
    ),
    Recommendation(
        id="demo-4",
        title="Overnight Oats with Berries",
        type=RecommendationType.RECIPE,
        recommender=SAMPLE_PEOPLE[3],
        reason="Quick, healthy breakfast that you can prep the night before. Tastes amazing with fresh berries.",
        source="They'll send me the link",
        date="2023-08-05",
        is_completed=True,
        origin=_SAMPLE,
    ),
    Recommendation(
        id="demo-5",
        title="The Bear",
        type=RecommendationType.TV,
        recommender=SAMPLE_PEOPLE[0],
        reason="Intense, realistic look at restaurant kitchens with great characters and storytelling.",
        source="Hulu",
        date="2023-08-12",
        origin=_SAMPLE,
    ),
    Recommendation(
        id="demo-6",
        title="Lucali",
        type=RecommendationType.RESTAURANT,
        recommender=SAMPLE_PEOPLE[1],
        reason="Best pizza in Brooklyn, worth the wait.",
        source="Carroll Gardens",
        date="2023-09-02",
        origin=_SAMPLE,
    ),
    Recommendation(
        id="demo-7",
        title="Hardcore History",
        type=RecommendationType.PODCAST,
        recommender=SAMPLE_PEOPLE[2],
        reason="Long episodes, but the storytelling makes history feel alive.",
        date="2023-09-18",
        origin=_SAMPLE,
    ),
)

SAMPLE_IDS = frozenset(rec.id for rec in SAMPLE_RECOMMENDATIONS)


def sample_people() -> list[Person]:
    return copy.deepcopy(list(SAMPLE_PEOPLE))


def sample_recommendations() -> list[Recommendation]:
    return copy.deepcopy(list(SAMPLE_RECOMMENDATIONS))
