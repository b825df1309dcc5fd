from __future__ import annotations

import json
from pathlib import Path

import pytest

from rectrack.app.domain.errors import CategoryConflictError, RecommendationNotFoundError
from rectrack.app.domain.models import (
    CustomCategory,
    Person,
    Recommendation,
    RecommendationOrigin,
    RecommendationType,
)
from rectrack.app.infra.storage.base import PEOPLE_KEY, RECOMMENDATIONS_KEY
from rectrack.app.infra.storage.json_file_store import JsonFileKeyValueStore
from rectrack.app.services.visitor_store import (
    VisitorSessionRegistry,
    VisitorStore,
    is_valid_session_id,
)
from rectrack.services.sample_data import SAMPLE_IDS, SAMPLE_RECOMMENDATIONS


class FakeClock:
    def __init__(self) -> None:
        self.now = 1000.0

    def __call__(self) -> float:
        return self.now


def _visitor_rec(rec_id: str = "v1", title: str = "Severance") -> Recommendation:
    return Recommendation(
        id=rec_id,
        title=title,
        type=RecommendationType.TV,
        recommender=Person(id="friend-1", name="Leo"),
        date="2024-05-01",
        origin=RecommendationOrigin.VISITOR,
    )


class TestSeeding:
    def test_fresh_store_shows_samples(self) -> None:
        store = VisitorStore()

        assert {rec.id for rec in store.list()} == set(SAMPLE_IDS)
        assert len(store.list_people()) == 4

    def test_samples_can_be_disabled(self) -> None:
        store = VisitorStore(show_samples=False)

        assert store.list() == []
        assert store.list_people() == []


class TestVisitorRecommendations:
    def test_added_recommendation_is_listed(self) -> None:
        store = VisitorStore()
        store.add(_visitor_rec())

        assert "v1" in {rec.id for rec in store.list()}
        assert store.visitor_count() == 1

    def test_delete_removes_from_list(self) -> None:
        store = VisitorStore()
        store.add(_visitor_rec())

        store.remove("v1")

        assert "v1" not in {rec.id for rec in store.list()}
        assert store.visitor_count() == 0

    def test_update_replaces_in_place(self) -> None:
        store = VisitorStore()
        store.add(_visitor_rec())

        store.update(_visitor_rec(title="Severance S2"))

        assert store.get("v1").title == "Severance S2"

    def test_returned_objects_are_copies(self) -> None:
        store = VisitorStore()
        store.add(_visitor_rec())

        listed = store.get("v1")
        listed.title = "mutated"

        assert store.get("v1").title == "Severance"

    def test_unknown_ids_raise(self) -> None:
        store = VisitorStore()

        with pytest.raises(RecommendationNotFoundError):
            store.remove("nope")
        with pytest.raises(RecommendationNotFoundError):
            store.update(_visitor_rec(rec_id="nope"))

    def test_store_does_not_enforce_visitor_limit(self) -> None:
        store = VisitorStore(show_samples=False)
        for index in range(20):
            store.add(_visitor_rec(rec_id=f"v{index}"))

        assert store.visitor_count() == 20


class TestSampleProtection:
    def test_deleting_a_sample_hides_it(self) -> None:
        store = VisitorStore()

        store.remove("demo-1")

        assert "demo-1" not in {rec.id for rec in store.list()}
        assert store.get("demo-1") is None

    def test_deleting_a_sample_keeps_the_definition(self) -> None:
        original_title = next(r.title for r in SAMPLE_RECOMMENDATIONS if r.id == "demo-1")
        VisitorStore().remove("demo-1")

        fresh = VisitorStore()

        assert fresh.get("demo-1") is not None
        assert fresh.get("demo-1").title == original_title

    def test_editing_a_sample_shadow_copies_it(self) -> None:
        store = VisitorStore()
        edited = store.get("demo-2")
        edited.title = "My edit"
        edited.origin = RecommendationOrigin.VISITOR

        store.update(edited)

        stored = store.get("demo-2")
        assert stored.title == "My edit"
        assert stored.origin == RecommendationOrigin.SAMPLE
        assert next(r.title for r in SAMPLE_RECOMMENDATIONS if r.id == "demo-2") != "My edit"
        assert VisitorStore().get("demo-2").title != "My edit"

    def test_hidden_sample_cannot_be_edited(self) -> None:
        store = VisitorStore()
        sample = store.get("demo-3")
        store.remove("demo-3")

        with pytest.raises(RecommendationNotFoundError):
            store.update(sample)

    def test_samples_do_not_count_towards_visitor_total(self) -> None:
        assert VisitorStore().visitor_count() == 0


class TestCategories:
    def test_add_assigns_temp_id(self) -> None:
        store = VisitorStore()

        category = store.add_category(CustomCategory(type="wine", label="Wine"))

        assert category.id.startswith("temp-")
        assert store.list_categories()[0].type == "wine"

    def test_duplicate_slug_rejected(self) -> None:
        store = VisitorStore()
        store.add_category(CustomCategory(type="board-games", label="Board Games"))

        with pytest.raises(CategoryConflictError):
            store.add_category(CustomCategory(type="board-games", label="board  games"))
        assert len(store.list_categories()) == 1


class TestPersistence:
    def test_writes_go_through_to_the_mirror(self, tmp_path: Path) -> None:
        mirror = JsonFileKeyValueStore(tmp_path, "session-a")
        store = VisitorStore(mirror=mirror)

        store.add(_visitor_rec())

        saved = json.loads(mirror.get(RECOMMENDATIONS_KEY))
        assert "v1" in {item["id"] for item in saved}
        assert json.loads(mirror.get(PEOPLE_KEY))

    def test_state_survives_a_reload(self, tmp_path: Path) -> None:
        store = VisitorStore(mirror=JsonFileKeyValueStore(tmp_path, "session-a"))
        store.add(_visitor_rec())
        store.remove("demo-1")
        edited = store.get("demo-2")
        edited.is_completed = False
        store.update(edited)
        store.add_category(CustomCategory(type="wine", label="Wine"))

        reloaded = VisitorStore(mirror=JsonFileKeyValueStore(tmp_path, "session-a"))

        ids = {rec.id for rec in reloaded.list()}
        assert "v1" in ids
        assert "demo-1" not in ids
        assert reloaded.get("demo-2").is_completed is False
        assert reloaded.visitor_count() == 1
        assert [c.type for c in reloaded.list_categories()] == ["wine"]

    def test_corrupt_file_starts_fresh(self, tmp_path: Path) -> None:
        (tmp_path / "broken.json").write_text("{not json", encoding="utf-8")

        store = VisitorStore(mirror=JsonFileKeyValueStore(tmp_path, "broken"))

        assert {rec.id for rec in store.list()} == set(SAMPLE_IDS)


class TestVisitorSessionRegistry:
    def test_sessions_are_isolated(self) -> None:
        registry = VisitorSessionRegistry()
        registry.get_or_create("a").add(_visitor_rec())

        assert registry.get_or_create("a").visitor_count() == 1
        assert registry.get_or_create("b").visitor_count() == 0

    def test_discard_drops_the_session(self) -> None:
        registry = VisitorSessionRegistry()
        registry.get_or_create("a").add(_visitor_rec())

        assert registry.discard("a") is True
        assert registry.discard("a") is False
        assert registry.get_or_create("a").visitor_count() == 0

    def test_persistent_discard_removes_file(self, tmp_path: Path) -> None:
        registry = VisitorSessionRegistry(persistent=True, directory=tmp_path)
        registry.get_or_create("abc").add(_visitor_rec())
        assert (tmp_path / "abc.json").exists()

        registry.discard("abc")

        assert not (tmp_path / "abc.json").exists()

    def test_idle_session_is_evicted(self) -> None:
        clock = FakeClock()
        registry = VisitorSessionRegistry(idle_seconds=60, clock=clock)
        registry.get_or_create("old").add(_visitor_rec())
        clock.now += 30
        registry.get_or_create("recent")

        clock.now += 45
        registry.get_or_create("new")

        assert len(registry) == 2
        assert registry.discard("old") is False
        assert registry.get_or_create("old").visitor_count() == 0

    def test_activity_keeps_a_session_alive(self) -> None:
        clock = FakeClock()
        registry = VisitorSessionRegistry(idle_seconds=60, clock=clock)
        registry.get_or_create("a").add(_visitor_rec())
        for _ in range(5):
            clock.now += 50
            registry.get_or_create("a")

        assert registry.get_or_create("a").visitor_count() == 1

    def test_session_cap_drops_least_recently_seen(self) -> None:
        clock = FakeClock()
        registry = VisitorSessionRegistry(max_sessions=3, clock=clock)
        for session_id in ("a", "b", "c"):
            registry.get_or_create(session_id)
            clock.now += 1
        registry.get_or_create("a")
        clock.now += 1

        registry.get_or_create("d")

        assert len(registry) == 3
        assert registry.discard("b") is False
        assert registry.discard("a") is True


class TestSessionIds:
    def test_generated_ids_are_valid(self) -> None:
        assert is_valid_session_id(VisitorSessionRegistry().new_session_id())

    @pytest.mark.parametrize(
        "session_id",
        ["", "abc", "a.b", "a_b", "../" + "0" * 32, "A" * 32, "0" * 33, "0" * 32 + "\n"],
    )
    def test_malformed_ids_are_rejected(self, session_id: str) -> None:
        assert is_valid_session_id(session_id) is False
