from __future__ import annotations

import pytest

from rectrack.app.domain.errors import (
    CategoryConflictError,
    RecommendationNotFoundError,
    StorageOperationError,
    UnauthorizedError,
)
from rectrack.app.domain.models import (
    AVATAR_PLACEHOLDER,
    Person,
    Recommendation,
    RecommendationOrigin,
    RecommendationType,
)
from rectrack.app.services.visitor_store import VisitorStore


def _new_rec(title: str = "Dune", recommender: Person | None = None) -> Recommendation:
    return Recommendation(
        id="",
        title=title,
        type=RecommendationType.BOOK,
        recommender=recommender or Person(id="", name="Ana"),
        date="2024-03-01",
    )


class TestVisitorRouting:
    def test_add_then_list(self, make_facade) -> None:
        store = VisitorStore()
        facade = make_facade(visitor_store=store)

        created = facade.add_recommendation(_new_rec())

        assert created.id
        assert created.origin == RecommendationOrigin.VISITOR
        assert created.id in {rec.id for rec in facade.list_recommendations()}
        assert store.visitor_count() == 1

    def test_unknown_recommender_is_created_in_visitor_store(self, make_facade) -> None:
        store = VisitorStore()
        facade = make_facade(visitor_store=store)

        created = facade.add_recommendation(_new_rec(recommender=Person(id="elsewhere-9", name=" Ana ")))

        assert created.recommender.id != "elsewhere-9"
        assert created.recommender.name == "Ana"
        assert created.recommender.avatar == AVATAR_PLACEHOLDER
        assert store.get_person(created.recommender.id) is not None

    def test_known_recommender_is_reused(self, make_facade) -> None:
        store = VisitorStore()
        facade = make_facade(visitor_store=store)
        people_before = len(store.list_people())

        created = facade.add_recommendation(_new_rec(recommender=Person(id="demo-person-1", name="ignored")))

        assert created.recommender.name == "Sarah Johnson"
        assert len(store.list_people()) == people_before

    def test_delete_then_absent(self, make_facade) -> None:
        facade = make_facade(visitor_store=VisitorStore())
        created = facade.add_recommendation(_new_rec())

        facade.delete_recommendation(created.id)

        assert facade.get_recommendation(created.id) is None

    def test_delete_unknown_raises_not_found(self, make_facade) -> None:
        facade = make_facade(visitor_store=VisitorStore())

        with pytest.raises(RecommendationNotFoundError):
            facade.delete_recommendation("missing")

    def test_writes_disabled_rejects_additions(self, make_facade) -> None:
        store = VisitorStore()
        facade = make_facade(visitor_store=store, allow_visitor_writes=False)
        before = store.list()

        with pytest.raises(UnauthorizedError):
            facade.add_recommendation(_new_rec(recommender=Person(id="demo-person-1", name="Sarah")))
        with pytest.raises(UnauthorizedError):
            facade.add_recommendation(_new_rec())
        with pytest.raises(UnauthorizedError):
            facade.add_category("Board Games")

        assert store.list() == before
        assert store.list_categories() == []

    def test_failed_update_creates_no_person(self, make_facade) -> None:
        store = VisitorStore()
        facade = make_facade(visitor_store=store)
        people_before = store.list_people()
        ghost = _new_rec(recommender=Person(id="", name="Ghost"))
        ghost.id = "missing"

        with pytest.raises(RecommendationNotFoundError):
            facade.update_recommendation(ghost)

        assert store.list_people() == people_before

    def test_edit_with_new_recommender_allowed_when_writes_disabled(self, make_facade) -> None:
        store = VisitorStore()
        facade = make_facade(visitor_store=store, allow_visitor_writes=False)
        edited = store.get("demo-1")
        edited.recommender = Person(id="", name="Noor")

        updated = facade.update_recommendation(edited)

        assert updated.recommender.name == "Noor"
        assert store.get_person(updated.recommender.id) is not None
        assert store.visitor_count() == 0

    def test_set_completed_on_sample(self, make_facade) -> None:
        facade = make_facade(visitor_store=VisitorStore())

        updated = facade.set_completed("demo-1", True)

        assert updated.is_completed is True
        assert facade.get_recommendation("demo-1").is_completed is True

    def test_set_completed_unknown_raises(self, make_facade) -> None:
        facade = make_facade(visitor_store=VisitorStore())

        with pytest.raises(RecommendationNotFoundError):
            facade.set_completed("missing", True)

    def test_no_session_and_no_store_is_unauthorized(self, make_facade) -> None:
        facade = make_facade()

        with pytest.raises(UnauthorizedError):
            facade.list_recommendations()

    def test_empty_id_lookup_returns_none(self, make_facade) -> None:
        assert make_facade(visitor_store=VisitorStore()).get_recommendation("") is None


class TestRemoteRouting:
    def test_add_is_scoped_to_the_user(self, fake_supabase, make_facade) -> None:
        token = fake_supabase.auth.add_user("user-1")
        facade = make_facade(token=token, visitor_store=VisitorStore())

        created = facade.add_recommendation(_new_rec())

        assert created.origin == RecommendationOrigin.ACCOUNT
        rows = fake_supabase.tables["recommendations"]
        assert [row["user_id"] for row in rows] == ["user-1"]
        assert fake_supabase.tables["user_friends"][0]["friend_name"] == "Ana"
        assert facade.get_recommendation(created.id).recommender.name == "Ana"

    def test_signed_in_user_never_sees_visitor_samples(self, fake_supabase, make_facade) -> None:
        token = fake_supabase.auth.add_user("user-1")
        facade = make_facade(token=token, visitor_store=VisitorStore())

        assert facade.list_recommendations() == []

    def test_other_users_rows_are_invisible(self, fake_supabase, make_facade) -> None:
        owner = make_facade(token=fake_supabase.auth.add_user("user-1"))
        created = owner.add_recommendation(_new_rec())

        other = make_facade(token=fake_supabase.auth.add_user("user-2", email="b@example.com"))

        assert other.get_recommendation(created.id) is None
        assert other.list_recommendations() == []

    def test_updating_another_users_row_is_unauthorized(self, fake_supabase, make_facade) -> None:
        owner = make_facade(token=fake_supabase.auth.add_user("user-1"))
        created = owner.add_recommendation(_new_rec())
        other = make_facade(token=fake_supabase.auth.add_user("user-2", email="b@example.com"))
        friends_before = list(fake_supabase.tables["user_friends"])

        hijack = Recommendation(
            id=created.id,
            title="Hijacked",
            type=created.type,
            recommender=created.recommender,
            date=created.date,
        )
        with pytest.raises(UnauthorizedError):
            other.update_recommendation(hijack)
        with pytest.raises(UnauthorizedError):
            other.delete_recommendation(created.id)

        rows = fake_supabase.tables["recommendations"]
        assert len(rows) == 1
        assert rows[0]["title"] == "Dune"
        assert fake_supabase.tables["user_friends"] == friends_before

    def test_updating_missing_row_is_not_found(self, fake_supabase, make_facade) -> None:
        facade = make_facade(token=fake_supabase.auth.add_user("user-1"))
        created = facade.add_recommendation(_new_rec())
        facade.delete_recommendation(created.id)

        with pytest.raises(RecommendationNotFoundError):
            facade.set_completed(created.id, True)
        with pytest.raises(RecommendationNotFoundError):
            facade.delete_recommendation(created.id)

    def test_backend_failure_is_wrapped(self, fake_supabase, make_facade) -> None:
        facade = make_facade(token=fake_supabase.auth.add_user("user-1"))
        fake_supabase.fail_when = lambda table, op, payload: table == "recommendations"

        with pytest.raises(StorageOperationError) as exc_info:
            facade.list_recommendations()

        assert exc_info.value.operation == "list_recommendations"

    def test_failed_insert_leaves_no_row(self, fake_supabase, make_facade) -> None:
        facade = make_facade(token=fake_supabase.auth.add_user("user-1"))
        fake_supabase.fail_when = lambda table, op, payload: table == "recommendations" and op == "insert"

        with pytest.raises(StorageOperationError):
            facade.add_recommendation(_new_rec())

        assert fake_supabase.tables.get("recommendations", []) == []

    def test_lost_session_falls_back_to_visitor(self, fake_supabase, make_facade) -> None:
        token = fake_supabase.auth.add_user("user-1")
        facade = make_facade(token=token, visitor_store=VisitorStore())
        fake_supabase.auth.unavailable = True

        ids = {rec.id for rec in facade.list_recommendations()}

        assert "demo-1" in ids


class TestCategories:
    def test_slug_derived_from_label(self, make_facade) -> None:
        facade = make_facade(visitor_store=VisitorStore())

        category = facade.add_category("  Board Games ", color="bg-blue-50")

        assert category.type == "board-games"
        assert category.label == "Board Games"
        assert category.color == "bg-blue-50"

    def test_conflicting_slug_in_visitor_store(self, make_facade) -> None:
        facade = make_facade(visitor_store=VisitorStore())
        facade.add_category("Board Games")

        with pytest.raises(CategoryConflictError):
            facade.add_category("board games")

    def test_conflicting_slug_in_account(self, fake_supabase, make_facade) -> None:
        facade = make_facade(token=fake_supabase.auth.add_user("user-1"))
        facade.add_category("Wine")

        with pytest.raises(CategoryConflictError):
            facade.add_category("WINE")
        assert len(fake_supabase.tables["custom_categories"]) == 1

    def test_same_slug_allowed_for_different_users(self, fake_supabase, make_facade) -> None:
        make_facade(token=fake_supabase.auth.add_user("user-1")).add_category("Wine")
        other = make_facade(token=fake_supabase.auth.add_user("user-2", email="b@example.com"))

        other.add_category("Wine")

        assert [c.type for c in other.list_categories()] == ["wine"]
