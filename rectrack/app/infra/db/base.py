# rectrack/app/infra/db/base.py
"""
Abstract base class for recommendation storage backends.
The storage facade picks one implementation per call; callers never see which.
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

from rectrack.app.domain.errors import RecommendationNotFoundError
from rectrack.app.domain.models import CustomCategory, Person, Recommendation


class StorageBackend(ABC):
    """
    Abstract interface for recommendation, people and category storage.

    Implementations:
    - RemoteBackend: Supabase tables, every query scoped to one user id
    - VisitorBackend: the in-memory store of an anonymous visitor session
    """

    @abstractmethod
    def list_recommendations(self) -> list[Recommendation]:
        """
        Get every recommendation visible to the caller, newest first.

        Returns:
            List of recommendations
        """
        pass

    @abstractmethod
    def get_recommendation(self, recommendation_id: str) -> Optional[Recommendation]:
        """
        Get a recommendation by its ID.

        Args:
            recommendation_id: The recommendation ID

        Returns:
            The recommendation, or None if not found for this caller
        """
        pass

    def require_recommendation(self, recommendation_id: str) -> Recommendation:
        """
        Get a recommendation the caller is allowed to change.

        Raises:
            RecommendationNotFoundError: If no such recommendation exists
            UnauthorizedError: If it belongs to someone else
        """
        rec = self.get_recommendation(recommendation_id)
        if rec is None:
            raise RecommendationNotFoundError(recommendation_id)
        return rec

    def list_recommendations_by_type(self, type_value: str) -> list[Recommendation]:
        """
        Get recommendations of one type.

        Args:
            type_value: A RecommendationType value

        Returns:
            List of recommendations of that type
        """
        return [rec for rec in self.list_recommendations() if rec.type.value == type_value]

    @abstractmethod
    def add_recommendation(self, recommendation: Recommendation) -> Recommendation:
        """
        Store a new recommendation.

        Args:
            recommendation: The recommendation, id already assigned

        Returns:
            The stored recommendation
        """
        pass

    @abstractmethod
    def update_recommendation(self, recommendation: Recommendation) -> Recommendation:
        """
        Replace an existing recommendation.

        Args:
            recommendation: The new state, matched by id

        Returns:
            The stored recommendation

        Raises:
            RecommendationNotFoundError: If no such recommendation exists
            UnauthorizedError: If it belongs to someone else
        """
        pass

    @abstractmethod
    def delete_recommendation(self, recommendation_id: str) -> None:
        """
        Remove a recommendation.

        Args:
            recommendation_id: The recommendation to remove

        Raises:
            RecommendationNotFoundError: If no such recommendation exists
            UnauthorizedError: If it belongs to someone else
        """
        pass

    @abstractmethod
    def list_people(self) -> list[Person]:
        """Get every person known to this store."""
        pass

    @abstractmethod
    def add_person(self, person: Person) -> Person:
        """
        Store a new person.

        Args:
            person: The person, id already assigned

        Returns:
            The stored person
        """
        pass

    def add_recommender(self, person: Person) -> Person:
        """Store a person created while editing a recommendation."""
        return self.add_person(person)

    def get_person(self, person_id: str) -> Optional[Person]:
        for person in self.list_people():
            if person.id == person_id:
                return person
        return None

    @abstractmethod
    def list_categories(self) -> list[CustomCategory]:
        """Get every custom category, newest first."""
        pass

    @abstractmethod
    def add_category(self, category: CustomCategory) -> CustomCategory:
        """
        Store a new custom category.

        Args:
            category: The category, slug already derived

        Returns:
            The stored category (with id)

        Raises:
            CategoryConflictError: If the slug is already taken
        """
        pass
