# rectrack/app/infra/storage/base.py
"""
Abstract base class for the visitor key-value store.
This interface allows swapping where visitor data is mirrored (JSON files, Redis, etc.)
"""
from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Optional

RECOMMENDATIONS_KEY = "recommendations"
PEOPLE_KEY = "people"
CUSTOM_CATEGORIES_KEY = "custom_categories"


class KeyValueStore(ABC):
    """
    String-keyed, string-valued store for a single visitor session.

    Implementations:
    - JsonFileKeyValueStore: one JSON document per visitor session
    """

    @abstractmethod
    def get(self, key: str) -> Optional[str]:
        """
        Read a value.

        Args:
            key: The key to read

        Returns:
            The stored string, or None if the key was never written
        """
        pass

    @abstractmethod
    def set(self, key: str, value: str) -> None:
        """
        Write a value, replacing any previous one.

        Args:
            key: The key to write
            value: Serialized payload
        """
        pass

    @abstractmethod
    def clear(self) -> None:
        """Drop every key for this session."""
        pass
