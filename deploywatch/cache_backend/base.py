from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional

from ..core.models import CardSummary, FieldMappingBundle


class BaseStatusCache(ABC):
    """
    Base class for the session status cache.

    Holds two independent stores: the card list (a single entry replaced
    wholesale) and resolved field-mapping bundles keyed by target key.
    Keys are exact-match, case-sensitive target identifiers.

    Only one writer (the orchestrator) and one reader exist per session, so
    implementations need no locking.
    """

    @abstractmethod
    def get_cards(self) -> Optional[List[CardSummary]]:
        """
        Get the cached card list.

        Returns:
            Cached cards or None on a miss
        """
        pass

    @abstractmethod
    def put_cards(self, cards: List[CardSummary]):
        """Replace the cached card list"""
        pass

    @abstractmethod
    def invalidate_cards(self):
        """Drop the cached card list so the next read misses"""
        pass

    @abstractmethod
    def get_mappings(self, target_key: str) -> Optional[FieldMappingBundle]:
        """
        Get the resolved mapping bundle for a target.

        Args:
            target_key: Target identifier (exact match)

        Returns:
            Cached bundle or None on a miss
        """
        pass

    @abstractmethod
    def put_mappings(self, target_key: str, bundle: FieldMappingBundle):
        """Store the resolved mapping bundle for a target"""
        pass

    @abstractmethod
    def clear(self):
        """Clear both stores"""
        pass

    @abstractmethod
    def get_stats(self) -> Dict[str, Any]:
        """
        Get cache statistics.

        Returns:
            Dict with hits, misses, sizes and invalidation counts
        """
        pass
