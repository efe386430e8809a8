from typing import Any, Dict, List, Optional
from cachetools import LRUCache

from ..core.models import CardSummary, FieldMappingBundle
from .base import BaseStatusCache


class InMemoryStatusCache(BaseStatusCache):
    """
    In-memory status cache for a single UI session.

    Entries never expire and nothing is evicted unless a bound is given.
    Cards are dropped only through invalidate_cards(). With
    ``max_mapping_entries`` set, mapping bundles move to an LRU store of that
    size for long-lived processes.
    """

    def __init__(self, max_mapping_entries: Optional[int] = None):
        """
        Initialize in-memory cache.

        Args:
            max_mapping_entries: Maximum number of mapping bundles kept, or None
                for no limit
        """
        if max_mapping_entries is not None and max_mapping_entries < 1:
            raise ValueError(f"max_mapping_entries must be positive, got {max_mapping_entries}")

        self.max_mapping_entries = max_mapping_entries
        self._cards: Optional[List[CardSummary]] = None
        self._mappings: Dict[str, FieldMappingBundle] = (
            {} if max_mapping_entries is None else LRUCache(maxsize=max_mapping_entries)
        )
        self.stats = self._empty_stats()

    @staticmethod
    def _empty_stats() -> Dict[str, int]:
        return {
            'card_hits': 0,
            'card_misses': 0,
            'card_invalidations': 0,
            'mapping_hits': 0,
            'mapping_misses': 0,
        }

    def get_cards(self) -> Optional[List[CardSummary]]:
        if self._cards is None:
            self.stats['card_misses'] += 1
            return None
        self.stats['card_hits'] += 1
        return list(self._cards)

    def put_cards(self, cards: List[CardSummary]):
        self._cards = list(cards)

    def invalidate_cards(self):
        self._cards = None
        self.stats['card_invalidations'] += 1

    def get_mappings(self, target_key: str) -> Optional[FieldMappingBundle]:
        bundle = self._mappings.get(target_key)
        if bundle is None:
            self.stats['mapping_misses'] += 1
            return None
        self.stats['mapping_hits'] += 1
        return bundle

    def put_mappings(self, target_key: str, bundle: FieldMappingBundle):
        self._mappings[target_key] = bundle

    def clear(self):
        self._cards = None
        self._mappings.clear()
        self.stats = self._empty_stats()

    def get_stats(self) -> Dict[str, Any]:
        return {
            **self.stats,
            'cards_cached': self._cards is not None,
            'mapping_entries': len(self._mappings),
            'max_mapping_entries': self.max_mapping_entries,
        }
