from .base import BaseStatusCache
from .memory import InMemoryStatusCache

def get_status_cache(cache_type: str, config: dict) -> BaseStatusCache:
    """
    Factory function to create status cache instances.

    Args:
        cache_type: Type of cache (only 'memory' is session-safe)
        config: Configuration dict with cache-specific settings

    Returns:
        Status cache instance

    Example config:
        {
            'type': 'memory',
            'max_mapping_entries': None
        }
    """
    cache_type = cache_type.lower()

    if cache_type == 'memory':
        return InMemoryStatusCache(
            max_mapping_entries=config.get('max_mapping_entries')
        )
    else:
        raise ValueError(f"Unsupported cache type: {cache_type}. Supported: 'memory'")

__all__ = ['BaseStatusCache', 'InMemoryStatusCache', 'get_status_cache']
