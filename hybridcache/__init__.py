"""
hybridcache

Convenience layer di atas memcached client:
- Namespacing dan key escaping
- Serialization policy (pickle atau raw bytes) dengan CAS token dan flags
- Idioms: update via CAS, get-or-add, get-or-set, bulk get_some
- Advisory distributed lock di atas atomic add/delete
"""

from .cache import CacheValue, CacheClient, Memcache
from .communication import NotFound, NotStored, ServerUnavailable, TransportError

__version__ = "1.0.0"

__all__ = [
    'CacheValue', 'CacheClient', 'Memcache',
    'TransportError', 'NotFound', 'NotStored', 'ServerUnavailable',
]
