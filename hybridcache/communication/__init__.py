"""Communication package: transport ke memcached cluster"""

from .transport import (
    CacheTransport,
    PymemcacheTransport,
    TransportError,
    NotFound,
    NotStored,
    ServerUnavailable,
)

__all__ = [
    'CacheTransport', 'PymemcacheTransport',
    'TransportError', 'NotFound', 'NotStored', 'ServerUnavailable',
]
