"""Cache package: key codec, value envelope, facade, idioms, lock"""

from .envelope import CacheValue, FLAG_RAW, FLAG_PICKLED
from .keys import KeyCodec, normalize_keys
from .client import CacheClient
from .lock import LOCK_TIMEOUT, WRITE_LOCK_WAIT, lock_key
from .memcache import Memcache

__all__ = [
    'CacheValue', 'FLAG_RAW', 'FLAG_PICKLED',
    'KeyCodec', 'normalize_keys',
    'CacheClient', 'Memcache',
    'LOCK_TIMEOUT', 'WRITE_LOCK_WAIT', 'lock_key',
]
