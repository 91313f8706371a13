"""
Memcache: cache facade + idioms + distributed lock dalam satu client.
"""

from .client import CacheClient
from .idioms import IdiomsMixin
from .lock import LockMixin


class Memcache(LockMixin, IdiomsMixin, CacheClient):
    """
    Namespaced memcached client.

    Contoh penggunaan:
        cache = Memcache(servers=['localhost:11211'])
        with cache.namespaced('users'):
            cache.set(42, {'name': 'ana'})
            cache.get(42).value
        cache.with_lock('report', build_report)
    """
