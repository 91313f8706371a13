"""
Pytest configuration dan shared fixtures.

InMemoryTransport adalah test double untuk CacheTransport dengan semantics
yang sama seperti memcached: atomic add/replace/cas/incr, TTL, CAS token,
dan outcome NotFound/NotStored. Setiap call dihitung di transport.calls.
"""

from collections import Counter
from typing import Dict, List, Optional

import pytest

from hybridcache import Memcache
from hybridcache.communication.transport import NotFound, NotStored, ServerUnavailable


class Entry:
    def __init__(self, data: bytes, flags: int, cas: bytes, expires_at: Optional[float]):
        self.data = data
        self.flags = flags
        self.cas = cas
        self.expires_at = expires_at


class Cluster:
    """State yang di-share oleh semua transport ke 'cluster' yang sama"""

    def __init__(self):
        self.entries: Dict[str, Entry] = {}
        self.now = 0.0
        self.next_cas = 0
        self.flushes = 0

    def advance(self, seconds: float):
        self.now += seconds

    def token(self) -> bytes:
        self.next_cas += 1
        return str(self.next_cas).encode()

    def lookup(self, key: str) -> Optional[Entry]:
        entry = self.entries.get(key)
        if entry is not None and entry.expires_at is not None and entry.expires_at <= self.now:
            del self.entries[key]
            return None
        return entry

    def store(self, key: str, data: bytes, expire: int, flags: int) -> bytes:
        token = self.token()
        expires_at = self.now + expire if expire else None
        self.entries[key] = Entry(data, flags, token, expires_at)
        return token


class InMemoryTransport:
    """CacheTransport test double"""

    def __init__(self, cluster: Optional[Cluster] = None, servers: Optional[List[str]] = None):
        self.cluster = cluster or Cluster()
        self._servers = servers or ['localhost:11211']
        self.calls = Counter()
        self.unavailable = False
        self.error: Optional[Exception] = None

    @property
    def servers(self) -> List[str]:
        return list(self._servers)

    def clone(self) -> 'InMemoryTransport':
        return InMemoryTransport(self.cluster, self._servers)

    def _enter(self, operation: str, read: bool = False):
        self.calls[operation] += 1
        if self.error is not None:
            raise self.error
        if read and self.unavailable:
            raise ServerUnavailable('connection refused')

    # -------- Reads --------

    def get(self, key):
        self._enter('get', read=True)
        entry = self.cluster.lookup(key)
        if entry is None:
            raise NotFound(key)
        return entry.data, entry.flags

    def gets(self, key):
        self._enter('gets', read=True)
        entry = self.cluster.lookup(key)
        if entry is None:
            raise NotFound(key)
        return entry.data, entry.flags, entry.cas

    def get_multi(self, keys, cas=False):
        self._enter('get_multi', read=True)
        rows = []
        for key in dict.fromkeys(keys):
            entry = self.cluster.lookup(key)
            if entry is not None:
                rows.append((key, entry.data, entry.flags, entry.cas if cas else None))
        return rows

    # -------- Writes --------

    def set(self, key, data, expire, flags):
        self._enter('set')
        self.cluster.store(key, data, expire, flags)

    def add(self, key, data, expire, flags):
        self._enter('add')
        if self.cluster.lookup(key) is not None:
            raise NotStored(key)
        self.cluster.store(key, data, expire, flags)

    def replace(self, key, data, expire, flags):
        self._enter('replace')
        if self.cluster.lookup(key) is None:
            raise NotStored(key)
        self.cluster.store(key, data, expire, flags)

    def cas(self, key, data, expire, flags, token):
        self._enter('cas')
        entry = self.cluster.lookup(key)
        if entry is None:
            raise NotFound(key)
        if entry.cas != token:
            raise NotStored(key)
        return self.cluster.store(key, data, expire, flags)

    def append(self, key, data):
        self._enter('append')
        entry = self.cluster.lookup(key)
        if entry is None:
            raise NotStored(key)
        entry.data = entry.data + data
        entry.cas = self.cluster.token()

    def prepend(self, key, data):
        self._enter('prepend')
        entry = self.cluster.lookup(key)
        if entry is None:
            raise NotStored(key)
        entry.data = data + entry.data
        entry.cas = self.cluster.token()

    def delete(self, key):
        self._enter('delete')
        if self.cluster.lookup(key) is None:
            raise NotFound(key)
        del self.cluster.entries[key]

    def incr(self, key, amount):
        return self._counter('incr', key, amount)

    def decr(self, key, amount):
        return self._counter('decr', key, -amount)

    def _counter(self, operation, key, delta):
        self._enter(operation)
        entry = self.cluster.lookup(key)
        if entry is None:
            raise NotFound(key)
        value = max(int(entry.data) + delta, 0)
        entry.data = str(value).encode('ascii')
        entry.cas = self.cluster.token()
        return value

    def flush_all(self):
        self._enter('flush_all')
        self.cluster.entries.clear()
        self.cluster.flushes += 1


@pytest.fixture
def cluster() -> Cluster:
    """Fresh in-memory 'cluster'"""
    return Cluster()


@pytest.fixture
def transport(cluster) -> InMemoryTransport:
    return InMemoryTransport(cluster)


@pytest.fixture
def cache(transport) -> Memcache:
    """Memcache client di atas InMemoryTransport"""
    return Memcache(transport=transport, default_ttl=3600)


@pytest.fixture
def other_cache(cluster) -> Memcache:
    """Client kedua ke cluster yang sama (actor lain)"""
    return Memcache(transport=InMemoryTransport(cluster), default_ttl=3600)
