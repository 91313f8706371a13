"""
Cache facade di atas CacheTransport.

Facade ini:
- membangun wire key (namespace + escaping) lewat KeyCodec
- serialize/deserialize payload lewat envelope
- menerjemahkan outcome transport NotFound/NotStored menjadi None/False

ServerUnavailable saat read dianggap miss. Saat write, counter, dan delete
ServerUnavailable (sebuah ConnectionError) di-propagate, sama seperti
exception lain dari transport (protocol error, illegal key).
"""

import logging
from contextlib import contextmanager
from typing import Any, Callable, Dict, List, Optional, Sequence, Union

from .envelope import CacheValue, serialize, deserialize, default_flags
from .keys import Key, KeyCodec
from ..communication.transport import (
    CacheTransport,
    NotFound,
    NotStored,
    PymemcacheTransport,
    ServerUnavailable,
)
from ..utils.config import CacheConfig
from ..utils.metrics import metrics, measure_time

logger = logging.getLogger(__name__)


class CacheClient:
    """
    Primary cache API: get/set/add/replace/cas/delete/incr/decr/append/prepend.

    Read options:
        raw: Jangan deserialize, return bytes
        cas: Attach CAS token ke CacheValue
        expiry: (single key saja) extend TTL sebagai side effect dari read

    Write options:
        expiry: TTL dalam seconds, default config.default_ttl
        raw: Jangan serialize (bytes/str/number saja)
        flags: Flags word, default FLAG_PICKLED atau FLAG_RAW
    """

    def __init__(self, servers: Optional[Sequence[str]] = None,
                 transport: Optional[CacheTransport] = None, **options):
        """
        Args:
            servers: List of "host:port", default dari Config (MEMCACHE_SERVERS)
            transport: CacheTransport yang sudah jadi; default PymemcacheTransport
            **options: Override field CacheConfig (default_ttl, support_cas, ...)
        """
        self.config = CacheConfig.from_env().merge(servers=servers, **options)
        self.default_ttl = self.config.default_ttl
        self._transport = transport if transport is not None else PymemcacheTransport(self.config)
        self._codec = KeyCodec("")

        logger.debug(f"{type(self).__name__} initialized with servers {self.servers}")

    # -------- Instance management --------

    @property
    def servers(self) -> List[str]:
        return self._transport.servers

    @property
    def transport(self) -> CacheTransport:
        return self._transport

    def clone(self) -> 'CacheClient':
        """Copy dengan transport baru (config sama) dan namespace yang independen"""
        klone = type(self).__new__(type(self))
        klone.config = self.config
        klone.default_ttl = self.default_ttl
        klone._transport = self._transport.clone()
        klone._codec = KeyCodec(self.namespace)
        return klone

    def __repr__(self):
        return "<%s: %d servers, ns: %r>" % (type(self).__name__, len(self.servers), self.namespace)

    # -------- Namespace --------

    @property
    def namespace(self) -> str:
        return self._codec.namespace

    @namespace.setter
    def namespace(self, ns: str):
        self._codec.namespace = ns or ""

    def set_namespace(self, ns: str):
        self.namespace = ns

    @contextmanager
    def namespaced(self, ns: str):
        """
        Temporarily append ns ke namespace sekarang.
        Namespace lama selalu di-restore, termasuk saat exception.
        """
        old_namespace = self.namespace
        self.namespace = f"{old_namespace}{ns}"
        try:
            yield self
        finally:
            self.namespace = old_namespace

    def in_namespace(self, ns: str, fn: Callable[[], Any]) -> Any:
        """Run fn di dalam namespace sementara, return hasil fn"""
        with self.namespaced(ns):
            return fn()

    def normalize_keys(self, keys):
        return self._codec.normalize(keys)

    # -------- Internals --------

    def _run(self, operation: str, *args):
        """Call transport operation dan record latency"""
        timer = measure_time()
        try:
            with timer:
                return getattr(self._transport, operation)(*args)
        finally:
            metrics.record_latency(operation, timer.elapsed)

    def _params(self, expiry: Optional[int], raw: bool, flags: Optional[int]):
        """(ttl, flags) dengan default dari config"""
        ttl = self.default_ttl if expiry is None else expiry
        return ttl, default_flags(raw) if flags is None else flags

    def _require_cas(self):
        if not self.config.support_cas:
            raise ValueError("CAS support is disabled for this client")

    def _store(self, operation: str, key: Key, value: Any,
               expiry: Optional[int], raw: bool, flags: Optional[int]) -> Optional[CacheValue]:
        ttl, flags = self._params(expiry, raw, flags)
        wire_key = self.normalize_keys(key)

        try:
            self._run(operation, wire_key, serialize(value, raw), ttl, flags)
        except (NotFound, NotStored):
            metrics.record_operation(operation, 'not_stored')
            logger.debug(f"{operation} {wire_key!r}: not stored")
            return None

        metrics.record_operation(operation, 'stored')
        return CacheValue(value, None, flags)

    # -------- Reads --------

    def get(self, keys: Union[Key, Sequence[Key]], *, raw: bool = False, cas: bool = False,
            expiry: Optional[int] = None):
        """
        Get single key atau list of keys.

        Single key: return CacheValue, atau None jika miss. Server yang tidak
        bisa dihubungi juga dianggap miss (availability over consistency).

        Jika expiry diberikan untuk single key, read ini menjadi gets + cas
        dengan value yang sama dan expiry baru: TTL di-extend sebagai side
        effect. Dua round trip, tidak atomic; jika writer lain menang di
        antaranya, cas gagal dan hasilnya None.

        List of keys: return dict original key (str) -> CacheValue. Key yang
        miss tidak ada di dict. expiry diabaikan untuk multi get.
        """
        if isinstance(keys, (list, tuple)):
            return self._get_multi(keys, raw=raw, cas=cas)

        if expiry is not None:
            current = self.get(keys, raw=raw, cas=True)
            if current is None:
                return None
            return self.cas(keys, current.value, cas=current.cas, expiry=expiry, raw=raw,
                            flags=current.flags)

        if cas:
            self._require_cas()
        wire_key = self.normalize_keys(keys)

        try:
            if cas:
                data, flags, token = self._run('gets', wire_key)
            else:
                data, flags = self._run('get', wire_key)
                token = None
        except NotFound:
            metrics.record_operation('get', 'miss')
            return None
        except ServerUnavailable as e:
            # Broken server == cache miss
            logger.warning(f"Server unavailable for {wire_key!r}, treating as miss: {e}")
            metrics.record_operation('get', 'miss')
            return None

        metrics.record_operation('get', 'hit')
        return CacheValue(deserialize(data, raw), token, flags)

    def _get_multi(self, keys: Sequence[Key], raw: bool, cas: bool) -> Dict[str, CacheValue]:
        if not keys:
            return {}
        if cas:
            self._require_cas()

        # Caller expects original keys (as str), bukan wire keys
        wire_keys = self.normalize_keys(list(keys))
        norm_to_std = {wire_key: str(key) for wire_key, key in zip(wire_keys, keys)}

        try:
            rows = self._run('get_multi', wire_keys, cas)
        except NotFound:
            rows = []
        except ServerUnavailable as e:
            logger.warning(f"Server unavailable for multi get of {len(wire_keys)} keys: {e}")
            rows = []

        result = {}
        for wire_key, data, flags, token in rows:
            result[norm_to_std[wire_key]] = CacheValue(
                deserialize(data, raw), token if cas else None, flags
            )

        hits = len(result)
        for _ in range(hits):
            metrics.record_operation('get_multi', 'hit')
        for _ in range(len(norm_to_std) - hits):
            metrics.record_operation('get_multi', 'miss')
        return result

    def read(self, keys, **opts):
        """get dengan raw=True"""
        opts['raw'] = True
        return self.get(keys, **opts)

    def count(self, key: Key) -> int:
        """Read raw value sebagai integer, 0 jika missing atau bukan angka"""
        found = self.get(key, raw=True)
        if found is None:
            return 0
        try:
            return int(found.value)
        except (TypeError, ValueError):
            return 0

    # -------- Writes --------

    def set(self, key: Key, value: Any, *, expiry: Optional[int] = None,
            raw: bool = False, flags: Optional[int] = None) -> Optional[CacheValue]:
        """Unconditional write. Return CacheValue dari value yang ditulis."""
        return self._store('set', key, value, expiry, raw, flags)

    def write(self, key: Key, value: Any, **opts) -> Optional[CacheValue]:
        """set dengan raw=True"""
        opts['raw'] = True
        return self.set(key, value, **opts)

    def add(self, key: Key, value: Any, *, expiry: Optional[int] = None,
            raw: bool = False, flags: Optional[int] = None) -> Optional[CacheValue]:
        """Write hanya jika key belum ada. Return None jika key sudah ada."""
        return self._store('add', key, value, expiry, raw, flags)

    def replace(self, key: Key, value: Any, *, expiry: Optional[int] = None,
                raw: bool = False, flags: Optional[int] = None) -> Optional[CacheValue]:
        """Write hanya jika key sudah ada. Return None jika key tidak ada."""
        return self._store('replace', key, value, expiry, raw, flags)

    def cas(self, key: Key, value: Any, *, cas, expiry: Optional[int] = None,
            raw: bool = False, flags: Optional[int] = None) -> Optional[CacheValue]:
        """
        Compare-and-swap dengan token dari get(key, cas=True).

        Return None jika token stale atau key tidak ada. Jika sukses,
        CacheValue membawa token dan flags yang baru.
        """
        self._require_cas()
        ttl, flags = self._params(expiry, raw, flags)
        wire_key = self.normalize_keys(key)

        try:
            token = self._run('cas', wire_key, serialize(value, raw), ttl, flags, cas)
        except (NotFound, NotStored):
            metrics.record_operation('cas', 'not_stored')
            logger.debug(f"cas {wire_key!r}: stale token or missing key")
            return None

        metrics.record_operation('cas', 'stored')
        return CacheValue(value, token, flags)

    def append(self, key: Key, value: Any) -> bool:
        """Append bytes ke entry yang sudah ada. False jika key tidak ada."""
        return self._concat('append', key, value)

    def prepend(self, key: Key, value: Any) -> bool:
        """Prepend bytes ke entry yang sudah ada. False jika key tidak ada."""
        return self._concat('prepend', key, value)

    def _concat(self, operation: str, key: Key, value: Any) -> bool:
        try:
            self._run(operation, self.normalize_keys(key), serialize(value, True))
        except (NotFound, NotStored):
            metrics.record_operation(operation, 'not_stored')
            return False
        metrics.record_operation(operation, 'stored')
        return True

    def increment(self, key: Key, amount: int = 1) -> Optional[int]:
        """Atomic increment. None jika key tidak ada (tidak auto-create)."""
        return self._counter('incr', key, amount)

    def decrement(self, key: Key, amount: int = 1) -> Optional[int]:
        """Atomic decrement, floor di 0 oleh server. None jika key tidak ada."""
        return self._counter('decr', key, amount)

    incr = increment
    decr = decrement

    def _counter(self, operation: str, key: Key, amount: int) -> Optional[int]:
        try:
            value = self._run(operation, self.normalize_keys(key), amount)
        except (NotFound, NotStored):
            metrics.record_operation(operation, 'miss')
            return None
        metrics.record_operation(operation, 'hit')
        return value

    def delete(self, key: Key) -> bool:
        """True jika key dihapus, False jika key tidak ada"""
        try:
            self._run('delete', self.normalize_keys(key))
        except NotFound:
            metrics.record_operation('delete', 'miss')
            return False
        metrics.record_operation('delete', 'hit')
        return True

    def flush_all(self):
        """
        Hapus SEMUA entry di cluster.

        Ini full-cluster flush di transport, bukan hanya namespace sekarang:
        memcached tidak punya cara untuk flush per prefix.
        """
        logger.info(f"Flushing all {len(self.servers)} servers (namespace {self.namespace!r} is not a scope)")
        self._run('flush_all')
        metrics.record_operation('flush_all', 'ok')

    clear = flush_all

    # -------- Indexer sugar --------

    def __getitem__(self, key: Key) -> Any:
        found = self.get(key)
        return None if found is None else found.value

    def __setitem__(self, key: Key, value: Any):
        self.set(key, value)
