"""
Transport layer ke memcached cluster.
Menggunakan pymemcache HashClient untuk server selection, hashing,
dan failure handling. Layer ini hanya menerjemahkan hasil pymemcache
ke outcome yang bisa dibedakan: success, NotFound, NotStored, dan
ServerUnavailable (server dead atau di failed-retry window).
"""

import logging
from typing import Any, List, Optional, Protocol, Tuple, runtime_checkable

from pymemcache.client.hash import HashClient
from pymemcache.client.rendezvous import RendezvousHash
from pymemcache.exceptions import MemcacheError, MemcacheUnexpectedCloseError

from ..utils.config import CacheConfig

logger = logging.getLogger(__name__)


class TransportError(Exception):
    """Base error untuk semua outcome transport"""


class NotFound(TransportError):
    """Key tidak ada di cluster"""


class NotStored(TransportError):
    """Write ditolak: add pada key yang ada, replace/append pada key yang tidak ada, CAS mismatch"""


class ServerUnavailable(TransportError, ConnectionError):
    """
    Server untuk key ini tidak bisa dihubungi (dead, sedang di failed-retry
    window, atau connection gagal). Reads menganggapnya miss; writes
    menerimanya sebagai ConnectionError.
    """


# (wire_key, data, flags, cas_token)
MultiGetRow = Tuple[str, bytes, int, Optional[bytes]]


@runtime_checkable
class CacheTransport(Protocol):
    """
    Atomic single-key operations plus multi-get dan full flush.
    Semua data berupa bytes; flags adalah 32-bit word.
    """

    @property
    def servers(self) -> List[str]: ...

    def get(self, key: str) -> Tuple[bytes, int]: ...
    def gets(self, key: str) -> Tuple[bytes, int, bytes]: ...
    def get_multi(self, keys: List[str], cas: bool = False) -> List[MultiGetRow]: ...
    def set(self, key: str, data: bytes, expire: int, flags: int) -> None: ...
    def add(self, key: str, data: bytes, expire: int, flags: int) -> None: ...
    def replace(self, key: str, data: bytes, expire: int, flags: int) -> None: ...
    def cas(self, key: str, data: bytes, expire: int, flags: int, token: Any) -> Optional[bytes]: ...
    def append(self, key: str, data: bytes) -> None: ...
    def prepend(self, key: str, data: bytes) -> None: ...
    def delete(self, key: str) -> None: ...
    def incr(self, key: str, amount: int) -> int: ...
    def decr(self, key: str, amount: int) -> int: ...
    def flush_all(self) -> None: ...
    def clone(self) -> 'CacheTransport': ...


class PassthroughSerde:
    """
    Serde untuk pymemcache yang tidak mengubah payload.
    Serialization dilakukan oleh envelope; deserialize mengembalikan (data, flags)
    supaya flags word sampai ke caller.
    """

    def serialize(self, key, value):
        return value, 0

    def deserialize(self, key, value, flags):
        return value, flags


HASHERS = {
    ('murmur3', 'rendezvous'): RendezvousHash,
}


def parse_server(server: str) -> Tuple[str, int]:
    """Parse "host:port" menjadi (host, port). Port default 11211."""
    host, _, port = server.rpartition(':')
    if not host:
        return server, 11211
    return host, int(port)


class PymemcacheTransport:
    """
    CacheTransport di atas pymemcache HashClient.

    Failure handling (retry attempts, dead timeout) didelegasikan ke HashClient:
    - server_failure_limit -> retry_attempts
    - retry_timeout -> retry_timeout dan dead_timeout
    """

    def __init__(self, config: CacheConfig):
        """
        Args:
            config: CacheConfig dengan servers dan opsi transport
        """
        self.config = config

        hasher = HASHERS.get((config.hash_algorithm, config.distribution_strategy))
        if hasher is None:
            raise ValueError(
                f"Unsupported hashing: {config.hash_algorithm}/{config.distribution_strategy} "
                f"(supported: {sorted(HASHERS)})"
            )
        if config.ketama_weighted:
            logger.warning("ketama_weighted is not supported by pymemcache, ignoring")

        self.client = HashClient(
            [parse_server(s) for s in config.servers],
            hasher=hasher,
            serde=PassthroughSerde(),
            connect_timeout=config.connect_timeout,
            timeout=config.timeout,
            key_prefix=f"{config.prefix_key}{config.prefix_delimiter}".encode('utf-8'),
            retry_attempts=config.server_failure_limit,
            retry_timeout=config.retry_timeout,
            dead_timeout=config.retry_timeout,
            ignore_exc=False,
            allow_unicode_keys=True,
            default_noreply=False,
        )

        logger.debug(f"PymemcacheTransport initialized with {len(config.servers)} servers")

    @property
    def servers(self) -> List[str]:
        return list(self.config.servers)

    def clone(self) -> 'PymemcacheTransport':
        return PymemcacheTransport(self.config)

    # -------- Server state --------

    def _no_server(self, key: str) -> bool:
        """True jika HashClient sudah menandai semua server dead"""
        return self.client.hasher.get_node(key) is None

    def _failing(self, key: str) -> bool:
        """
        True jika server untuk key sedang failed (retry window) atau dead.

        Selama state itu HashClient mengembalikan default value (False untuk
        write, delete, dan counter) tanpa menghubungi server, jadi hasil falsy
        tidak bisa dibaca sebagai NotStored/NotFound.
        """
        node = self.client.hasher.get_node(key)
        if node is None:
            return True
        server = self.client.clients[node].server
        return server in self.client._failed_clients or server in self.client._dead_clients

    def _read(self, method: str, keys, *args):
        """Jalankan read command; unreachable server -> ServerUnavailable"""
        try:
            return getattr(self.client, method)(keys, *args)
        except (OSError, MemcacheUnexpectedCloseError) as e:
            raise ServerUnavailable(str(e)) from e
        except MemcacheError as e:
            # "All servers seem to be down right now"
            names = keys if isinstance(keys, list) else [keys]
            if any(self._no_server(name) for name in names):
                raise ServerUnavailable(str(e)) from e
            raise

    def _write(self, method: str, key: str, *args, **kwargs):
        """
        Jalankan write command. Semua server dead -> ServerUnavailable;
        hasil False dari server yang failed -> ServerUnavailable.
        Connection error lain di-propagate tanpa diubah.
        """
        try:
            result = getattr(self.client, method)(key, *args, **kwargs)
        except MemcacheError as e:
            if self._no_server(key):
                raise ServerUnavailable(str(e)) from e
            raise

        if result is False and self._failing(key):
            raise ServerUnavailable(f"{method} {key!r}: server is marked as failed")
        return result

    # -------- Reads --------

    def get(self, key: str) -> Tuple[bytes, int]:
        result = self._read('get', key)
        if result is None:
            raise NotFound(key)
        return result

    def gets(self, key: str) -> Tuple[bytes, int, bytes]:
        result = self._read('gets', key)
        if result is None or result[0] is None:
            raise NotFound(key)
        (data, flags), token = result
        return data, flags, token

    def get_multi(self, keys: List[str], cas: bool = False) -> List[MultiGetRow]:
        rows = []
        if cas:
            found = self._read('gets_many', keys)
            for key, ((data, flags), token) in found.items():
                rows.append((key, data, flags, token))
        else:
            found = self._read('get_many', keys)
            for key, (data, flags) in found.items():
                rows.append((key, data, flags, None))
        return rows

    # -------- Writes --------

    def set(self, key: str, data: bytes, expire: int, flags: int) -> None:
        if not self._write('set', key, data, expire=expire, noreply=False, flags=flags):
            raise NotStored(key)

    def add(self, key: str, data: bytes, expire: int, flags: int) -> None:
        if not self._write('add', key, data, expire=expire, noreply=False, flags=flags):
            raise NotStored(key)

    def replace(self, key: str, data: bytes, expire: int, flags: int) -> None:
        if not self._write('replace', key, data, expire=expire, noreply=False, flags=flags):
            raise NotStored(key)

    def cas(self, key: str, data: bytes, expire: int, flags: int, token: Any) -> Optional[bytes]:
        """
        Compare-and-swap write.

        pymemcache tidak mengembalikan token baru setelah cas, jadi token
        diambil dengan gets tambahan. Jika value sudah berubah lagi oleh writer
        lain di antara dua round trip itu, atau gets tambahan itu gagal karena
        server tidak bisa dihubungi, token tidak di-attach (None). Write-nya
        sendiri sudah sukses.
        """
        result = self._write('cas', key, data, token, expire=expire, noreply=False, flags=flags)
        if result is None:
            raise NotFound(key)
        if not result:
            raise NotStored(key)

        try:
            current, _, new_token = self.gets(key)
        except (NotFound, ServerUnavailable):
            return None
        return new_token if current == data else None

    def append(self, key: str, data: bytes) -> None:
        if not self._write('append', key, data, noreply=False):
            raise NotStored(key)

    def prepend(self, key: str, data: bytes) -> None:
        if not self._write('prepend', key, data, noreply=False):
            raise NotStored(key)

    def delete(self, key: str) -> None:
        if not self._write('delete', key, noreply=False):
            raise NotFound(key)

    def incr(self, key: str, amount: int) -> int:
        return self._counter('incr', key, amount)

    def decr(self, key: str, amount: int) -> int:
        return self._counter('decr', key, amount)

    def _counter(self, method: str, key: str, amount: int) -> int:
        result = self._write(method, key, amount, noreply=False)
        if result is None:
            raise NotFound(key)
        # Counter yang sukses selalu int; False hanya default value HashClient
        if result is False:
            raise ServerUnavailable(f"{method} {key!r}: no reply from server")
        return result

    def flush_all(self) -> None:
        self.client.flush_all(noreply=False)
