"""
Higher-level cache patterns di atas CacheClient primitives.
"""

import logging
from typing import Any, Callable, Dict, Iterable, List, Optional

from .envelope import CacheValue
from .keys import Key

logger = logging.getLogger(__name__)

READ_OPTIONS = ('raw',)
WRITE_OPTIONS = ('expiry', 'raw', 'flags')


def _pick(opts: Dict[str, Any], names) -> Dict[str, Any]:
    return {name: opts[name] for name in names if name in opts}


class IdiomsMixin:
    """
    Mixin untuk CacheClient: update via CAS, get-or-add, get-or-set, get_some.
    """

    def update(self, key: Key, fn: Callable[[Any], Any], **opts) -> Optional[CacheValue]:
        """
        Read-modify-write dengan CAS.

        Jika key ada, fn(value) ditulis dengan cas memakai token yang didapat
        saat read. Tidak ada retry loop: jika writer lain menang, return None
        dan caller yang memutuskan untuk retry.

        Jika key tidak ada, fn(None) ditulis dengan add; fn harus bisa
        menerima None.
        """
        current = self.get(key, cas=True, **_pick(opts, READ_OPTIONS))
        write_opts = _pick(opts, WRITE_OPTIONS)

        if current is not None:
            return self.cas(key, fn(current.value), cas=current.cas, **write_opts)
        return self.add(key, fn(None), **write_opts)

    def get_or_add(self, key: Key, value_or_producer: Any, **opts) -> Optional[CacheValue]:
        """
        Return cached value; jika miss, tulis dengan add.
        Callable dianggap producer dan hanya dipanggil saat miss.

        Karena itu callable (function, class) tidak bisa di-cache apa adanya:
        dict akan di-cache sebagai {}. Untuk cache callable itu sendiri,
        bungkus dengan producer, misalnya lambda: dict.
        """
        return self._get_or_store('add', key, value_or_producer, opts)

    def get_or_set(self, key: Key, value_or_producer: Any, **opts) -> Optional[CacheValue]:
        """
        Return cached value; jika miss, tulis dengan set.
        Callable dianggap producer dan hanya dipanggil saat miss; callable
        yang ingin di-cache apa adanya harus dibungkus (lihat get_or_add).
        """
        return self._get_or_store('set', key, value_or_producer, opts)

    def _get_or_store(self, operation: str, key: Key, value_or_producer: Any,
                      opts: Dict[str, Any]) -> Optional[CacheValue]:
        read_opts = _pick(opts, READ_OPTIONS)

        found = self.get(key, **read_opts)
        if found is not None:
            return found

        value = value_or_producer() if callable(value_or_producer) else value_or_producer
        stored = getattr(self, operation)(key, value, **_pick(opts, WRITE_OPTIONS))
        if stored is not None:
            return stored

        # Writer lain menang di antara miss dan write ini
        logger.debug(f"{operation} for {key!r} lost a race, re-reading")
        return self.get(key, **read_opts)

    def get_some(self, keys: Iterable[Key], loader: Callable[[List[str]], Dict[str, Any]], *,
                 validation: Optional[Callable[[str, Any], bool]] = None,
                 overwrite: bool = False, disable: bool = False,
                 disable_write: bool = False, **opts) -> Dict[str, Any]:
        """
        Bulk read dengan loader untuk key yang miss.

        Args:
            keys: Keys yang diminta (di-coerce ke str)
            loader: fn(missing_keys) -> dict key -> value; dipanggil sekali,
                hanya jika ada key yang miss
            validation: fn(key, value) -> bool; cached hit yang gagal
                validation dianggap miss
            overwrite: True -> tulis hasil loader dengan set, False -> add
                (tidak menimpa concurrent writer)
            disable: Bypass cache read dan write
            disable_write: Bypass cache write saja
            **opts: raw, expiry, flags

        Returns:
            Dict key -> value untuk cache hits dan loaded values
        """
        keys = [str(k) for k in keys]

        if disable:
            records = {}
        else:
            cached = self.get(keys, **_pick(opts, READ_OPTIONS))
            records = {k: found.value for k, found in cached.items()}

        if validation is not None:
            records = {k: v for k, v in records.items() if validation(k, v)}

        keys_to_fetch = list(dict.fromkeys(k for k in keys if k not in records))
        if not keys_to_fetch:
            return records

        write = self.set if overwrite else self.add
        write_opts = _pick(opts, WRITE_OPTIONS)

        for key, value in loader(keys_to_fetch).items():
            if not (disable or disable_write):
                write(key, value, **write_opts)
            records[key] = value

        logger.debug(f"get_some: {len(keys) - len(keys_to_fetch)} cached, {len(keys_to_fetch)} loaded")
        return records
