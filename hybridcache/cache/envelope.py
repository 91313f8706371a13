"""
Value envelope: payload + CAS token + flags.

Serialize policy:
- raw=False: value di-pickle (semua tipe Python, termasuk nested containers)
- raw=True: bytes pass-through; str di-encode UTF-8, int/float jadi ASCII digits
  supaya incr/decr dan count bisa bekerja di server

Value yang ditulis dengan raw=False harus dibaca dengan raw=False. Membaca
dengan raw flag yang berbeda adalah caller error: hasilnya undefined
(bytes pickle mentah, atau pickle error yang di-propagate).

Pickle hanya aman untuk cache yang isinya berasal dari aplikasi sendiri.
"""

import pickle
from dataclasses import dataclass
from typing import Any, Optional

# Flags word default. Caller boleh override dengan flags sendiri.
FLAG_RAW = 0
FLAG_PICKLED = 1


@dataclass
class CacheValue:
    """
    Hasil read dari cache.

    Attributes:
        value: Payload (sudah di-deserialize kecuali raw)
        cas: CAS token, None jika CAS tidak di-request
        flags: 32-bit flags word yang disimpan bersama value
    """
    value: Any
    cas: Optional[bytes] = None
    flags: int = FLAG_RAW

    def __repr__(self):
        return f"CacheValue({self.value!r}, cas={self.cas!r}, flags={self.flags})"


def serialize(value: Any, raw: bool) -> bytes:
    """Convert value ke bytes untuk transport"""
    if not raw:
        return pickle.dumps(value, protocol=pickle.HIGHEST_PROTOCOL)

    if isinstance(value, (bytes, bytearray, memoryview)):
        return bytes(value)
    if isinstance(value, str):
        return value.encode('utf-8')
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value).encode('ascii')

    raise TypeError(f"raw values must be bytes, str or numbers, not {type(value).__name__}")


def deserialize(data: bytes, raw: bool) -> Any:
    """Convert bytes dari transport kembali ke value"""
    if raw:
        return data
    return pickle.loads(data)


def default_flags(raw: bool) -> int:
    return FLAG_RAW if raw else FLAG_PICKLED
