"""
Key codec: logical key -> wire key.

Wire key = "<namespace>:<key>" (tanpa prefix jika namespace kosong), lalu:
1. setiap '%' di-double menjadi '%%'
2. setiap spasi diganti '%s'

Wire key tidak pernah di-decode kembali.
"""

from typing import List, Sequence, Union

Key = Union[str, int]


def _escape(key: str) -> str:
    if '%' in key:
        key = key.replace('%', '%%')
    if ' ' in key:
        key = key.replace(' ', '%s')
    return key


def normalize_keys(namespace: str, keys: Union[Key, Sequence[Key]]) -> Union[str, List[str]]:
    """
    Build wire key(s) dari namespace dan logical key(s).

    Args:
        namespace: Current namespace (boleh kosong)
        keys: Single key atau list/tuple of keys

    Returns:
        Wire key, atau list of wire keys dengan urutan yang sama
    """
    prefix = f"{namespace}:" if namespace else ""

    if isinstance(keys, (list, tuple)):
        return [_escape(f"{prefix}{k}") for k in keys]
    return _escape(f"{prefix}{keys}")


class KeyCodec:
    """Key codec yang terikat ke satu namespace"""

    def __init__(self, namespace: str = ""):
        self.namespace = namespace

    def normalize(self, keys):
        return normalize_keys(self.namespace, keys)

    def __repr__(self):
        return f"KeyCodec(namespace={self.namespace!r})"
