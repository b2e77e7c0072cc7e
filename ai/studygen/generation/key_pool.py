"""Round-robin pool of Gemini API keys.

Keys come from ``GEMINI_API_KEY``, ``API_KEY`` and ``GEMINI_API_KEY_2``,
``GEMINI_API_KEY_3``, ... (scanned until the first missing index). Empty and
placeholder values are dropped. ``next()`` never raises: an empty pool hands
out ``''`` so the request fails remotely instead of locally.
"""
from __future__ import annotations

import os
import threading
from typing import Iterable, List, Mapping, Optional

from studygen.utils import get_logger

LOG = get_logger()

PRIMARY_KEY_VARS = ('GEMINI_API_KEY', 'API_KEY')
NUMBERED_KEY_PREFIX = 'GEMINI_API_KEY_'
PLACEHOLDER_KEYS = frozenset({
    'PLACEHOLDER_API_KEY',
    'YOUR_API_KEY',
    'your_api_key_here',
    'your-api-key',
    'undefined',
    'null',
})


def _is_usable(key: Optional[str]) -> bool:
    if key is None:
        return False
    key = key.strip()
    return bool(key) and key not in PLACEHOLDER_KEYS


class KeyPool:

    def __init__(self, keys: Iterable[Optional[str]] = ()):
        self._keys: List[str] = [k.strip() for k in keys if _is_usable(k)]
        self._cursor = 0
        self._lock = threading.Lock()

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> 'KeyPool':
        env = os.environ if environ is None else environ
        keys = [env.get(name) for name in PRIMARY_KEY_VARS]
        i = 2
        while env.get(f'{NUMBERED_KEY_PREFIX}{i}'):
            keys.append(env.get(f'{NUMBERED_KEY_PREFIX}{i}'))
            i += 1
        pool = cls(keys)
        if not pool:
            LOG.warning('key_pool_empty')
        else:
            LOG.info('key_pool_loaded', extra={'key_count': len(pool)})
        return pool

    def __len__(self) -> int:
        return len(self._keys)

    def next(self) -> str:
        if not self._keys:
            return ''
        with self._lock:
            key = self._keys[self._cursor % len(self._keys)]
            self._cursor = (self._cursor + 1) % len(self._keys)
        return key

    def slot_of(self, key: str) -> Optional[str]:
        """Log-safe identifier for a key: its 1-based position in the pool."""
        try:
            return str(self._keys.index(key) + 1)
        except ValueError:
            return None
