"""In-memory token store.

Entries live for the lifetime of the process. This is the last link of the
``auto`` selection chain and the store of choice for tests.
"""

from __future__ import annotations

import logging
from typing import Optional

from platform_auth.models import CredentialEntry
from platform_auth.stores.base import TokenStore


class MemoryStore(TokenStore):
    """Process-lifetime token store backed by a dict keyed by hash.

    Entries are copied on the way in and out so callers cannot mutate stored
    state behind the store's back.
    """

    store_type = "memory"

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        super().__init__(logger)
        self._entries: dict[str, CredentialEntry] = {}

    async def _read(self) -> dict[str, CredentialEntry]:
        return {h: e.model_copy(deep=True) for h, e in self._entries.items()}

    async def _write(self, entries: dict[str, CredentialEntry]) -> None:
        self._entries = {h: e.model_copy(deep=True) for h, e in entries.items()}
