"""Abstract base class for token stores.

A token store persists :class:`~platform_auth.models.CredentialEntry`
records keyed by their ``hash``. The query and mutation contract --
:meth:`TokenStore.get`, :meth:`~TokenStore.list`, :meth:`~TokenStore.set`,
:meth:`~TokenStore.delete`, :meth:`~TokenStore.clear` -- is implemented once
here on top of two backend primitives:

- :meth:`TokenStore._read` -- load the full ``hash -> entry`` map.
- :meth:`TokenStore._write` -- replace the full map.

Backends that keep one record per entry override :meth:`TokenStore._put`
and :meth:`TokenStore._discard` instead of :meth:`TokenStore._write`, so a
change touches only the records it concerns.

Writes are last-write-wins per hash; the store does not coordinate
concurrent writers.

See Also:
    :mod:`platform_auth.stores.factory` for the auto-selection chain.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Optional, Union

from platform_auth.endpoints import normalize_base_url
from platform_auth.models import CredentialEntry


class TokenStore(ABC):
    """Abstract base class for credential entry persistence.

    Args:
        logger: Logger to report to. Defaults to the module logger of the
            concrete store.
    """

    #: Identifier used in logs and by the store selection chain.
    store_type: str = "abstract"

    def __init__(self, logger: Optional[logging.Logger] = None) -> None:
        self._log = logger or logging.getLogger(type(self).__module__)

    # ------------------------------------------------------------------ #
    # Backend primitives
    # ------------------------------------------------------------------ #

    @abstractmethod
    async def _read(self) -> dict[str, CredentialEntry]:
        """Return every stored entry keyed by hash."""
        ...

    async def _write(self, entries: dict[str, CredentialEntry]) -> None:
        """Replace the stored entries with *entries*."""
        raise NotImplementedError(f"{type(self).__name__} does not support full rewrites")

    async def _put(self, entry: CredentialEntry) -> None:
        """Store *entry* under its hash."""
        entries = await self._read()
        entries[entry.hash] = entry
        await self._write(entries)

    async def _discard(
        self, entries: dict[str, CredentialEntry], removed: list[CredentialEntry]
    ) -> None:
        """Persist *entries*, from which *removed* have just been dropped."""
        await self._write(entries)

    # ------------------------------------------------------------------ #
    # Public contract
    # ------------------------------------------------------------------ #

    async def get(
        self,
        account_name: Optional[str] = None,
        account_hash: Optional[str] = None,
        base_url: Optional[str] = None,
    ) -> Optional[CredentialEntry]:
        """Look up a single entry by hash or account name.

        When both are given, the hash wins. *base_url* restricts the search to
        entries for that identity provider.

        Returns:
            The matching entry, or ``None``.
        """
        entries = await self._read()
        if account_hash is not None:
            entry = entries.get(account_hash)
            if entry is not None and _matches_base_url(entry, base_url):
                return entry
            return None
        if account_name is not None:
            for entry in entries.values():
                if entry.name == account_name and _matches_base_url(entry, base_url):
                    return entry
        return None

    async def list(self) -> list[CredentialEntry]:
        """Return all stored entries. Order is not significant."""
        return list((await self._read()).values())

    async def set(self, entry: CredentialEntry) -> None:
        """Insert or replace the entry stored under ``entry.hash``."""
        await self._put(entry)
        self._log.debug("Stored account %s in %s store", entry.name, self.store_type)

    async def delete(
        self,
        accounts: Union[str, list[str]],
        base_url: Optional[str] = None,
    ) -> list[CredentialEntry]:
        """Remove entries whose name or hash is in *accounts*.

        Args:
            accounts: One account name/hash, or a list of them.
            base_url: Only remove entries for this base URL.

        Returns:
            The removed entries.
        """
        if isinstance(accounts, str):
            accounts = [accounts]
        wanted = set(accounts)
        return await self._remove(
            lambda e: (e.name in wanted or e.hash in wanted)
            and _matches_base_url(e, base_url)
        )

    async def clear(self, base_url: Optional[str] = None) -> list[CredentialEntry]:
        """Remove all entries, or only those for *base_url*.

        Returns:
            The removed entries.
        """
        return await self._remove(lambda e: _matches_base_url(e, base_url))

    async def _remove(self, predicate) -> list[CredentialEntry]:  # noqa: ANN001
        entries = await self._read()
        removed = [e for e in entries.values() if predicate(e)]
        if removed:
            for entry in removed:
                del entries[entry.hash]
            await self._discard(entries, removed)
            self._log.debug(
                "Removed %d account(s) from %s store", len(removed), self.store_type
            )
        return removed


def _matches_base_url(entry: CredentialEntry, base_url: Optional[str]) -> bool:
    if not base_url:
        return True
    return normalize_base_url(entry.base_url) == normalize_base_url(base_url)
