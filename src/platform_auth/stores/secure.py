"""Token store backed by the host's credential vault via :mod:`keyring`.

Each :class:`~platform_auth.models.CredentialEntry` is stored as its own
vault record: service ``secure_service_name``, username = the entry hash,
password = the entry JSON. Because vaults cannot enumerate records, an index
record (username ``__index__``) holds the list of stored hashes. A change
writes only its own record and, when the set of hashes changes, the index.

Construction fails with
:class:`~platform_auth.exceptions.StoreUnavailableError` when no usable
keyring backend exists (headless Linux without Secret Service, for example);
the ``auto`` store selection then falls through to the file store.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Optional

import keyring
from keyring.backend import KeyringBackend
from keyring.backends import fail
from keyring.errors import KeyringError, PasswordDeleteError

from platform_auth.exceptions import StoreUnavailableError
from platform_auth.models import CredentialEntry
from platform_auth.stores.base import TokenStore

DEFAULT_SERVICE_NAME = "Platform Auth"
INDEX_KEY = "__index__"


def _ensure_usable(backend: KeyringBackend) -> None:
    if isinstance(backend, fail.Keyring):
        raise StoreUnavailableError("No secure credential vault is available on this platform")
    try:
        priority = backend.priority
    except Exception as exc:
        raise StoreUnavailableError(f"Secure credential vault is not usable: {exc}") from exc
    if priority <= 0:
        raise StoreUnavailableError(
            f"Secure credential vault {type(backend).__name__} is not usable"
        )


class SecureStore(TokenStore):
    """Durable token store kept in the platform credential vault.

    Args:
        secure_service_name: Vault service name the records are filed under.
        backend: Keyring backend to use. Defaults to :func:`keyring.get_keyring`.
        logger: Logger to report to.

    Raises:
        StoreUnavailableError: If the keyring backend is missing or unusable.
    """

    store_type = "secure"

    def __init__(
        self,
        secure_service_name: Optional[str] = None,
        backend: Optional[KeyringBackend] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        self._service = secure_service_name or DEFAULT_SERVICE_NAME
        self._backend = backend or keyring.get_keyring()
        _ensure_usable(self._backend)

    @property
    def service_name(self) -> str:
        """The vault service name records are stored under."""
        return self._service

    async def _read(self) -> dict[str, CredentialEntry]:
        return await asyncio.to_thread(self._read_sync)

    async def _put(self, entry: CredentialEntry) -> None:
        await asyncio.to_thread(self._put_sync, entry)

    async def _discard(
        self, entries: dict[str, CredentialEntry], removed: list[CredentialEntry]
    ) -> None:
        await asyncio.to_thread(self._discard_sync, [e.hash for e in removed])

    def _read_index(self) -> list[str]:
        raw = self._backend.get_password(self._service, INDEX_KEY)
        if not raw:
            return []
        try:
            index = json.loads(raw)
        except ValueError:
            self._log.warning("Ignoring corrupt secure store index for %s", self._service)
            return []
        return [h for h in index if isinstance(h, str)] if isinstance(index, list) else []

    def _read_sync(self) -> dict[str, CredentialEntry]:
        entries: dict[str, CredentialEntry] = {}
        try:
            for account_hash in self._read_index():
                raw = self._backend.get_password(self._service, account_hash)
                if raw is None:
                    continue
                try:
                    entries[account_hash] = CredentialEntry.model_validate_json(raw)
                except ValueError as exc:
                    self._log.warning("Ignoring unreadable secure store record: %s", exc)
        except KeyringError as exc:
            raise StoreUnavailableError(f"Failed to read from secure store: {exc}") from exc
        return entries

    def _write_index(self, index: list[str]) -> None:
        self._backend.set_password(self._service, INDEX_KEY, json.dumps(sorted(index)))

    def _put_sync(self, entry: CredentialEntry) -> None:
        try:
            self._backend.set_password(self._service, entry.hash, entry.model_dump_json())
            index = self._read_index()
            if entry.hash not in index:
                self._write_index([*index, entry.hash])
        except KeyringError as exc:
            raise StoreUnavailableError(f"Failed to write to secure store: {exc}") from exc

    def _discard_sync(self, hashes: list[str]) -> None:
        try:
            for account_hash in hashes:
                try:
                    self._backend.delete_password(self._service, account_hash)
                except PasswordDeleteError:
                    pass  # already gone
            self._write_index([h for h in self._read_index() if h not in hashes])
        except KeyringError as exc:
            raise StoreUnavailableError(f"Failed to write to secure store: {exc}") from exc
