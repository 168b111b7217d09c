"""File-backed token store with optional encryption at rest.

All entries are kept in a single file, ``<token_store_dir>/tokens.json``,
containing a JSON object that maps each hash to its serialised
:class:`~platform_auth.models.CredentialEntry`. When an ``encryption_key``
is supplied the file content is a :class:`cryptography.fernet.Fernet` token
instead of plain JSON. A file that cannot be decrypted or parsed raises
:class:`~platform_auth.exceptions.StoreUnavailableError` on every operation
and is never overwritten.

The file is written atomically with ``0o600`` permissions via
:func:`~platform_auth.config.atomic_write`. Disk I/O runs in a worker thread
so it never blocks the event loop.
"""

from __future__ import annotations

import asyncio
import json
import logging
from pathlib import Path
from typing import Optional, Union

from cryptography.fernet import Fernet, InvalidToken

from platform_auth.config import atomic_write
from platform_auth.exceptions import (
    InvalidArgumentError,
    MissingRequiredParameterError,
    StoreUnavailableError,
)
from platform_auth.models import CredentialEntry
from platform_auth.stores.base import TokenStore

TOKEN_FILENAME = "tokens.json"


class FileStore(TokenStore):
    """Durable token store persisted to a single local file.

    Args:
        token_store_dir: Directory holding the token file. Created on first
            write if missing.
        encryption_key: Optional Fernet key (urlsafe base64, 32 bytes). When
            given, the file is encrypted at rest.
        logger: Logger to report to.

    Raises:
        MissingRequiredParameterError: If *token_store_dir* is not given.
        InvalidArgumentError: If *encryption_key* is not a valid Fernet key.

    Example::

        store = FileStore("~/.local/share/platform-auth/tokens")
        await store.set(entry)
        assert await store.get(account_hash=entry.hash) == entry
    """

    store_type = "file"

    def __init__(
        self,
        token_store_dir: Union[str, Path, None] = None,
        encryption_key: Union[str, bytes, None] = None,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        super().__init__(logger)
        if not token_store_dir:
            raise MissingRequiredParameterError(
                "Token store requires a token store directory"
            )
        self._path = Path(token_store_dir).expanduser() / TOKEN_FILENAME
        self._cipher: Optional[Fernet] = None
        if encryption_key:
            try:
                self._cipher = Fernet(encryption_key)
            except (ValueError, TypeError) as exc:
                raise InvalidArgumentError(f"Invalid token store encryption key: {exc}") from exc

    @property
    def path(self) -> Path:
        """The filesystem path of the token file."""
        return self._path

    @property
    def encrypted(self) -> bool:
        """Whether the token file is encrypted at rest."""
        return self._cipher is not None

    async def _read(self) -> dict[str, CredentialEntry]:
        return await asyncio.to_thread(self._read_sync)

    async def _write(self, entries: dict[str, CredentialEntry]) -> None:
        await asyncio.to_thread(self._write_sync, entries)

    def _read_sync(self) -> dict[str, CredentialEntry]:
        if not self._path.is_file():
            return {}
        try:
            raw = self._path.read_bytes()
            if self._cipher is not None:
                raw = self._cipher.decrypt(raw)
            data = json.loads(raw.decode("utf-8"))
            if not isinstance(data, dict):
                raise ValueError("expected a JSON object")
            return {h: CredentialEntry.model_validate(e) for h, e in data.items()}
        except InvalidToken as exc:
            raise StoreUnavailableError(
                f"Cannot decrypt token store {self._path}, check the encryption key"
            ) from exc
        except (ValueError, OSError) as exc:
            raise StoreUnavailableError(f"Cannot read token store {self._path}: {exc}") from exc

    def _write_sync(self, entries: dict[str, CredentialEntry]) -> None:
        data = {h: e.model_dump(mode="json") for h, e in entries.items()}
        text = json.dumps(data, indent=2) + "\n"
        if self._cipher is not None:
            atomic_write(self._path, self._cipher.encrypt(text.encode("utf-8")), mode=0o600)
        else:
            atomic_write(self._path, text, mode=0o600)
