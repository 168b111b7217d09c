"""Token store selection.

:func:`create_token_store` turns a ``token_store_type`` into a concrete
:class:`~platform_auth.stores.base.TokenStore`. ``"auto"`` walks an ordered
chain of constructors -- secure, file, memory -- and keeps the first that
builds; only the typed "backend unavailable" failures let the chain move on.
Any explicit type builds exactly that store and propagates its error.
"""

from __future__ import annotations

import logging
from typing import Any, Callable, Optional

from platform_auth.exceptions import (
    InvalidValueError,
    MissingRequiredParameterError,
    StoreUnavailableError,
)
from platform_auth.stores.base import TokenStore
from platform_auth.stores.file import FileStore
from platform_auth.stores.memory import MemoryStore
from platform_auth.stores.secure import SecureStore

logger = logging.getLogger(__name__)

STORE_TYPES = ("auto", "secure", "file", "memory")

# Failures that let the auto chain fall through to the next backend.
_FALLBACK_ERRORS = (StoreUnavailableError, MissingRequiredParameterError)


def _secure(opts: dict[str, Any], log: logging.Logger) -> TokenStore:
    return SecureStore(
        secure_service_name=opts.get("secure_service_name"),
        backend=opts.get("keyring_backend"),
        logger=log,
    )


def _file(opts: dict[str, Any], log: logging.Logger) -> TokenStore:
    return FileStore(
        token_store_dir=opts.get("token_store_dir"),
        encryption_key=opts.get("encryption_key"),
        logger=log,
    )


def _memory(opts: dict[str, Any], log: logging.Logger) -> TokenStore:
    return MemoryStore(logger=log)


_CONSTRUCTORS: dict[str, Callable[[dict[str, Any], logging.Logger], TokenStore]] = {
    "secure": _secure,
    "file": _file,
    "memory": _memory,
}

AUTO_CHAIN = ("secure", "file", "memory")
"""Order in which ``auto`` tries the backends."""


def create_token_store(
    token_store_type: Optional[str] = "auto",
    log: Optional[logging.Logger] = None,
    **opts: Any,
) -> Optional[TokenStore]:
    """Build the token store for *token_store_type*.

    Args:
        token_store_type: ``"auto"``, ``"secure"``, ``"file"``, ``"memory"``,
            or ``None`` for no persistence.
        log: Logger handed to the store.
        **opts: Backend options -- ``token_store_dir``, ``encryption_key``,
            ``secure_service_name``, ``keyring_backend``.

    Returns:
        The constructed store, or ``None`` when *token_store_type* is ``None``.

    Raises:
        InvalidValueError: If *token_store_type* is not a known type.
        StoreUnavailableError: If an explicitly requested secure store
            cannot be built.
        MissingRequiredParameterError: If an explicitly requested file store
            has no directory.
    """
    log = log or logger
    if token_store_type is None:
        return None
    if token_store_type not in STORE_TYPES:
        raise InvalidValueError(
            f"Invalid token store type: {token_store_type} "
            f"(expected one of: {', '.join(STORE_TYPES)})"
        )

    if token_store_type != "auto":
        return _CONSTRUCTORS[token_store_type](opts, log)

    failures: list[str] = []
    for name in AUTO_CHAIN:
        try:
            store = _CONSTRUCTORS[name](opts, log)
        except _FALLBACK_ERRORS as exc:
            failures.append(f"{name}: {exc.code}")
            log.debug("Token store %r unavailable, trying next: %s", name, exc)
            continue
        if failures:
            log.debug("Using %s token store (skipped %s)", name, ", ".join(failures))
        return store

    # The memory constructor cannot fail, so the loop always returns.
    raise AssertionError("unreachable")
