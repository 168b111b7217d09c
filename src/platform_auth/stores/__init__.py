"""Token stores -- persistence for credential entries.

Three interchangeable backends share the :class:`TokenStore` contract and
differ only in durability and encryption:

- :class:`MemoryStore` -- process lifetime only.
- :class:`FileStore` -- a local file, optionally Fernet-encrypted.
- :class:`SecureStore` -- the host credential vault via :mod:`keyring`.

:func:`create_token_store` implements the ``auto`` fallback chain.
"""

from platform_auth.stores.base import TokenStore
from platform_auth.stores.factory import AUTO_CHAIN, STORE_TYPES, create_token_store
from platform_auth.stores.file import FileStore
from platform_auth.stores.memory import MemoryStore
from platform_auth.stores.secure import SecureStore

__all__ = [
    "AUTO_CHAIN",
    "FileStore",
    "MemoryStore",
    "STORE_TYPES",
    "SecureStore",
    "TokenStore",
    "create_token_store",
]
