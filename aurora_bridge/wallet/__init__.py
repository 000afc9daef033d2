"""
aurora_bridge.wallet: key material and key stores.
"""

from .keypair import KeyPair  # noqa: F401
from .keystore import (  # noqa: F401
    InMemoryKeyStore,
    InMemoryMultiKeyStore,
    KeyStore,
    KeyStoreBackend,
    MergeKeyStore,
    UnencryptedFileSystemKeyStore,
    load_key_file,
)

__all__ = [
    "KeyPair",
    "KeyStoreBackend",
    "InMemoryKeyStore",
    "InMemoryMultiKeyStore",
    "UnencryptedFileSystemKeyStore",
    "MergeKeyStore",
    "KeyStore",
    "load_key_file",
]
