"""
Key stores: where signing keys for backend accounts come from.

Every source implements the same small interface (:class:`KeyStoreBackend`):

    set_key(network_id, account_id, key_pair)
    get_key(network_id, account_id) -> KeyPair | None
    remove_key(network_id, account_id)
    clear()
    get_networks() -> list[str]
    get_accounts(network_id) -> list[str]

Sources
-------
- InMemoryKeyStore              one key per (network, account), any network
- InMemoryMultiKeyStore         a *pool* of keys per account, bound to one
                                network, rotated round-robin by ``re_key()``
- UnencryptedFileSystemKeyStore ``<root>/<network>/<account>.json`` files
- MergeKeyStore                 an ordered list of sources: reads return the
                                first hit, writes go to the head of the list
- KeyStore                      a merge bound to one network whose head is
                                an InMemoryMultiKeyStore; this is what the
                                engine signs with

Rotation
--------
The pool keeps one counter for the whole store (not per account). Each
``re_key()`` advances it by one; ``get_key`` returns member
``counter % len(pool)`` of the account's pool, enumerated in ascending
public-key order. With a single key per account rotation has no visible
effect. Rotation never fails and returns nothing.

Key files
---------
JSON objects carrying ``account_id`` and ``private_key`` (or ``secret_key``)
in ``ed25519:<base58>`` form, as written by the backend's CLI and validator.
"""

from __future__ import annotations

import json
import os
import tempfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from ..account import AccountID, Address
from ..errors import KeyStoreError
from ..logging import get_logger
from .keypair import KeyPair

log = get_logger(__name__)

LOCAL_NETWORK_ID = "local"


# ----- Interface ---------------------------------------------------------------


class KeyStoreBackend(ABC):
    @abstractmethod
    def set_key(self, network_id: str, account_id: str, key_pair: KeyPair) -> None: ...

    @abstractmethod
    def get_key(self, network_id: str, account_id: str) -> Optional[KeyPair]: ...

    @abstractmethod
    def remove_key(self, network_id: str, account_id: str) -> None: ...

    @abstractmethod
    def clear(self) -> None: ...

    @abstractmethod
    def get_networks(self) -> List[str]: ...

    @abstractmethod
    def get_accounts(self, network_id: str) -> List[str]: ...


# ----- In-memory sources -------------------------------------------------------


class InMemoryKeyStore(KeyStoreBackend):
    """Single key per (network, account)."""

    def __init__(self) -> None:
        self._keys: Dict[Tuple[str, str], KeyPair] = {}

    def set_key(self, network_id: str, account_id: str, key_pair: KeyPair) -> None:
        self._keys[(network_id, account_id)] = key_pair

    def get_key(self, network_id: str, account_id: str) -> Optional[KeyPair]:
        return self._keys.get((network_id, account_id))

    def remove_key(self, network_id: str, account_id: str) -> None:
        self._keys.pop((network_id, account_id), None)

    def clear(self) -> None:
        self._keys.clear()

    def get_networks(self) -> List[str]:
        return sorted({network for network, _ in self._keys})

    def get_accounts(self, network_id: str) -> List[str]:
        return [account for network, account in self._keys if network == network_id]

    def __repr__(self) -> str:
        return "InMemoryKeyStore"


class InMemoryMultiKeyStore(KeyStoreBackend):
    """
    Key pools bound to a single network.

    Calls naming any other network are silent no-ops (``get_key`` returns
    None, ``get_accounts`` returns []), so the pool can sit inside a merge
    that is queried generically.
    """

    def __init__(self, network_id: str) -> None:
        self.network_id = network_id
        self.re_key_counter = 0
        self._pools: Dict[str, Dict[str, KeyPair]] = {}

    def re_key(self) -> None:
        self.re_key_counter += 1

    def set_key(self, network_id: str, account_id: str, key_pair: KeyPair) -> None:
        if network_id != self.network_id:
            return
        self._pools.setdefault(account_id, {})[key_pair.public_key] = key_pair

    def get_key(self, network_id: str, account_id: str) -> Optional[KeyPair]:
        if network_id != self.network_id:
            return None
        pool = self.get_pool(account_id)
        if not pool:
            return None
        return pool[self.re_key_counter % len(pool)]

    def get_pool(self, account_id: str) -> List[KeyPair]:
        """The account's keys in rotation order (ascending public key)."""
        pool = self._pools.get(account_id) or {}
        return [pool[pk] for pk in sorted(pool)]

    def remove_key(self, network_id: str, account_id: str) -> None:
        if network_id != self.network_id:
            return
        self._pools.pop(account_id, None)

    def clear(self, network_id: Optional[str] = None) -> None:
        if network_id is not None and network_id != self.network_id:
            return
        self._pools.clear()

    def get_networks(self) -> List[str]:
        return [self.network_id]

    def get_accounts(self, network_id: str) -> List[str]:
        if network_id != self.network_id:
            return []
        return [account for account, pool in self._pools.items() if pool]

    def __repr__(self) -> str:
        return f"InMemoryMultiKeyStore({self.network_id!r})"


# ----- On-disk source ----------------------------------------------------------


class UnencryptedFileSystemKeyStore(KeyStoreBackend):
    """Credentials directory: ``<root>/<network>/<account>.json``."""

    def __init__(self, root: os.PathLike[str] | str) -> None:
        self.root = Path(root)

    def _path(self, network_id: str, account_id: str) -> Path:
        return self.root / network_id / f"{account_id}.json"

    def set_key(self, network_id: str, account_id: str, key_pair: KeyPair) -> None:
        path = self._path(network_id, account_id)
        _atomic_write_json(
            path,
            {
                "account_id": account_id,
                "public_key": key_pair.public_key,
                "private_key": key_pair.secret_key,
            },
        )
        _chmod_private(path)

    def get_key(self, network_id: str, account_id: str) -> Optional[KeyPair]:
        path = self._path(network_id, account_id)
        if not path.is_file():
            return None
        _, key_pair = load_key_file(path)
        return key_pair

    def remove_key(self, network_id: str, account_id: str) -> None:
        path = self._path(network_id, account_id)
        if path.is_file():
            path.unlink()

    def clear(self) -> None:
        for network_id in self.get_networks():
            for account_id in self.get_accounts(network_id):
                self.remove_key(network_id, account_id)

    def get_networks(self) -> List[str]:
        if not self.root.is_dir():
            return []
        return sorted(p.name for p in self.root.iterdir() if p.is_dir())

    def get_accounts(self, network_id: str) -> List[str]:
        directory = self.root / network_id
        if not directory.is_dir():
            return []
        return sorted(p.stem for p in directory.glob("*.json"))

    def __repr__(self) -> str:
        return f"UnencryptedFileSystemKeyStore({str(self.root)!r})"


# ----- Merge -------------------------------------------------------------------


class MergeKeyStore(KeyStoreBackend):
    """
    Ordered list of sources (highest priority first).

    Reads return the first non-empty result; writes go to the source at
    ``write_index`` (the head by default); removals and clears fan out.
    """

    def __init__(self, key_stores: Sequence[KeyStoreBackend], *, write_index: int = 0) -> None:
        if not key_stores:
            raise KeyStoreError("MergeKeyStore needs at least one key store")
        self.key_stores: List[KeyStoreBackend] = list(key_stores)
        self.write_index = write_index

    def set_key(self, network_id: str, account_id: str, key_pair: KeyPair) -> None:
        self.key_stores[self.write_index].set_key(network_id, account_id, key_pair)

    def get_key(self, network_id: str, account_id: str) -> Optional[KeyPair]:
        for key_store in self.key_stores:
            key_pair = key_store.get_key(network_id, account_id)
            if key_pair is not None:
                return key_pair
        return None

    def remove_key(self, network_id: str, account_id: str) -> None:
        for key_store in self.key_stores:
            key_store.remove_key(network_id, account_id)

    def clear(self) -> None:
        for key_store in self.key_stores:
            key_store.clear()

    def get_networks(self) -> List[str]:
        return sorted({n for key_store in self.key_stores for n in key_store.get_networks()})

    def get_accounts(self, network_id: str) -> List[str]:
        """Deduplicated union over all sources, in ascending lexical order."""
        return sorted({a for key_store in self.key_stores for a in key_store.get_accounts(network_id)})

    def __repr__(self) -> str:
        return f"MergeKeyStore({', '.join(map(repr, self.key_stores))})"


class KeyStore(MergeKeyStore):
    """
    The engine's key store: a merge bound to ``network_id`` whose head is a
    rotating key pool. Key files are always loaded into the head.
    """

    def __init__(
        self,
        network_id: str,
        key_store: Optional[InMemoryMultiKeyStore] = None,
        key_stores: Iterable[KeyStoreBackend] = (),
    ) -> None:
        self.network_id = network_id
        self.key_store = key_store or InMemoryMultiKeyStore(network_id)
        super().__init__([self.key_store, *key_stores])

    @classmethod
    def load(cls, network_id: str, home: Optional[os.PathLike[str] | str] = None) -> "KeyStore":
        """
        Build the standard source list: the in-memory pool, then (when
        ``home`` is given) the local validator key and the CLI credentials
        directory ``<home>/.near-credentials``.
        """
        pool = InMemoryMultiKeyStore(network_id)
        if not home:
            return cls(network_id, pool)
        dev_key_store = cls.load_local_keys(home)
        cli_key_store = UnencryptedFileSystemKeyStore(Path(home) / ".near-credentials")
        return cls(network_id, pool, [dev_key_store, cli_key_store])

    @staticmethod
    def load_local_keys(home: os.PathLike[str] | str) -> InMemoryKeyStore:
        """Pick up ``<home>/.near/validator_key.json`` for the local network."""
        key_store = InMemoryKeyStore()
        path = Path(home) / ".near" / "validator_key.json"
        if path.is_file():
            account_id, key_pair = load_key_file(path)
            key_store.set_key(LOCAL_NETWORK_ID, account_id, key_pair)
            log.info("validator_key_loaded", account_id=account_id, path=str(path))
        return key_store

    def get_accounts(self, network_id: Optional[str] = None) -> List[str]:
        return super().get_accounts(network_id or self.network_id)

    def get_signing_accounts(self) -> List[AccountID]:
        parsed = (AccountID.parse(a) for a in self.get_accounts())
        return [r.unwrap() for r in parsed if r.is_ok()]

    def get_signing_addresses(self) -> List[Address]:
        return [account.to_address() for account in self.get_signing_accounts()]

    def re_key(self) -> None:
        self.key_store.re_key()

    def load_key_file(self, path: os.PathLike[str] | str) -> str:
        """Load one key file into the head of the list; returns its account id."""
        account_id, key_pair = load_key_file(path)
        self.key_stores[0].set_key(self.network_id, account_id, key_pair)
        log.info("key_file_loaded", account_id=account_id, public_key=key_pair.public_key)
        return account_id

    def load_key_files(self, paths: Iterable[os.PathLike[str] | str]) -> List[str]:
        return [self.load_key_file(path) for path in paths]

    def __repr__(self) -> str:
        return f"KeyStore({self.network_id!r})"


# ----- Key files ---------------------------------------------------------------


def load_key_file(path: os.PathLike[str] | str) -> Tuple[str, KeyPair]:
    """Read a key file and return ``(account_id, key_pair)``."""
    try:
        with open(path, "rb") as f:
            data = json.loads(f.read().decode("utf-8"))
    except FileNotFoundError as e:
        raise KeyStoreError(f"key file not found: {path}") from e
    except (OSError, ValueError) as e:
        raise KeyStoreError(f"failed to read key file {path}: {e}") from e
    if not isinstance(data, dict):
        raise KeyStoreError(f"malformed key file {path}: expected a JSON object")
    account_id = data.get("account_id")
    secret = data.get("private_key") or data.get("secret_key")
    if not isinstance(account_id, str) or not isinstance(secret, str):
        raise KeyStoreError(f"malformed key file {path}: missing account_id or private_key")
    return account_id, KeyPair.from_string(secret)


def _atomic_write_json(path: Path, obj: Dict[str, str]) -> None:
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        data = json.dumps(obj, separators=(",", ":"), sort_keys=True).encode("utf-8")
        with tempfile.NamedTemporaryFile("wb", delete=False, dir=str(path.parent)) as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
            tmp_name = tmp.name
        os.replace(tmp_name, path)
    except OSError as e:  # pragma: no cover - hard to simulate all FS errors
        raise KeyStoreError(f"failed to write key file {path}: {e}") from e


def _chmod_private(path: Path) -> None:
    if os.name == "posix":
        os.chmod(path, 0o600)


__all__ = [
    "KeyStoreBackend",
    "InMemoryKeyStore",
    "InMemoryMultiKeyStore",
    "UnencryptedFileSystemKeyStore",
    "MergeKeyStore",
    "KeyStore",
    "load_key_file",
]
