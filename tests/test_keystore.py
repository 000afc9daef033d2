import json
import os
import stat

import pytest

from aurora_bridge.account import AccountID
from aurora_bridge.errors import KeyStoreError
from aurora_bridge.wallet.keypair import KeyPair
from aurora_bridge.wallet.keystore import (
    InMemoryKeyStore,
    InMemoryMultiKeyStore,
    KeyStore,
    MergeKeyStore,
    UnencryptedFileSystemKeyStore,
    load_key_file,
)


def _keys(n):
    return [KeyPair.from_seed(bytes([i + 1]) * 32) for i in range(n)]


def _write_key_file(path, account_id, key_pair, field="private_key"):
    path.write_text(json.dumps({"account_id": account_id, "public_key": key_pair.public_key, field: key_pair.secret_key}))
    return path


# ----- Key pairs ----------------------------------------------------------------


def test_keypair_string_roundtrip_and_signing():
    kp = KeyPair.from_random()
    again = KeyPair.from_string(kp.secret_key)
    assert again == kp
    assert again.public_key.startswith("ed25519:")
    sig = kp.sign(b"hello")
    assert len(sig) == 64
    assert again.verify(b"hello", sig)
    assert not again.verify(b"hello!", sig)


def test_keypair_rejects_other_curves_and_bad_lengths():
    with pytest.raises(KeyStoreError):
        KeyPair.from_string("secp256k1:abc")
    with pytest.raises(KeyStoreError):
        KeyPair.from_string("ed25519:1111")


# ----- Multi-key pool ---------------------------------------------------------------


def test_pool_ignores_other_networks():
    pool = InMemoryMultiKeyStore("testnet")
    (kp,) = _keys(1)
    pool.set_key("mainnet", "alice.near", kp)
    assert pool.get_key("mainnet", "alice.near") is None
    assert pool.get_key("testnet", "alice.near") is None
    assert pool.get_accounts("mainnet") == []
    assert pool.get_accounts("testnet") == []

    pool.set_key("testnet", "alice.near", kp)
    pool.remove_key("mainnet", "alice.near")
    pool.clear("mainnet")
    assert pool.get_key("testnet", "alice.near") == kp


def test_pool_get_key_on_empty_returns_none():
    pool = InMemoryMultiKeyStore("testnet")
    assert pool.get_key("testnet", "nobody.near") is None
    pool.re_key()
    assert pool.get_key("testnet", "nobody.near") is None


def test_rotation_cycles_through_every_key_in_stable_order():
    pool = InMemoryMultiKeyStore("testnet")
    keys = _keys(3)
    for kp in keys:
        pool.set_key("testnet", "alice.near", kp)

    order = pool.get_pool("alice.near")
    assert sorted(k.public_key for k in order) == [k.public_key for k in order]

    seen = []
    for _ in range(3):
        pool.re_key()
        seen.append(pool.get_key("testnet", "alice.near"))
    assert set(seen) == set(keys)

    # and then repeats
    for expected in seen:
        pool.re_key()
        assert pool.get_key("testnet", "alice.near") == expected


def test_get_key_without_rekey_is_stable():
    pool = InMemoryMultiKeyStore("testnet")
    for kp in reversed(_keys(3)):
        pool.set_key("testnet", "alice.near", kp)
    first = pool.get_key("testnet", "alice.near")
    assert all(pool.get_key("testnet", "alice.near") == first for _ in range(5))


def test_rotation_counter_is_shared_by_all_accounts():
    pool = InMemoryMultiKeyStore("testnet")
    a1, a2, b1, b2 = _keys(4)
    for kp in (a1, a2):
        pool.set_key("testnet", "alice.near", kp)
    for kp in (b1, b2):
        pool.set_key("testnet", "bob.near", kp)

    pool.re_key()
    assert pool.re_key_counter == 1
    assert pool.get_key("testnet", "alice.near") == pool.get_pool("alice.near")[1]
    assert pool.get_key("testnet", "bob.near") == pool.get_pool("bob.near")[1]


def test_single_key_rotation_has_no_visible_effect():
    pool = InMemoryMultiKeyStore("testnet")
    (kp,) = _keys(1)
    pool.set_key("testnet", "alice.near", kp)
    for _ in range(4):
        pool.re_key()
        assert pool.get_key("testnet", "alice.near") == kp


def test_remove_key_drops_whole_pool():
    pool = InMemoryMultiKeyStore("testnet")
    for kp in _keys(2):
        pool.set_key("testnet", "alice.near", kp)
    pool.remove_key("testnet", "alice.near")
    assert pool.get_key("testnet", "alice.near") is None
    assert pool.get_accounts("testnet") == []


# ----- Merge -------------------------------------------------------------------


def test_merge_get_accounts_is_sorted_and_deduplicated():
    k1, k2, k3 = _keys(3)
    a = InMemoryKeyStore()
    b = InMemoryKeyStore()
    a.set_key("testnet", "zed.near", k1)
    a.set_key("testnet", "alice.near", k2)
    b.set_key("testnet", "alice.near", k3)
    b.set_key("testnet", "bob.near", k3)
    b.set_key("mainnet", "carol.near", k3)

    merged = MergeKeyStore([a, b])
    assert merged.get_accounts("testnet") == ["alice.near", "bob.near", "zed.near"]


def test_merge_get_key_returns_first_hit_in_priority_order():
    k1, k2 = _keys(2)
    a = InMemoryKeyStore()
    b = InMemoryKeyStore()
    a.set_key("testnet", "alice.near", k1)
    b.set_key("testnet", "alice.near", k2)
    b.set_key("testnet", "bob.near", k2)

    merged = MergeKeyStore([a, b])
    assert merged.get_key("testnet", "alice.near") == k1
    assert merged.get_key("testnet", "bob.near") == k2
    assert merged.get_key("testnet", "carol.near") is None


def test_merge_writes_go_to_the_head():
    (kp,) = _keys(1)
    a = InMemoryKeyStore()
    b = InMemoryKeyStore()
    merged = MergeKeyStore([a, b])
    merged.set_key("testnet", "alice.near", kp)
    assert a.get_key("testnet", "alice.near") == kp
    assert b.get_key("testnet", "alice.near") is None


# ----- Key files and the bound KeyStore ---------------------------------------------


def test_load_key_file_accepts_private_or_secret_key(tmp_path):
    (kp,) = _keys(1)
    p1 = _write_key_file(tmp_path / "a.json", "alice.near", kp)
    p2 = _write_key_file(tmp_path / "b.json", "bob.near", kp, field="secret_key")
    assert load_key_file(p1) == ("alice.near", kp)
    assert load_key_file(p2) == ("bob.near", kp)


@pytest.mark.parametrize("content", ["not json", "[]", '{"account_id": "alice.near"}'])
def test_load_key_file_rejects_malformed_files(tmp_path, content):
    path = tmp_path / "bad.json"
    path.write_text(content)
    with pytest.raises(KeyStoreError):
        load_key_file(path)


def test_load_key_file_missing(tmp_path):
    with pytest.raises(KeyStoreError):
        load_key_file(tmp_path / "missing.json")


def test_key_store_loads_files_into_the_rotating_pool(tmp_path):
    k1, k2 = _keys(2)
    disk = UnencryptedFileSystemKeyStore(tmp_path / "creds")
    store = KeyStore("testnet", key_stores=[disk])

    store.load_key_files(
        [
            _write_key_file(tmp_path / "1.json", "relayer.testnet", k1),
            _write_key_file(tmp_path / "2.json", "relayer.testnet", k2),
        ]
    )
    assert store.key_store.get_pool("relayer.testnet") == sorted([k1, k2], key=lambda k: k.public_key)
    assert disk.get_accounts("testnet") == []

    first = store.get_key("testnet", "relayer.testnet")
    store.re_key()
    second = store.get_key("testnet", "relayer.testnet")
    assert {first, second} == {k1, k2}


def test_key_store_signing_accounts_skip_invalid_ids():
    (kp,) = _keys(1)
    store = KeyStore("testnet")
    store.set_key("testnet", "relayer.testnet", kp)
    store.set_key("testnet", "Not Valid", kp)
    assert store.get_signing_accounts() == [AccountID("relayer.testnet")]
    assert store.get_signing_addresses() == [AccountID("relayer.testnet").to_address()]


def test_key_store_load_picks_up_home_sources(tmp_path):
    k1, k2 = _keys(2)
    (tmp_path / ".near").mkdir()
    _write_key_file(tmp_path / ".near" / "validator_key.json", "test.near", k1, field="secret_key")
    UnencryptedFileSystemKeyStore(tmp_path / ".near-credentials").set_key("local", "alice.test.near", k2)

    store = KeyStore.load("local", tmp_path)
    assert store.get_accounts() == ["alice.test.near", "test.near"]
    assert store.get_key("local", "test.near") == k1
    assert store.get_key("local", "alice.test.near") == k2


def test_file_store_roundtrip_and_permissions(tmp_path):
    (kp,) = _keys(1)
    disk = UnencryptedFileSystemKeyStore(tmp_path)
    disk.set_key("testnet", "alice.testnet", kp)

    path = tmp_path / "testnet" / "alice.testnet.json"
    assert path.is_file()
    if os.name == "posix":
        assert stat.S_IMODE(path.stat().st_mode) == 0o600
    assert disk.get_key("testnet", "alice.testnet") == kp
    assert disk.get_networks() == ["testnet"]
    assert disk.get_accounts("testnet") == ["alice.testnet"]

    disk.remove_key("testnet", "alice.testnet")
    assert disk.get_key("testnet", "alice.testnet") is None
