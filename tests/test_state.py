from aurora_bridge.account import Address
from aurora_bridge.state import EngineStorageKeyPrefix, StateRecord, demux_records

ADDR_A = bytes.fromhex("00112233445566778899aabbccddeeff00112233")
ADDR_B = b"\xff" * 20
SLOT_1 = (1).to_bytes(32, "big")


def _be(n: int) -> bytes:
    return n.to_bytes(32, "big")


def test_demultiplexes_nonce_balance_and_storage():
    records = [
        StateRecord(bytes([EngineStorageKeyPrefix.Nonce]) + ADDR_A, _be(5)),
        StateRecord(bytes([EngineStorageKeyPrefix.Balance]) + ADDR_A, _be(100)),
        StateRecord(bytes([EngineStorageKeyPrefix.Storage]) + ADDR_A + SLOT_1, _be(7)),
    ]
    storage = demux_records(records)

    assert list(storage) == [ADDR_A.hex()]
    state = storage[ADDR_A.hex()]
    assert state.address == Address(ADDR_A)
    assert state.nonce == 5
    assert state.balance == 100
    assert state.code is None
    assert state.storage == {1: 7}


def test_config_records_and_unknown_prefixes_are_skipped():
    records = [
        StateRecord(bytes([EngineStorageKeyPrefix.Config]) + b"owner", b"x"),
        StateRecord(b"\x09" + ADDR_A, b"x"),
        StateRecord(b"", b"x"),
        StateRecord(bytes([EngineStorageKeyPrefix.Nonce]) + ADDR_A[:5], _be(1)),
    ]
    assert demux_records(records) == {}


def test_code_is_verbatim_and_addresses_are_lowercase_hex():
    records = [
        StateRecord(bytes([EngineStorageKeyPrefix.Code]) + ADDR_B, b"\x60\x80\x60\x40"),
        StateRecord(bytes([EngineStorageKeyPrefix.Storage]) + ADDR_B + _be(2), _be(9)),
        StateRecord(bytes([EngineStorageKeyPrefix.Storage]) + ADDR_B + _be(3), b""),
    ]
    state = demux_records(records)["ff" * 20]
    assert state.code == b"\x60\x80\x60\x40"
    assert state.nonce == 0 and state.balance == 0
    assert state.storage == {2: 9, 3: 0}


def test_each_scan_is_an_independent_snapshot():
    records = [StateRecord(bytes([EngineStorageKeyPrefix.Nonce]) + ADDR_A, _be(1))]
    first = demux_records(records)
    first[ADDR_A.hex()].nonce = 99
    assert demux_records(records)[ADDR_A.hex()].nonce == 1
