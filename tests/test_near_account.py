import base64
import hashlib

import base58
import pytest

from aurora_bridge.errors import KeyStoreError
from aurora_bridge.tx.account import NearAccount
from aurora_bridge.tx.near import DeployContract, FunctionCall, build_transaction, sign_transaction
from aurora_bridge.tx.outcome import FailureKind, ServerTransactionError
from aurora_bridge.utils.borsh import BorshReader
from aurora_bridge.wallet.keypair import KeyPair
from aurora_bridge.wallet.keystore import KeyStore

BLOCK_HASH = b"\x42" * 32
SIGNER = "relayer.test.near"


class BroadcastingProvider:
    def __init__(self, outcome):
        self.outcome = outcome
        self.queries = []
        self.sent = []

    async def query(self, request):
        self.queries.append(request)
        if request["request_type"] == "view_access_key":
            return {"nonce": 41, "block_hash": base58.b58encode(BLOCK_HASH).decode(), "permission": "FullAccess"}
        if request["request_type"] == "view_state":
            return {
                "values": [
                    {"key": base64.b64encode(b"\x01k").decode(), "value": base64.b64encode(b"v").decode()},
                ]
            }
        return {}

    async def send_transaction(self, signed_tx):
        self.sent.append(signed_tx)
        return self.outcome


def _store_with(*keys):
    store = KeyStore("local")
    for kp in keys:
        store.set_key("local", SIGNER, kp)
    return store


def test_signed_transaction_layout_and_signature():
    kp = KeyPair.from_seed(b"\x01" * 32)
    tx = build_transaction(SIGNER, kp, 7, "aurora.test.near", BLOCK_HASH, [FunctionCall("submit", b"\xaa", 10**14)])
    tx_hash, signed = sign_transaction(tx, kp)

    body = tx.serialize()
    assert tx_hash == hashlib.sha256(body).digest()
    assert signed[: len(body)] == body

    r = BorshReader(body)
    assert r.string() == SIGNER
    assert r.u8() == 0 and r.fixed(32) == kp.public_key_bytes
    assert r.u64() == 7
    assert r.string() == "aurora.test.near"
    assert r.fixed(32) == BLOCK_HASH
    assert r.u32() == 1
    assert r.u8() == 2
    assert r.string() == "submit"
    assert r.bytes() == b"\xaa"
    assert r.u64() == 10**14
    assert r.u128() == 0
    r.finish()

    sig = BorshReader(signed[len(body) :])
    assert sig.u8() == 0
    assert kp.verify(tx_hash, sig.fixed(64))


def test_deploy_action_layout():
    kp = KeyPair.from_seed(b"\x02" * 32)
    tx = build_transaction(SIGNER, kp, 1, SIGNER, BLOCK_HASH, [DeployContract(b"\x00asm")])
    assert tx.serialize().endswith(b"\x01" + (4).to_bytes(4, "little") + b"\x00asm")


@pytest.mark.asyncio
async def test_function_call_signs_with_next_nonce():
    kp = KeyPair.from_seed(b"\x03" * 32)
    provider = BroadcastingProvider({"status": {"SuccessValue": ""}})
    account = NearAccount(provider, SIGNER, _store_with(kp), "local")

    outcome = await account.function_call("aurora.test.near", "call", b"\x01", 10**14)
    assert outcome == {"status": {"SuccessValue": ""}}

    (access_key_query,) = provider.queries
    assert access_key_query["request_type"] == "view_access_key"
    assert access_key_query["public_key"] == kp.public_key

    (signed,) = provider.sent
    r = BorshReader(signed)
    r.string()
    r.u8()
    r.fixed(32)
    assert r.u64() == 42


@pytest.mark.asyncio
async def test_rotation_changes_the_signing_key():
    k1, k2 = KeyPair.from_seed(b"\x04" * 32), KeyPair.from_seed(b"\x05" * 32)
    store = _store_with(k1, k2)
    provider = BroadcastingProvider({"status": {"SuccessValue": ""}})
    account = NearAccount(provider, SIGNER, store, "local")

    await account.function_call("aurora.test.near", "call", b"", 1)
    store.re_key()
    await account.function_call("aurora.test.near", "call", b"", 1)
    used = [q["public_key"] for q in provider.queries]
    assert sorted(used) == sorted([k1.public_key, k2.public_key])


@pytest.mark.asyncio
async def test_failure_status_raises_server_transaction_error():
    kp = KeyPair.from_seed(b"\x06" * 32)
    outcome = {
        "status": {
            "Failure": {
                "ActionError": {
                    "index": 0,
                    "kind": {"FunctionCallError": {"ExecutionError": "Smart contract panicked: ERR_OUT_OF_GAS"}},
                }
            }
        },
        "transaction_outcome": {"id": "txref", "outcome": {"gas_burnt": 1}},
    }
    account = NearAccount(BroadcastingProvider(outcome), SIGNER, _store_with(kp), "local")
    with pytest.raises(ServerTransactionError) as exc:
        await account.function_call("aurora.test.near", "submit", b"", 1)
    assert exc.value.failure.kind is FailureKind.EXECUTION
    assert exc.value.failure.tx == "txref"


@pytest.mark.asyncio
async def test_missing_key_raises_key_store_error():
    account = NearAccount(BroadcastingProvider({}), SIGNER, KeyStore("local"), "local")
    with pytest.raises(KeyStoreError):
        await account.function_call("aurora.test.near", "call", b"", 1)


@pytest.mark.asyncio
async def test_view_state_decodes_records():
    provider = BroadcastingProvider({})
    account = NearAccount(provider, "aurora.test.near", KeyStore("local"), "local")
    records = await account.view_state()
    assert [(r.key, r.value) for r in records] == [(b"\x01k", b"v")]
    (query,) = provider.queries
    assert query["prefix_base64"] == ""
    assert query["finality"] == "final"
