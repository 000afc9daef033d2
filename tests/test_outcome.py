import pytest

from aurora_bridge.tx.outcome import FailureKind, TransactionID, decode_failure


def _failure(kind):
    return {"status": {"Failure": {"ActionError": {"index": 0, "kind": kind}}}, "transaction_outcome": {"id": "tx1"}}


def test_success_is_not_a_failure():
    assert decode_failure({"status": {"SuccessValue": ""}}) is None
    assert decode_failure({}) is None


def test_execution_error():
    failure = decode_failure(_failure({"FunctionCallError": {"ExecutionError": "Smart contract panicked: ERR_X"}}))
    assert failure.kind is FailureKind.EXECUTION
    assert failure.message == "Smart contract panicked: ERR_X"
    assert failure.tx == "tx1"


def test_method_not_found():
    failure = decode_failure(_failure({"FunctionCallError": {"MethodResolveError": "MethodNotFound"}}))
    assert failure.kind is FailureKind.METHOD_NOT_FOUND
    assert failure.message == "Contract method is not found"


@pytest.mark.parametrize(
    "status",
    [
        {"Failure": {"InvalidTxError": {"InvalidNonce": {"tx_nonce": 1, "ak_nonce": 2}}}},
        {"Failure": {"ActionError": {"index": 0, "kind": {"AccountDoesNotExist": {"account_id": "x"}}}}},
        {"Failure": "weird"},
    ],
)
def test_everything_else_is_other(status):
    failure = decode_failure({"status": status})
    assert failure.kind is FailureKind.OTHER
    assert failure.tx is None


def test_transaction_id_encodings():
    tid = TransactionID(b"\x01" * 32)
    assert TransactionID.from_base58(tid.base58) == tid
    assert TransactionID.from_hex(tid.to_hex()) == tid
    assert str(tid) == "0x" + "01" * 32
    assert TransactionID.zero().raw == b"\x00" * 32
