import pytest

from aurora_bridge.errors import GasAccountingUnavailable
from aurora_bridge.gas import fetch_gas_burned, sum_gas_burned, transaction_gas_burned
from aurora_bridge.rpc.http import RpcTransportError

from conftest import SIGNER_ID, TX_REF


def test_sums_receipts_and_transaction(make_tx_status):
    assert sum_gas_burned(make_tx_status(5, 10, 20)) == 35
    assert sum_gas_burned(make_tx_status(5)) == 5


def test_bad_shape_is_unavailable():
    with pytest.raises(GasAccountingUnavailable):
        sum_gas_burned({"receipts_outcome": [{"outcome": {}}]})


@pytest.mark.asyncio
async def test_queries_status_for_the_transaction(provider, make_tx_status):
    provider.tx_statuses[TX_REF] = make_tx_status(5, 10, 20)
    assert await transaction_gas_burned(provider, TX_REF, SIGNER_ID) == 35
    assert provider.calls == [("tx", (TX_REF, SIGNER_ID))]


@pytest.mark.asyncio
async def test_status_failure_degrades_to_zero(provider):
    provider.tx_status_error = RpcTransportError("timeout")
    assert await transaction_gas_burned(provider, TX_REF, SIGNER_ID) == 0
    with pytest.raises(GasAccountingUnavailable):
        await fetch_gas_burned(provider, TX_REF, SIGNER_ID)


@pytest.mark.asyncio
async def test_missing_reference_degrades_to_zero_without_query(provider):
    assert await transaction_gas_burned(provider, None, SIGNER_ID) == 0
    assert provider.calls == []
