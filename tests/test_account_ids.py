import pytest
from eth_utils import keccak

from aurora_bridge.account import AccountID, Address
from aurora_bridge.errors import InvalidAccountID, InvalidAddress


@pytest.mark.parametrize("value", ["aurora", "aurora.test.near", "relay_er-1.near", "1a"])
def test_valid_account_ids(value):
    assert AccountID.parse(value).unwrap().id == value


@pytest.mark.parametrize("value", ["", "a", "A.near", "a..near", "-a.near", "a" * 65, "has space", None, 42])
def test_invalid_account_ids(value):
    err = AccountID.parse(value).unwrap_err()
    assert isinstance(err, InvalidAccountID)


def test_account_to_address():
    assert AccountID("aurora").to_address().to_bytes() == keccak(b"aurora")[-20:]


def test_address_parse_and_render():
    addr = Address.parse("0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed").unwrap()
    assert addr.to_hex() == "0x5aaeb6053f3e94c9b9a09f33669435e7ef1beaed"
    assert str(addr) == "0x5aAeb6053F3E94C9b9A09f33669435E7Ef1BeAed"
    assert Address.parse(addr.to_hex()[2:]).unwrap() == addr
    assert Address.zero().is_zero()


@pytest.mark.parametrize("value", ["0x1234", "zz" * 20, "0x" + "00" * 21])
def test_address_parse_rejects_garbage(value):
    assert isinstance(Address.parse(value).unwrap_err(), InvalidAddress)


def test_address_requires_twenty_bytes():
    with pytest.raises(InvalidAddress):
        Address(b"\x00" * 19)
    assert Address.from_bytes(b"\x00" * 21).is_err()
