"""
Gas accounting for mutating calls.

After a mutating call settles (success or failure) the engine asks the
backend for the transaction's status and adds up ``gas_burnt`` over every
receipt the transaction induced plus the transaction's own outcome.

This is best effort: a missing transaction reference, a failed status
query or an unexpected response shape yields ``0`` instead of an error.
"""

from __future__ import annotations

from typing import Any, Dict, Mapping, Optional, Protocol

from .errors import GasAccountingUnavailable
from .logging import get_logger

log = get_logger(__name__)


class _StatusProvider(Protocol):
    async def tx_status(self, tx_hash: str, account_id: str) -> Dict[str, Any]: ...


def sum_gas_burned(status: Mapping[str, Any]) -> int:
    """Receipts' gas plus the top-level transaction's gas."""
    try:
        receipts = sum(int(r["outcome"]["gas_burnt"]) for r in status.get("receipts_outcome") or [])
        transaction = int((status.get("transaction_outcome") or {}).get("outcome", {}).get("gas_burnt") or 0)
    except (KeyError, TypeError, ValueError, AttributeError) as e:
        raise GasAccountingUnavailable(f"unexpected transaction status shape: {e}") from e
    return receipts + transaction


async def fetch_gas_burned(provider: _StatusProvider, tx: Optional[str], account_id: str) -> int:
    """Like :func:`transaction_gas_burned` but raises ``GasAccountingUnavailable``."""
    if not tx:
        raise GasAccountingUnavailable("no transaction reference")
    try:
        status = await provider.tx_status(tx, account_id)
    except Exception as e:
        raise GasAccountingUnavailable(f"transaction status unavailable: {e}") from e
    return sum_gas_burned(status)


async def transaction_gas_burned(provider: _StatusProvider, tx: Optional[str], account_id: str) -> int:
    try:
        return await fetch_gas_burned(provider, tx, account_id)
    except GasAccountingUnavailable as e:
        log.debug("gas_accounting_unavailable", tx=tx, reason=e.message)
        return 0


__all__ = ["sum_gas_burned", "fetch_gas_burned", "transaction_gas_burned"]
