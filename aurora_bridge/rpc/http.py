"""
Async JSON-RPC client for the backend network.

This adapter is intentionally small. It provides:
- a retrying async JSON-RPC transport over HTTP(S) (httpx)
- the handful of backend primitives the bridge consumes:
  * query              view calls, account/access-key lookups, state scans
  * tx                 transaction status (gas accounting)
  * block / chunk      block metadata and per-chunk transactions
  * broadcast_tx_commit  submit a signed transaction and wait for its outcome

Notes
-----
* Only transport failures (timeouts, connection errors, 502/503/504) are
  retried. A JSON-RPC error object is the backend's answer and is raised
  immediately as :class:`RpcResponseError`.
* Backend errors carry a structured ``name``/``cause`` pair next to the
  classic ``code``/``message``/``data``; both are preserved.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Dict, Optional

import httpx

from ..logging import get_logger
from ..utils.bytes import b64encode
from ..version import USER_AGENT

log = get_logger(__name__)


# ----------------------------- Errors ---------------------------------------


class RpcError(Exception):
    """Base class for all backend RPC errors."""


class RpcTransportError(RpcError):
    """Network/HTTP transport-level error."""


class RpcResponseError(RpcError):
    """JSON-RPC error object returned from the backend."""

    def __init__(
        self,
        code: int,
        message: str,
        data: Any | None = None,
        name: Optional[str] = None,
        cause: Optional[Dict[str, Any]] = None,
    ):
        self.code = code
        self.message = message
        self.data = data
        self.name = name
        self.cause = cause or {}
        super().__init__(self._describe())

    @property
    def cause_name(self) -> Optional[str]:
        return self.cause.get("name") if isinstance(self.cause, dict) else None

    def _describe(self) -> str:
        parts = [f"RPC error {self.code}: {self.message}"]
        if self.cause_name:
            parts.append(f"[{self.cause_name}]")
        if self.data is not None:
            parts.append(f"{self.data}" if isinstance(self.data, str) else json.dumps(self.data))
        return " ".join(parts)


# ----------------------------- Helpers --------------------------------------


def _should_retry(status: Optional[int]) -> bool:
    return status in (502, 503, 504)


def _build_headers(extra: Optional[Dict[str, str]] = None) -> Dict[str, str]:
    hdrs = {
        "content-type": "application/json",
        "accept": "application/json",
        "user-agent": USER_AGENT,
    }
    if extra:
        hdrs.update(extra)
    return hdrs


# ----------------------------- Client ---------------------------------------


@dataclass
class NearRpcConfig:
    url: str
    timeout_s: float = 30.0
    max_retries: int = 3
    backoff_base_s: float = 0.25  # exponential backoff starting delay
    headers: Optional[Dict[str, str]] = None


class NearRpc:
    """
    Minimal async JSON-RPC client for the backend network.
    """

    def __init__(self, config: NearRpcConfig, *, transport: Optional[httpx.AsyncBaseTransport] = None):
        self._cfg = config
        self._transport = transport
        self._id = 0
        self._client: Optional[httpx.AsyncClient] = None

    @property
    def url(self) -> str:
        return self._cfg.url

    # ---------- lifecycle ----------

    async def start(self) -> None:
        if self._client is None:
            self._client = httpx.AsyncClient(
                timeout=self._cfg.timeout_s,
                headers=_build_headers(self._cfg.headers),
                transport=self._transport,
            )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def __aenter__(self) -> "NearRpc":
        await self.start()
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ---------- core transport ----------

    async def call(self, method: str, params: Any | None = None) -> Any:
        """
        Perform a single JSON-RPC call with retries.
        """
        if self._client is None:
            await self.start()

        assert self._client is not None  # for type-checkers

        self._id += 1
        payload = {"jsonrpc": "2.0", "id": self._id, "method": method, "params": params if params is not None else []}

        attempt = 0
        while True:
            attempt += 1
            try:
                resp = await self._client.post(self._cfg.url, json=payload)
                if resp.status_code != 200 and _should_retry(resp.status_code):
                    raise RpcTransportError(f"HTTP {resp.status_code}: {resp.text[:256]!r}")
                try:
                    data = resp.json()
                except ValueError as e:
                    raise RpcResponseError(
                        -32603, "Non-JSON response from RPC", f"HTTP {resp.status_code}: {resp.text[:256]}"
                    ) from e
                if not isinstance(data, dict):
                    raise RpcResponseError(-32603, "Invalid JSON-RPC response type", type(data).__name__)
                err = data.get("error")
                if err is not None:
                    raise RpcResponseError(
                        err.get("code", -32000),
                        err.get("message", "Unknown error"),
                        err.get("data"),
                        name=err.get("name"),
                        cause=err.get("cause"),
                    )
                if "result" not in data:
                    raise RpcResponseError(-32603, "Malformed JSON-RPC response", data)
                return data["result"]
            except (httpx.TimeoutException, httpx.TransportError, RpcTransportError) as exc:
                if attempt > self._cfg.max_retries:
                    raise RpcTransportError(f"RPC call failed after {attempt} attempts: {exc}") from exc
                delay = self._cfg.backoff_base_s * (2 ** (attempt - 1))
                log.debug("rpc_retry", method=method, attempt=attempt, delay=delay, error=str(exc))
                await asyncio.sleep(delay)

    # ---------- backend primitives ----------

    async def query(self, request: Dict[str, Any]) -> Dict[str, Any]:
        return await self.call("query", request)

    async def tx_status(self, tx_hash: str, account_id: str) -> Dict[str, Any]:
        return await self.call("tx", [tx_hash, account_id])

    async def block(self, block_query: Dict[str, Any]) -> Dict[str, Any]:
        return await self.call("block", block_query)

    async def chunk(self, chunk_hash: str) -> Dict[str, Any]:
        return await self.call("chunk", {"chunk_id": chunk_hash})

    async def send_transaction(self, signed_tx: bytes) -> Dict[str, Any]:
        """Broadcast a signed transaction and wait for its final outcome."""
        return await self.call("broadcast_tx_commit", [b64encode(signed_tx)])


__all__ = [
    "NearRpc",
    "NearRpcConfig",
    "RpcError",
    "RpcTransportError",
    "RpcResponseError",
]
