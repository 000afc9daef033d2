"""
aurora_bridge.rpc: backend JSON-RPC transport.
"""

from .http import NearRpc, NearRpcConfig, RpcError, RpcResponseError, RpcTransportError  # noqa: F401

__all__ = ["NearRpc", "NearRpcConfig", "RpcError", "RpcResponseError", "RpcTransportError"]
