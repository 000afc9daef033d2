"""
Version helpers for aurora-bridge.
We keep a static __version__ (PEP 440); bump it when publishing.
"""

from __future__ import annotations

__version__ = "0.1.0"

USER_AGENT = f"aurora-bridge-py/{__version__}"

__all__ = ["__version__", "USER_AGENT"]
