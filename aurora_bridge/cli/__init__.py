"""
aurora_bridge.cli
=================

Command-line interface over the engine's read surface.

The Typer app is imported lazily so regular library imports do not pull in
Typer.

    $ aurora-bridge --help
"""

from __future__ import annotations

from importlib import import_module
from typing import Any, List, Optional

__all__: List[str] = ["main", "run", "app"]

_SUBMODULE = "aurora_bridge.cli.commands"
_EXPOSE = ("app", "main", "run")


def _load() -> Any:
    return import_module(_SUBMODULE)


def __getattr__(name: str) -> Any:  # PEP 562 lazy attribute access
    if name in _EXPOSE:
        return getattr(_load(), name)
    raise AttributeError(f"module {__name__!r} has no attribute {name!r}")


def main(argv: Optional[list[str]] = None) -> int:
    return int(_load().main(argv))


def run(argv: Optional[list[str]] = None) -> int:
    """Alias for :func:`main`."""
    return main(argv)
