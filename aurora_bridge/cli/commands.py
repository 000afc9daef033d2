"""
aurora_bridge.cli.commands
==========================

`aurora-bridge`: inspect an engine contract from the shell.

Examples
--------
    $ aurora-bridge --network testnet chain-id
    $ aurora-bridge balance 0x0000000000000000000000000000000000000001
    $ aurora-bridge storage-at 0x...01 0x0
    $ aurora-bridge accounts

Configuration
-------------
Flags override the environment (``NEAR_ENV``, ``NEAR_URL``, ``AURORA_ENGINE``,
``NEAR_MASTER_ACCOUNT``), which overrides the built-in network table.

Every command prints JSON on success. On failure it prints the error string
to stderr and exits with status 1.
"""

from __future__ import annotations

import asyncio
import json
import sys
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Optional

import typer

from ..account import Address
from ..config import EngineSettings
from ..engine import Engine
from ..logging import setup_logging
from ..result import Result
from ..state import AddressState
from ..version import __version__

app = typer.Typer(
    name="aurora-bridge",
    help="Query an EVM engine contract hosted on the backend network.",
    no_args_is_help=True,
    add_completion=False,
)

__all__ = ["app", "main", "run"]


@dataclass
class Ctx:
    overrides: Dict[str, Any] = field(default_factory=dict)


def _print_json(obj: Any) -> None:
    typer.echo(json.dumps(obj, indent=2, ensure_ascii=False))


def _state_to_json(state: AddressState) -> Dict[str, Any]:
    return {
        "address": str(state.address),
        "nonce": state.nonce,
        "balance": state.balance,
        "code": None if state.code is None else "0x" + state.code.hex(),
        "storage": {hex(k): v for k, v in sorted(state.storage.items())},
    }


def _parse_address(value: str) -> Address:
    parsed = Address.parse(value)
    if parsed.is_err():
        raise typer.BadParameter(parsed.unwrap_err().message)
    return parsed.unwrap()


def _connect(ctx: typer.Context) -> Engine:
    c: Ctx = ctx.obj
    return Engine.connect(EngineSettings(), **c.overrides)


def _run(
    ctx: typer.Context,
    query: Callable[[Engine], Awaitable[Result[Any, Any]]],
    render: Callable[[Any], Any] = lambda v: v,
) -> None:
    engine = _connect(ctx)

    async def go() -> Result[Any, Any]:
        async with engine:
            return await query(engine)

    result = asyncio.run(go())
    if result.is_err():
        typer.echo(str(result.unwrap_err()), err=True)
        raise typer.Exit(code=1)
    _print_json(render(result.unwrap()))


@app.callback()
def _root(
    ctx: typer.Context,
    network: Optional[str] = typer.Option(None, "--network", help="Backend network id.", envvar="NEAR_ENV"),
    endpoint: Optional[str] = typer.Option(None, "--endpoint", help="Backend JSON-RPC URL.", envvar="NEAR_URL"),
    contract: Optional[str] = typer.Option(None, "--engine", help="Engine contract account id.", envvar="AURORA_ENGINE"),
    signer: Optional[str] = typer.Option(None, "--signer", help="Signer account id.", envvar="NEAR_MASTER_ACCOUNT"),
    log_level: str = typer.Option("WARNING", "--log-level", help="Log level."),
) -> None:
    setup_logging(level=log_level, log_format="console")
    ctx.obj = Ctx(overrides={"network": network, "endpoint": endpoint, "contract": contract, "signer": signer})


@app.command("version")
def version() -> None:
    """Print the CLI version."""
    typer.echo(f"aurora-bridge {__version__}")


@app.command("accounts")
def accounts(ctx: typer.Context) -> None:
    """List signing accounts and their EVM addresses."""
    _run(
        ctx,
        lambda engine: engine.get_signing_accounts(),
        lambda ids: [{"account_id": str(a), "address": str(a.to_address())} for a in ids],
    )


@app.command("chain-id")
def chain_id(ctx: typer.Context) -> None:
    """Print the engine's EVM chain id."""
    _run(ctx, lambda engine: engine.get_chain_id())


@app.command("balance")
def balance(ctx: typer.Context, address: str = typer.Argument(..., help="EVM address (0x...)")) -> None:
    """Print an address's balance (wei)."""
    addr = _parse_address(address)
    _run(ctx, lambda engine: engine.get_balance(addr))


@app.command("nonce")
def nonce(ctx: typer.Context, address: str = typer.Argument(..., help="EVM address (0x...)")) -> None:
    """Print an address's nonce."""
    addr = _parse_address(address)
    _run(ctx, lambda engine: engine.get_nonce(addr))


@app.command("code")
def code(ctx: typer.Context, address: str = typer.Argument(..., help="EVM address (0x...)")) -> None:
    """Print the code deployed at an address."""
    addr = _parse_address(address)
    _run(ctx, lambda engine: engine.get_code(addr), lambda out: "0x" + out.hex())


@app.command("storage-at")
def storage_at(
    ctx: typer.Context,
    address: str = typer.Argument(..., help="EVM address (0x...)"),
    key: str = typer.Argument(..., help="Storage slot (decimal or 0x-hex)"),
) -> None:
    """Print one storage slot of an address."""
    addr = _parse_address(address)
    _run(ctx, lambda engine: engine.get_storage_at(addr, key))


@app.command("storage")
def storage(ctx: typer.Context) -> None:
    """Dump the state of every address in the engine."""
    _run(
        ctx,
        lambda engine: engine.get_storage(),
        lambda snapshot: {addr: _state_to_json(state) for addr, state in sorted(snapshot.items())},
    )


# --- Entrypoints --------------------------------------------------------------


def main(argv: Optional[list[str]] = None) -> int:
    """
    Run the CLI. Returns an integer exit code.
    """
    try:
        rv = app(prog_name="aurora-bridge", standalone_mode=False, args=argv)
        return rv if isinstance(rv, int) else 0
    except typer.Exit as e:
        return int(e.exit_code)
    except Exception as e:
        typer.echo(f"error: {e}", err=True)
        return 1


def run(argv: Optional[list[str]] = None) -> int:
    """Alias for :func:`main`."""
    return main(argv)


if __name__ == "__main__":  # pragma: no cover
    sys.exit(main())
