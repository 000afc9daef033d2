"""
aurora_bridge.engine
====================

:class:`Engine` is the Ethereum-flavored face of the engine contract.

Every public coroutine returns a :class:`~aurora_bridge.result.Result`;
nothing raises past this layer except :meth:`Engine.connect`, which is a
configuration factory.

Two call shapes reach the backend:

- **view** (:meth:`Engine.call_function`): a ``call_function`` query. With
  no block selector it reads at ``finality="final"``; with a selector it
  sends ``block_id`` instead, never both.
- **mutating** (:meth:`Engine.call_mutative_function`): advances the key
  rotation, sends one signed function call with the configured gas budget,
  and decodes the settled outcome. Backend failures are classified into
  :class:`~aurora_bridge.errors.RemoteExecutionFailure` (with tx/gas
  details), :class:`~aurora_bridge.errors.RemoteMethodNotFound`, or
  :class:`~aurora_bridge.errors.RemoteGenericFailure`.

``submit`` pre-checks its raw transaction locally (well-formed, gas limit at
least 21000) and never contacts the backend when a check fails.
"""

from __future__ import annotations

import os
from typing import Any, Dict, Iterable, List, Optional, Union

from eth_abi import encode as abi_encode
from eth_abi.exceptions import EncodingError

from .account import AccountID, Address
from .backend import Provider, SigningAccount
from .block import Block, BlockID, count_block_transactions, fetch_block, has_block
from .config import DEFAULT_GAS, EngineSettings, get_settings
from .errors import (
    AuroraBridgeError,
    ConfigError,
    IntrinsicGasTooLow,
    InvalidRawTransaction,
    KeyStoreError,
    RemoteExecutionFailure,
    RemoteGenericFailure,
    RemoteMethodNotFound,
    TransactionErrorDetails,
)
from .gas import transaction_gas_burned
from .logging import get_logger
from .result import Err, Ok, Result
from .rpc.http import NearRpc, NearRpcConfig, RpcError
from .schema import (
    FungibleTokenMetadata,
    FunctionCallArgs,
    GetStorageAtArgs,
    InitCallArgs,
    NewCallArgs,
    SubmitResult,
    TransactionStatus,
    ViewCallArgs,
    WrappedSubmitResult,
)
from .state import EngineStorage, demux_records
from .tx.account import NearAccount
from .tx.outcome import FailureKind, ServerTransactionError, TransactionID, TransactionOutcome, TxFailure
from .tx.raw import INTRINSIC_GAS, RawTransactionError, parse_raw_transaction
from .utils.borsh import BorshError
from .utils.bytes import BytesLike, b64decode, b64encode, ensure_bytes, int_from_be
from .wallet.keystore import KeyStore

log = get_logger(__name__)

PANIC_PREFIX = "Smart contract panicked: "

# Testnet defaults for the eth connector
DEFAULT_PROVER_ACCOUNT = "prover.ropsten.testnet"
DEFAULT_ETH_CUSTODIAN = "9006a6D7d08A388Eeea0112cc1b6b6B15a4289AF"

Input = Union[BytesLike, str, None]
StorageKey = Union[int, str, bytes]


class Engine:
    def __init__(
        self,
        provider: Provider,
        key_store: KeyStore,
        signer: SigningAccount,
        network_id: str,
        contract_id: AccountID,
        *,
        gas: int = DEFAULT_GAS,
    ) -> None:
        self.provider = provider
        self.key_store = key_store
        self.signer = signer
        self.network_id = network_id
        self.contract_id = contract_id
        self.gas = gas

    # ------------------------------------------------------------------ #
    # Construction
    # ------------------------------------------------------------------ #

    @classmethod
    def connect(cls, settings: Optional[EngineSettings] = None, **overrides: Any) -> "Engine":
        """
        Wire an engine from settings (environment by default).

        Raises ConfigError / InvalidAccountID on bad configuration.
        """
        settings = (settings or get_settings()).with_overrides(**overrides)
        network = settings.resolve_network()
        contract_id = AccountID.parse(settings.resolve_contract()).unwrap_or(None)
        if contract_id is None:
            raise ConfigError(f"invalid engine contract id: {settings.resolve_contract()!r}")

        home = settings.home or os.environ.get("HOME")
        key_store = KeyStore.load(network.id, home)

        signer_id = settings.signer or next(iter(key_store.get_accounts()), None) or str(contract_id)
        signer = AccountID.parse(signer_id)
        if signer.is_err():
            raise signer.unwrap_err()

        provider = NearRpc(
            NearRpcConfig(
                url=settings.resolve_endpoint(),
                timeout_s=settings.request_timeout,
                max_retries=settings.max_retries,
            )
        )
        account = NearAccount(provider, signer_id, key_store, network.id)
        log.info(
            "engine_connected",
            network=network.id,
            endpoint=provider.url,
            contract=str(contract_id),
            signer=signer_id,
        )
        return cls(provider, key_store, account, network.id, contract_id, gas=settings.gas)

    async def close(self) -> None:
        close = getattr(self.provider, "close", None)
        if close is not None:
            await close()

    async def __aenter__(self) -> "Engine":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    # ------------------------------------------------------------------ #
    # Keys
    # ------------------------------------------------------------------ #

    async def get_accounts(self) -> Result[List[AccountID], AuroraBridgeError]:
        return Ok(self.key_store.get_signing_accounts())

    async def get_signing_accounts(self) -> Result[List[AccountID], AuroraBridgeError]:
        return Ok(self.key_store.get_signing_accounts())

    async def get_signing_addresses(self) -> Result[List[Address], AuroraBridgeError]:
        return Ok(self.key_store.get_signing_addresses())

    def re_key(self) -> None:
        self.key_store.re_key()

    def load_key_file(self, path: Union[str, os.PathLike]) -> Result[str, KeyStoreError]:
        try:
            return Ok(self.key_store.load_key_file(path))
        except KeyStoreError as e:
            return Err(e)

    def load_key_files(self, paths: Iterable[Union[str, os.PathLike]]) -> Result[List[str], KeyStoreError]:
        loaded: List[str] = []
        for path in paths:
            result = self.load_key_file(path)
            if result.is_err():
                return result
            loaded.append(result.unwrap())
        return Ok(loaded)

    # ------------------------------------------------------------------ #
    # Contract lifecycle
    # ------------------------------------------------------------------ #

    def get_account(self) -> NearAccount:
        """The engine contract's own account (deploys, state scans)."""
        return NearAccount(self.provider, str(self.contract_id), self.key_store, self.network_id)

    async def install(self, code: BytesLike) -> Result[TransactionID, AuroraBridgeError]:
        try:
            outcome = await self.get_account().deploy_contract(bytes(code))
            return Ok(TransactionID.from_base58(outcome["transaction"]["hash"]))
        except ServerTransactionError as e:
            return Err(await self._classify_failure(e.failure))
        except KeyStoreError as e:
            return Err(e)
        except Exception as e:
            log.debug("install_failed", contract=str(self.contract_id), error=str(e))
            return Err(RemoteGenericFailure(str(e)))

    async def upgrade(self, code: BytesLike) -> Result[TransactionID, AuroraBridgeError]:
        return await self.install(code)

    async def initialize(
        self,
        *,
        chain_id: int = 0,
        owner_id: str = "",
        bridge_prover_id: str = "",
        upgrade_delay_blocks: int = 0,
        prover_account: str = DEFAULT_PROVER_ACCOUNT,
        eth_custodian_address: str = DEFAULT_ETH_CUSTODIAN,
        metadata: Optional[FungibleTokenMetadata] = None,
    ) -> Result[TransactionID, AuroraBridgeError]:
        """``new`` followed by ``new_eth_connector``; stops at the first failure."""
        try:
            new_args = NewCallArgs(
                abi_encode(["uint256"], [chain_id]),
                owner_id,
                bridge_prover_id,
                upgrade_delay_blocks,
            ).encode()
            connector_args = InitCallArgs(
                prover_account, eth_custodian_address, metadata or FungibleTokenMetadata()
            ).encode()
        except (BorshError, EncodingError, TypeError) as e:
            return Err(AuroraBridgeError(f"invalid initialization arguments: {e}"))

        first = await self.call_mutative_function("new", new_args)
        if first.is_err():
            return Err(first.unwrap_err())
        second = await self.call_mutative_function("new_eth_connector", connector_args)
        return second.map(lambda outcome: outcome.id)

    # ------------------------------------------------------------------ #
    # Engine metadata
    # ------------------------------------------------------------------ #

    async def get_version(self, *, block: Optional[BlockID] = None) -> Result[str, AuroraBridgeError]:
        return (await self.call_function("get_version", block=block)).map(
            lambda out: out.decode("utf-8", "replace").strip()
        )

    async def get_owner(self, *, block: Optional[BlockID] = None) -> Result[AccountID, AuroraBridgeError]:
        return (await self.call_function("get_owner", block=block)).and_then(
            lambda out: AccountID.parse(out.decode("utf-8", "replace"))
        )

    async def get_bridge_provider(self, *, block: Optional[BlockID] = None) -> Result[AccountID, AuroraBridgeError]:
        return (await self.call_function("get_bridge_provider", block=block)).and_then(
            lambda out: AccountID.parse(out.decode("utf-8", "replace"))
        )

    async def get_chain_id(self, *, block: Optional[BlockID] = None) -> Result[int, AuroraBridgeError]:
        return (await self.call_function("get_chain_id", block=block)).map(int_from_be)

    # ------------------------------------------------------------------ #
    # Blocks
    # ------------------------------------------------------------------ #

    async def get_block_hash(self) -> Result[str, AuroraBridgeError]:
        try:
            state = await self.get_account().state()
            return Ok(state["block_hash"])
        except (RpcError, KeyError, TypeError) as e:
            return Err(RemoteGenericFailure(str(e)))

    async def get_block_height(self) -> Result[int, AuroraBridgeError]:
        try:
            state = await self.get_account().state()
            return Ok(int(state["block_height"]))
        except (RpcError, KeyError, TypeError, ValueError) as e:
            return Err(RemoteGenericFailure(str(e)))

    async def get_block(self, block_id: BlockID) -> Result[Block, AuroraBridgeError]:
        return await fetch_block(self.provider, block_id)

    async def has_block(self, block_id: BlockID) -> Result[bool, AuroraBridgeError]:
        return await has_block(self.provider, block_id)

    async def get_block_transaction_count(self, block_id: BlockID) -> Result[int, AuroraBridgeError]:
        return await count_block_transactions(self.provider, block_id)

    async def get_coinbase(self) -> Result[Address, AuroraBridgeError]:
        return Ok(Address.zero())

    # ------------------------------------------------------------------ #
    # EVM surface
    # ------------------------------------------------------------------ #

    async def deploy_code(self, bytecode: Input) -> Result[Address, AuroraBridgeError]:
        def created_address(outcome: TransactionOutcome) -> Result[Address, AuroraBridgeError]:
            try:
                output = SubmitResult.decode(outcome.output).output()
            except BorshError as e:
                return Err(RemoteGenericFailure(f"undecodable deploy result: {e}"))
            return output.and_then(Address.from_bytes)

        return (await self.call_mutative_function("deploy_code", bytecode)).and_then(created_address)

    async def call(self, contract: Address, input: Input = None) -> Result[bytes, AuroraBridgeError]:
        try:
            args = FunctionCallArgs(contract.to_bytes(), ensure_bytes(input))
        except (ValueError, TypeError) as e:
            return Err(AuroraBridgeError(f"invalid input: {e}"))
        return (await self.call_mutative_function("call", args.encode())).map(lambda outcome: outcome.output)

    async def submit(self, input: Input) -> Result[WrappedSubmitResult, AuroraBridgeError]:
        try:
            raw = ensure_bytes(input)
            transaction = parse_raw_transaction(raw)
        except (RawTransactionError, ValueError, TypeError) as e:
            log.debug("submit_rejected", reason=str(e))
            return Err(InvalidRawTransaction(reason=str(e)))
        if transaction.gas_limit < INTRINSIC_GAS:
            log.debug("submit_rejected", reason="intrinsic_gas", gas_limit=transaction.gas_limit)
            return Err(IntrinsicGasTooLow(gas_limit=transaction.gas_limit))

        def wrap(outcome: TransactionOutcome) -> Result[WrappedSubmitResult, AuroraBridgeError]:
            try:
                result = SubmitResult.decode(outcome.output)
            except BorshError as e:
                return Err(RemoteGenericFailure(f"undecodable submit result: {e}"))
            return Ok(WrappedSubmitResult(result, outcome.gas_burned, outcome.tx))

        return (await self.call_mutative_function("submit", raw)).and_then(wrap)

    async def view(
        self,
        sender: Address,
        address: Address,
        amount: int,
        input: Input = None,
        *,
        block: Optional[BlockID] = None,
    ) -> Result[bytes, AuroraBridgeError]:
        try:
            args = ViewCallArgs(sender.to_bytes(), address.to_bytes(), int(amount), ensure_bytes(input))
            encoded = args.encode()
        except (ValueError, TypeError, OverflowError) as e:
            return Err(AuroraBridgeError(f"invalid view arguments: {e}"))

        def decode_status(output: bytes) -> Result[bytes, AuroraBridgeError]:
            try:
                return TransactionStatus.decode(output).result()
            except BorshError as e:
                return Err(RemoteGenericFailure(f"undecodable view result: {e}"))

        return (await self.call_function("view", encoded, block=block)).and_then(decode_status)

    async def get_code(self, address: Address, *, block: Optional[BlockID] = None) -> Result[bytes, AuroraBridgeError]:
        return await self.call_function("get_code", address.to_bytes(), block=block)

    async def get_balance(self, address: Address, *, block: Optional[BlockID] = None) -> Result[int, AuroraBridgeError]:
        return (await self.call_function("get_balance", address.to_bytes(), block=block)).map(int_from_be)

    async def get_nonce(self, address: Address, *, block: Optional[BlockID] = None) -> Result[int, AuroraBridgeError]:
        return (await self.call_function("get_nonce", address.to_bytes(), block=block)).map(int_from_be)

    async def get_storage_at(
        self,
        address: Address,
        key: StorageKey,
        *,
        block: Optional[BlockID] = None,
    ) -> Result[int, AuroraBridgeError]:
        try:
            slot = _storage_slot(key)
        except (ValueError, OverflowError, TypeError, EncodingError) as e:
            return Err(AuroraBridgeError(f"invalid storage key: {e}"))
        args = GetStorageAtArgs(address.to_bytes(), slot)
        return (await self.call_function("get_storage_at", args.encode(), block=block)).map(int_from_be)

    async def get_aurora_erc20_address(
        self, nep141: AccountID, *, block: Optional[BlockID] = None
    ) -> Result[Address, AuroraBridgeError]:
        result = await self.call_function("get_erc20_from_nep141", nep141.id.encode("utf-8"), block=block)
        return result.and_then(Address.from_bytes)

    async def get_nep141_account(
        self, erc20: Address, *, block: Optional[BlockID] = None
    ) -> Result[AccountID, AuroraBridgeError]:
        result = await self.call_function("get_nep141_from_erc20", erc20.to_bytes(), block=block)
        return result.and_then(lambda out: AccountID.parse(out.decode("utf-8", "replace")))

    async def get_storage(self) -> Result[EngineStorage, AuroraBridgeError]:
        """Snapshot of every address's nonce, balance, code and storage."""
        try:
            records = await self.get_account().view_state(b"", finality="final")
        except (RpcError, KeyError, TypeError, ValueError) as e:
            return Err(RemoteGenericFailure(str(e)))
        return Ok(demux_records(records))

    # ------------------------------------------------------------------ #
    # Call translation
    # ------------------------------------------------------------------ #

    async def call_function(
        self,
        method_name: str,
        args: Input = None,
        *,
        block: Optional[BlockID] = None,
    ) -> Result[bytes, AuroraBridgeError]:
        try:
            args_base64 = b64encode(ensure_bytes(args))
        except (ValueError, TypeError) as e:
            return Err(AuroraBridgeError(f"invalid input: {e}"))

        request: Dict[str, Any] = {
            "request_type": "call_function",
            "account_id": str(self.contract_id),
            "method_name": method_name,
            "args_base64": args_base64,
        }
        if block is None:
            request["finality"] = "final"
        else:
            request["block_id"] = block

        try:
            result = await self.provider.query(request)
        except RpcError as e:
            log.debug("view_call_failed", method=method_name, error=str(e))
            return Err(RemoteGenericFailure(str(e)))

        if result.get("logs"):
            log.debug("contract_logs", method=method_name, logs=result["logs"])
        if result.get("error"):
            return Err(RemoteGenericFailure(str(result["error"])))
        try:
            return Ok(bytes(result["result"]))
        except (KeyError, TypeError, ValueError) as e:
            return Err(RemoteGenericFailure(f"malformed view result: {e}"))

    async def call_mutative_function(
        self,
        method_name: str,
        args: Input = None,
    ) -> Result[TransactionOutcome, AuroraBridgeError]:
        self.key_store.re_key()
        try:
            input = ensure_bytes(args)
        except (ValueError, TypeError) as e:
            return Err(AuroraBridgeError(f"invalid input: {e}"))

        log.debug(
            "mutative_call",
            method=method_name,
            contract=str(self.contract_id),
            signer=self.signer.account_id,
            gas=self.gas,
        )
        try:
            outcome = await self.signer.function_call(str(self.contract_id), method_name, input, self.gas)
        except ServerTransactionError as e:
            return Err(await self._classify_failure(e.failure))
        except KeyStoreError as e:
            return Err(e)
        except Exception as e:
            log.debug("mutative_call_failed", method=method_name, error=str(e))
            return Err(RemoteGenericFailure(str(e)))

        status = outcome.get("status")
        if not (isinstance(status, dict) and isinstance(status.get("SuccessValue"), str)):
            # broadcast_tx_commit waits for the final outcome, so this is not expected
            return Err(RemoteGenericFailure(str(status)))

        tx = (outcome.get("transaction_outcome") or {}).get("id")
        try:
            tx_id = TransactionID.from_base58(outcome["transaction"]["hash"])
            output = b64decode(status["SuccessValue"])
        except (KeyError, TypeError, ValueError) as e:
            return Err(RemoteGenericFailure(f"malformed transaction outcome: {e}"))
        gas_burned = await transaction_gas_burned(self.provider, tx, self.signer.account_id)
        return Ok(TransactionOutcome(id=tx_id, output=output, gas_burned=gas_burned, tx=tx))

    async def _classify_failure(self, failure: TxFailure) -> AuroraBridgeError:
        if failure.kind is FailureKind.EXECUTION:
            details = TransactionErrorDetails(
                tx=failure.tx,
                gas_burned=await transaction_gas_burned(self.provider, failure.tx, self.signer.account_id),
            )
            error: AuroraBridgeError = RemoteExecutionFailure(failure.message.removeprefix(PANIC_PREFIX), details)
        elif failure.kind is FailureKind.METHOD_NOT_FOUND:
            error = RemoteMethodNotFound(failure.message)
        else:
            error = RemoteGenericFailure(failure.message)
        log.info("mutative_call_failed", kind=failure.kind.value, tx=failure.tx, error=error.message)
        return error

    def __repr__(self) -> str:
        return f"Engine(network={self.network_id!r}, contract={str(self.contract_id)!r})"


def _storage_slot(key: StorageKey) -> bytes:
    if isinstance(key, (bytes, bytearray)):
        key = int_from_be(key)
    elif isinstance(key, str):
        key = int(key, 0)
    return abi_encode(["uint256"], [key])


__all__ = ["Engine", "PANIC_PREFIX"]
