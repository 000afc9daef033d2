"""
Configuration for aurora-bridge.

- A static table of known backend networks (endpoint, engine contract, chain id).
- ``EngineSettings``: environment-driven settings via pydantic-settings.
- ``get_settings()``: cached accessor.

Environment variables
---------------------
    NEAR_ENV               (str, default "local")       network id
    NEAR_URL               (str, optional)              backend RPC endpoint override
    AURORA_ENGINE          (str, optional)              engine contract account override
    NEAR_MASTER_ACCOUNT    (str, optional)              signer account id
    HOME                   (str, optional)              where key files are looked up
    AURORA_GAS             (int, default 300 Tgas)      gas budget for mutating calls
    AURORA_RPC_TIMEOUT     (float, default 30.0)        HTTP timeout, seconds
    AURORA_RPC_RETRIES     (int, default 3)             transport retries

Explicit ``Engine.connect(...)`` options win over these; these win over the
network defaults.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Dict, Optional

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigError

DEFAULT_NETWORK_ID = "local"

# 300 Tgas: the largest prepaid gas a single function call may attach.
DEFAULT_GAS = 300_000_000_000_000


class Network(BaseModel):
    id: str
    label: str
    chain_id: int
    near_endpoint: str
    contract_id: str
    aurora_endpoint: Optional[str] = None


NETWORKS: Dict[str, Network] = {
    n.id: n
    for n in (
        Network(
            id="mainnet",
            label="MainNet",
            chain_id=1313161554,
            near_endpoint="https://rpc.mainnet.near.org",
            aurora_endpoint="https://mainnet.aurora.dev",
            contract_id="aurora",
        ),
        Network(
            id="testnet",
            label="TestNet",
            chain_id=1313161555,
            near_endpoint="https://rpc.testnet.near.org",
            aurora_endpoint="https://testnet.aurora.dev",
            contract_id="aurora",
        ),
        Network(
            id="betanet",
            label="BetaNet",
            chain_id=1313161556,
            near_endpoint="https://rpc.betanet.near.org",
            aurora_endpoint="https://betanet.aurora.dev",
            contract_id="aurora",
        ),
        Network(
            id="local",
            label="LocalNet",
            chain_id=1313161556,
            near_endpoint="http://127.0.0.1:3030",
            aurora_endpoint="http://127.0.0.1:8545",
            contract_id="aurora.test.near",
        ),
    )
}


def get_network(network_id: str) -> Network:
    try:
        return NETWORKS[network_id]
    except KeyError:
        raise ConfigError(f"unknown network: {network_id!r} (known: {', '.join(sorted(NETWORKS))})") from None


# --------------------------------- Settings ---------------------------------- #


class EngineSettings(BaseSettings):
    network: str = Field(
        DEFAULT_NETWORK_ID,
        validation_alias=AliasChoices("network", "NEAR_ENV"),
        description="Backend network id",
    )
    endpoint: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("endpoint", "NEAR_URL"),
        description="Backend JSON-RPC endpoint",
    )
    contract: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("contract", "AURORA_ENGINE"),
        description="Engine contract account id",
    )
    signer: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("signer", "NEAR_MASTER_ACCOUNT"),
        description="Signer account id",
    )
    home: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("home", "HOME"),
        description="Home directory holding ~/.near and ~/.near-credentials",
    )
    gas: int = Field(
        DEFAULT_GAS,
        validation_alias=AliasChoices("gas", "AURORA_GAS"),
        gt=0,
        description="Gas attached to every mutating call",
    )
    request_timeout: float = Field(
        30.0,
        validation_alias=AliasChoices("request_timeout", "AURORA_RPC_TIMEOUT"),
        gt=0,
    )
    max_retries: int = Field(
        3,
        validation_alias=AliasChoices("max_retries", "AURORA_RPC_RETRIES"),
        ge=0,
    )

    model_config = SettingsConfigDict(env_prefix="", case_sensitive=False, extra="ignore")

    @field_validator("network", mode="before")
    @classmethod
    def _default_network(cls, v):
        return v or DEFAULT_NETWORK_ID

    def resolve_network(self) -> Network:
        return get_network(self.network)

    def resolve_endpoint(self) -> str:
        return self.endpoint or self.resolve_network().near_endpoint

    def resolve_contract(self) -> str:
        return self.contract or self.resolve_network().contract_id

    def with_overrides(self, **overrides: object) -> "EngineSettings":
        """Copy with the non-None overrides applied (unknown keys ignored)."""
        data = self.model_dump()
        data.update({k: v for k, v in overrides.items() if k in data and v is not None})
        return EngineSettings(**data)


@lru_cache(maxsize=1)
def get_settings() -> EngineSettings:
    return EngineSettings()


__all__ = [
    "DEFAULT_GAS",
    "DEFAULT_NETWORK_ID",
    "Network",
    "NETWORKS",
    "get_network",
    "EngineSettings",
    "get_settings",
]
