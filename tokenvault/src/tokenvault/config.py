"""
Configuration for token vault operations.

VaultSettings is loaded once per invocation (environment, .env file, CLI
overrides). Operations only ever see the frozen OperationConfig derived from
it, so nothing they touch can change mid-run.
"""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from vaultcore.constants import (
    DEFAULT_DUST_THRESHOLD,
    DEFAULT_FEE_RATE,
    DEFAULT_MIN_FUNDING_SATOSHIS,
)

NetworkName = Literal["mainnet", "chipnet", "testnet4", "regtest"]
AddressType = Literal["p2sh20", "p2sh32"]


class OperationConfig(BaseModel):
    """Read-only parameters shared by every vault operation."""

    model_config = ConfigDict(frozen=True)

    network: NetworkName = "mainnet"
    halving_length: int = Field(..., ge=1, description="Blocks per reward period")
    dust_threshold: int = Field(default=DEFAULT_DUST_THRESHOLD, ge=1)
    fee_rate: int = Field(default=DEFAULT_FEE_RATE, ge=1, description="Satoshis per byte")
    address_type: AddressType = "p2sh32"
    min_funding_satoshis: int = Field(
        default=DEFAULT_MIN_FUNDING_SATOSHIS,
        ge=0,
        description="Minimum value of a token-free UTXO used to pay fees",
    )

    @property
    def placeholder_fee(self) -> int:
        """Fee used for the sizing pass."""
        return 2 * self.dust_threshold


class VaultSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="TOKENVAULT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    network: NetworkName = "mainnet"
    halving_length: int = Field(default=210_000, ge=1)
    dust_threshold: int = Field(default=DEFAULT_DUST_THRESHOLD, ge=1)
    fee_rate: int = Field(default=DEFAULT_FEE_RATE, ge=1)
    address_type: AddressType = "p2sh32"
    min_funding_satoshis: int = Field(default=DEFAULT_MIN_FUNDING_SATOSHIS, ge=0)

    # Bitcoin Cash Node RPC
    rpc_url: str = "http://127.0.0.1:8332"
    rpc_user: str = "rpcuser"
    rpc_password: SecretStr = SecretStr("rpcpassword")

    # Funding wallet: key and its (externally encoded) token-aware address
    private_key_wif: SecretStr | None = None
    fund_address: str = ""

    # Minting contract
    mint_contract_address: str = ""
    mint_redeem_script: str = ""
    # Function names in selector order
    mint_functions: list[str] = Field(default_factory=lambda: ["mint"])

    # Release contract; token_address is the token-aware form of the same script
    release_contract_address: str = ""
    release_token_address: str = ""
    release_redeem_script: str = ""
    release_functions: list[str] = Field(default_factory=lambda: ["release"])

    log_level: str = "INFO"

    @field_validator("mint_redeem_script", "release_redeem_script")
    @classmethod
    def validate_hex(cls, v: str) -> str:
        v = v.strip().lower()
        if len(v) % 2 != 0:
            raise ValueError("Redeem script must have an even number of hex characters")
        try:
            bytes.fromhex(v)
        except ValueError as e:
            raise ValueError(f"Redeem script is not valid hex: {e}") from e
        return v

    def operation_config(self) -> OperationConfig:
        return OperationConfig(
            network=self.network,
            halving_length=self.halving_length,
            dust_threshold=self.dust_threshold,
            fee_rate=self.fee_rate,
            address_type=self.address_type,
            min_funding_satoshis=self.min_funding_satoshis,
        )


def get_settings(**overrides: object) -> VaultSettings:
    """Load settings, letting explicit (non-None) overrides win over the environment."""
    return VaultSettings(**{k: v for k, v in overrides.items() if v is not None})
