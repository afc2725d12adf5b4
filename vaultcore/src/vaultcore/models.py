"""
Core data models: observed UTXOs, token payloads and vault state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class NftCapability(str, Enum):
    NONE = "none"
    MUTABLE = "mutable"
    MINTING = "minting"


@dataclass(frozen=True)
class NftData:
    capability: NftCapability = NftCapability.NONE
    commitment: str = ""  # hex


@dataclass(frozen=True)
class TokenData:
    """CashToken payload attached to an output."""

    category: str  # 32-byte category id, hex in display (txid) order
    amount: int = 0
    nft: NftData | None = None

    @property
    def is_fungible_only(self) -> bool:
        """Fungible amount without an NFT."""
        return self.amount > 0 and self.nft is None


@dataclass(frozen=True)
class UTXO:
    """An unspent output as observed on chain. Never mutated after observation."""

    txid: str
    vout: int
    satoshis: int
    token: TokenData | None = None
    locking_bytecode: str = ""  # hex, empty if the backend did not report it
    height: int | None = None  # None or 0 while unconfirmed

    @property
    def outpoint(self) -> str:
        return f"{self.txid}:{self.vout}"

    def describe(self) -> str:
        """One-line summary for operator prompts and logs."""
        text = f"Id: {self.txid} VOut: {self.vout} Satoshis: {self.satoshis}"
        if self.token is not None:
            text += f" Token: {self.token.category[:16]}... amount={self.token.amount}"
            if self.token.nft is not None:
                text += f" nft={self.token.nft.capability.value}"
        return text


@dataclass(frozen=True)
class VaultState:
    """
    Release schedule state carried in the vault's NFT commitment.

    reward >= 1 always holds for states produced by the scheduler.
    halving_height >= release_height is expected but not validated here.
    """

    release_height: int
    halving_height: int
    reward: int
