"""
Base chain backend interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from vaultcore.models import UTXO


class ChainBackend(ABC):
    """
    Abstract chain backend interface.

    These calls are the only suspension points of a vault operation; every
    other step is synchronous. Nothing is cached between runs: each call
    observes current chain state.
    """

    @abstractmethod
    async def get_block_height(self) -> int:
        """Get current chain tip height"""

    @abstractmethod
    async def get_utxos(self, address: str) -> list[UTXO]:
        """Get UTXOs (with token data) locked to an address"""

    @abstractmethod
    async def get_locking_bytecode(self, address: str) -> bytes:
        """Resolve an address to its locking bytecode"""

    @abstractmethod
    async def broadcast_transaction(self, tx_hex: str) -> str:
        """Broadcast transaction, returns txid"""

    async def get_balance(self, address: str) -> int:
        """Get balance for an address in satoshis"""
        utxos = await self.get_utxos(address)
        return sum(utxo.satoshis for utxo in utxos)

    async def close(self) -> None:
        """Close backend connection"""
        pass
