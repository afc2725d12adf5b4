"""
Input unlockers.

An unlocker turns a transaction with final outputs into the unlocking
bytecode for one of its inputs. Signature-based and contract-function-based
inputs share this interface so the builder can treat them alike.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from vaultcore.script import push_data
from vaultcore.transaction import Transaction

if TYPE_CHECKING:
    from vaultwallet.wallet.identity import KeyIdentity


class Unlocker(ABC):
    """Produces unlocking bytecode for one transaction input."""

    @property
    @abstractmethod
    def script_code(self) -> bytes:
        """Bytecode committed to by signatures over this input."""

    @abstractmethod
    def generate_unlocking_bytecode(
        self, tx: Transaction, input_index: int, estimate: bool = False
    ) -> bytes:
        """
        Unlocking bytecode for tx.inputs[input_index].

        With `estimate` set, signatures are replaced by stand-ins of the largest
        possible size, so the result is never shorter than the signed bytecode.
        """


class P2PKHUnlocker(Unlocker):
    """<signature> <public key>"""

    def __init__(self, identity: KeyIdentity):
        self.identity = identity

    @property
    def script_code(self) -> bytes:
        return self.identity.locking_bytecode

    def generate_unlocking_bytecode(
        self, tx: Transaction, input_index: int, estimate: bool = False
    ) -> bytes:
        signature = self.identity.sign(tx, input_index, self.script_code, estimate=estimate)
        return push_data(signature) + push_data(self.identity.public_key)
