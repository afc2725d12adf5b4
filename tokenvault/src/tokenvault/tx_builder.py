"""
Two-pass, fee-sized transaction construction.

A TransactionPlan describes inputs (each bound to an unlocker) and outputs,
one of which is the change output whose value is derived from the fee:

    change = sum(input sats) - sum(other output sats) - fee

FeeSizedBuilder materializes the plan once with a placeholder fee and
worst-case sized signatures to measure an upper bound on the size, then again
from scratch, signed, with fee = fee_rate * size + 1. Only the second
transaction is ever returned.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from loguru import logger
from vaultcore.errors import InsufficientValueError
from vaultcore.models import UTXO, TokenData
from vaultcore.transaction import Transaction, TxInput, TxOutput
from vaultwallet.wallet.unlocking import Unlocker

if TYPE_CHECKING:
    from tokenvault.config import OperationConfig


@dataclass(frozen=True)
class ChangeOutput:
    """Output whose value is whatever the fee leaves over."""

    locking_bytecode: bytes
    token: TokenData | None = None


@dataclass(frozen=True)
class PlannedInput:
    utxo: UTXO
    unlocker: Unlocker


@dataclass
class TransactionPlan:
    inputs: list[PlannedInput] = field(default_factory=list)
    outputs: list[TxOutput | ChangeOutput] = field(default_factory=list)

    def add_input(self, utxo: UTXO, unlocker: Unlocker) -> TransactionPlan:
        self.inputs.append(PlannedInput(utxo=utxo, unlocker=unlocker))
        return self

    def add_output(
        self, locking_bytecode: bytes, satoshis: int, token: TokenData | None = None
    ) -> TransactionPlan:
        if satoshis < 0:
            raise ValueError(f"Output value must be non-negative, got {satoshis}")
        self.outputs.append(
            TxOutput(locking_bytecode=locking_bytecode, satoshis=satoshis, token=token)
        )
        return self

    def add_change(
        self, locking_bytecode: bytes, token: TokenData | None = None
    ) -> TransactionPlan:
        if any(isinstance(out, ChangeOutput) for out in self.outputs):
            raise ValueError("Transaction plan already has a change output")
        self.outputs.append(ChangeOutput(locking_bytecode=locking_bytecode, token=token))
        return self

    @property
    def input_value(self) -> int:
        return sum(planned.utxo.satoshis for planned in self.inputs)

    @property
    def fixed_output_value(self) -> int:
        return sum(out.satoshis for out in self.outputs if isinstance(out, TxOutput))

    def change_value(self, fee: int) -> int:
        return self.input_value - self.fixed_output_value - fee

    def materialize(self, fee: int, dust_threshold: int, estimate: bool = False) -> Transaction:
        """
        Build and sign a transaction paying exactly `fee`.

        With `estimate` set, signatures are worst-case sized stand-ins and the
        result is only good for sizing.

        Raises:
            InsufficientValueError: Change would be below dust_threshold
        """
        if not self.inputs:
            raise ValueError("Transaction plan has no inputs")
        if not any(isinstance(out, ChangeOutput) for out in self.outputs):
            raise ValueError("Transaction plan has no change output")

        change = self.change_value(fee)
        if change < dust_threshold:
            raise InsufficientValueError(
                f"The selected UTXOs do not contain enough value: change would be {change} sats "
                f"with a fee of {fee} sats (dust threshold {dust_threshold}). "
                "Provide a UTXO with a higher value.",
                change=change,
                dust_threshold=dust_threshold,
            )

        outputs = [
            TxOutput(locking_bytecode=out.locking_bytecode, satoshis=change, token=out.token)
            if isinstance(out, ChangeOutput)
            else out
            for out in self.outputs
        ]
        tx = Transaction(
            inputs=[TxInput(utxo=planned.utxo) for planned in self.inputs],
            outputs=outputs,
        )

        # Signatures commit to the final outputs, so unlock last
        for index, planned in enumerate(self.inputs):
            tx.inputs[index].unlocking_bytecode = planned.unlocker.generate_unlocking_bytecode(
                tx, index, estimate=estimate
            )
        return tx


def calculate_transaction_fee(size: int, fee_rate: int) -> int:
    """Fee for a transaction of `size` bytes; the extra satoshi covers rounding."""
    return fee_rate * size + 1


@dataclass(frozen=True)
class SizedTransaction:
    """The final, broadcastable result of a two-pass build."""

    transaction: Transaction
    fee: int
    estimate_size: int

    @property
    def tx_hex(self) -> str:
        return self.transaction.to_hex()

    @property
    def size(self) -> int:
        return self.transaction.size

    @property
    def txid(self) -> str:
        return self.transaction.txid


class FeeSizedBuilder:
    def __init__(self, fee_rate: int, dust_threshold: int, placeholder_fee: int | None = None):
        if fee_rate < 1:
            raise ValueError(f"fee_rate must be positive, got {fee_rate}")
        self.fee_rate = fee_rate
        self.dust_threshold = dust_threshold
        self.placeholder_fee = (
            placeholder_fee if placeholder_fee is not None else 2 * dust_threshold
        )

    @classmethod
    def from_config(cls, config: OperationConfig) -> FeeSizedBuilder:
        return cls(
            fee_rate=config.fee_rate,
            dust_threshold=config.dust_threshold,
            placeholder_fee=config.placeholder_fee,
        )

    def build(self, plan: TransactionPlan) -> SizedTransaction:
        estimate = plan.materialize(self.placeholder_fee, self.dust_threshold, estimate=True)
        estimate_size = estimate.size
        fee = calculate_transaction_fee(estimate_size, self.fee_rate)
        logger.debug(f"Sizing pass: {estimate_size} bytes, fee {fee} sats")

        final = plan.materialize(fee, self.dust_threshold)
        if len(final.inputs) != len(estimate.inputs) or len(final.outputs) != len(
            estimate.outputs
        ):
            raise RuntimeError("Final build changed the transaction shape")
        if final.input_value - final.output_value != fee:
            raise RuntimeError("Final build does not pay the computed fee")

        if final.size > estimate_size:
            raise RuntimeError(
                f"Final build is {final.size} bytes, larger than the {estimate_size} byte estimate"
            )
        if final.size < estimate_size:
            logger.debug(f"Final size {final.size} bytes, estimate {estimate_size} bytes")

        return SizedTransaction(transaction=final, fee=fee, estimate_size=estimate_size)
