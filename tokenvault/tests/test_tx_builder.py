"""
Tests for two-pass, fee-sized transaction construction.
"""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from vaultcore.codec import encode_commitment
from vaultcore.errors import InsufficientValueError
from vaultcore.models import UTXO, NftCapability, NftData, TokenData, VaultState
from vaultcore.transaction import Transaction
from vaultwallet.backends.base import ChainBackend
from vaultwallet.wallet.signing import MAX_SIGNATURE_SIZE
from vaultwallet.wallet.unlocking import Unlocker

from tokenvault.contract import VaultContract
from tokenvault.tx_builder import (
    ChangeOutput,
    FeeSizedBuilder,
    TransactionPlan,
    calculate_transaction_fee,
)

FUND_SCRIPT = bytes.fromhex("76a914" + "11" * 20 + "88ac")
VAULT_SCRIPT = bytes.fromhex("aa20" + "22" * 32 + "87")
CATEGORY = "ca" * 32


class FixedUnlocker(Unlocker):
    """Constant-size unlocking bytecode that records the change it was built against."""

    def __init__(self, size: int = 100):
        self.size = size
        self.seen_change: list[int] = []

    @property
    def script_code(self) -> bytes:
        return b""

    def generate_unlocking_bytecode(
        self, tx: Transaction, input_index: int, estimate: bool = False
    ) -> bytes:
        self.seen_change.append(tx.outputs[-1].satoshis)
        return b"\x51" * self.size


def make_plan(satoshis: int = 50_000, unlocker: Unlocker | None = None) -> TransactionPlan:
    return (
        TransactionPlan()
        .add_input(UTXO(txid="aa" * 32, vout=0, satoshis=satoshis), unlocker or FixedUnlocker())
        .add_output(VAULT_SCRIPT, 1000, TokenData(category=CATEGORY, amount=5000))
        .add_change(FUND_SCRIPT)
    )


class TestCalculateTransactionFee:
    def test_one_sat_per_byte(self):
        assert calculate_transaction_fee(250, 1) == 251

    def test_fee_rate_scales(self):
        assert calculate_transaction_fee(250, 3) == 751


class TestTransactionPlan:
    def test_change_value(self):
        plan = make_plan(satoshis=50_000)
        assert plan.input_value == 50_000
        assert plan.fixed_output_value == 1000
        assert plan.change_value(300) == 48_700

    def test_materialize_fills_change(self):
        tx = make_plan().materialize(fee=500, dust_threshold=1000)
        assert [out.satoshis for out in tx.outputs] == [1000, 48_500]
        assert tx.outputs[1].locking_bytecode == FUND_SCRIPT
        assert tx.input_value - tx.output_value == 500

    def test_change_keeps_token(self):
        token = TokenData(category=CATEGORY, amount=42)
        plan = (
            TransactionPlan()
            .add_input(UTXO(txid="aa" * 32, vout=0, satoshis=5000), FixedUnlocker())
            .add_change(FUND_SCRIPT, token)
        )
        tx = plan.materialize(fee=300, dust_threshold=1000)
        assert tx.outputs[0].token == token
        assert tx.outputs[0].satoshis == 4700

    def test_unlockers_see_final_outputs(self):
        unlocker = FixedUnlocker()
        make_plan(unlocker=unlocker).materialize(fee=500, dust_threshold=1000)
        assert unlocker.seen_change == [48_500]

    def test_dust_guard(self):
        plan = make_plan(satoshis=2400)
        with pytest.raises(InsufficientValueError) as exc_info:
            plan.materialize(fee=500, dust_threshold=1000)
        assert exc_info.value.change == 900
        assert exc_info.value.dust_threshold == 1000

    def test_dust_guard_runs_before_unlocking(self):
        unlocker = FixedUnlocker()
        with pytest.raises(InsufficientValueError):
            make_plan(satoshis=1500, unlocker=unlocker).materialize(fee=500, dust_threshold=1000)
        assert unlocker.seen_change == []

    def test_change_exactly_dust_is_allowed(self):
        tx = make_plan(satoshis=2500).materialize(fee=500, dust_threshold=1000)
        assert tx.outputs[-1].satoshis == 1000

    def test_second_change_output_rejected(self):
        with pytest.raises(ValueError, match="already has a change output"):
            make_plan().add_change(FUND_SCRIPT)

    def test_missing_change_rejected(self):
        plan = TransactionPlan().add_input(
            UTXO(txid="aa" * 32, vout=0, satoshis=5000), FixedUnlocker()
        )
        plan.add_output(FUND_SCRIPT, 1000)
        with pytest.raises(ValueError, match="no change output"):
            plan.materialize(fee=300, dust_threshold=1000)

    def test_negative_output_rejected(self):
        with pytest.raises(ValueError, match="non-negative"):
            TransactionPlan().add_output(FUND_SCRIPT, -1)

    def test_change_output_is_placeholder(self):
        plan = make_plan()
        assert isinstance(plan.outputs[-1], ChangeOutput)


class TestFeeSizedBuilder:
    def test_fee_from_first_build_size(self):
        """Final fee is fee_rate * len(first build) + 1."""
        plan = make_plan()
        builder = FeeSizedBuilder(fee_rate=1, dust_threshold=1000)
        first = plan.materialize(builder.placeholder_fee, 1000, estimate=True)

        sized = builder.build(plan)

        assert sized.estimate_size == first.size
        assert sized.fee == first.size + 1
        assert sized.transaction.input_value - sized.transaction.output_value == sized.fee

    def test_builds_differ_only_in_change(self):
        plan = make_plan()
        builder = FeeSizedBuilder(fee_rate=2, dust_threshold=1000)
        first = plan.materialize(builder.placeholder_fee, 1000, estimate=True)

        final = builder.build(plan).transaction

        assert len(final.inputs) == len(first.inputs)
        assert len(final.outputs) == len(first.outputs)
        assert final.outputs[0] == first.outputs[0]
        assert final.outputs[1].satoshis != first.outputs[1].satoshis
        assert final.size == first.size

    def test_fee_rate_applied(self):
        sized = FeeSizedBuilder(fee_rate=3, dust_threshold=1000).build(make_plan())
        assert sized.fee == 3 * sized.estimate_size + 1

    def test_placeholder_defaults_to_twice_dust(self):
        assert FeeSizedBuilder(fee_rate=1, dust_threshold=546).placeholder_fee == 1092

    def test_from_config(self, config):
        builder = FeeSizedBuilder.from_config(config)
        assert builder.fee_rate == config.fee_rate
        assert builder.dust_threshold == config.dust_threshold
        assert builder.placeholder_fee == 2 * config.dust_threshold

    def test_insufficient_value_aborts(self):
        with pytest.raises(InsufficientValueError):
            FeeSizedBuilder(fee_rate=1, dust_threshold=1000).build(make_plan(satoshis=3000))

    def test_invalid_fee_rate(self):
        with pytest.raises(ValueError, match="fee_rate"):
            FeeSizedBuilder(fee_rate=0, dust_threshold=1000)

    def test_sized_transaction_properties(self):
        sized = FeeSizedBuilder(fee_rate=1, dust_threshold=1000).build(make_plan())
        assert sized.tx_hex == sized.transaction.to_hex()
        assert sized.size == len(bytes.fromhex(sized.tx_hex))
        assert sized.txid == sized.transaction.txid


def release_plan(contract: VaultContract, identity, fund_satoshis: int, height: int):
    """Two vault inputs unlocked by the release function plus a P2PKH fee input."""
    state = VaultState(release_height=height - 10, halving_height=0, reward=250)
    token_utxo = UTXO(
        txid="cc" * 32, vout=0, satoshis=1000, token=TokenData(category=CATEGORY, amount=10**12)
    )
    state_utxo = UTXO(
        txid="cc" * 32,
        vout=1,
        satoshis=1000,
        token=TokenData(
            category="5e" * 32,
            nft=NftData(capability=NftCapability.NONE, commitment=encode_commitment(state)),
        ),
    )
    fund_utxo = UTXO(txid="dd" * 32, vout=0, satoshis=fund_satoshis)
    next_state = VaultState(release_height=height, halving_height=0, reward=250)
    return (
        TransactionPlan()
        .add_input(token_utxo, contract.release(identity, height))
        .add_input(state_utxo, contract.release(identity, height))
        .add_input(fund_utxo, identity.unlock_p2pkh())
        .add_output(contract.locking_bytecode, 1000, TokenData(CATEGORY, 10**12 - 2500))
        .add_output(
            contract.locking_bytecode,
            1000,
            TokenData(
                category="dd" * 32,
                nft=NftData(
                    capability=NftCapability.NONE, commitment=encode_commitment(next_state)
                ),
            ),
        )
        .add_change(identity.locking_bytecode, TokenData(CATEGORY, 2500))
    )


class TestSignedFeeSizing:
    @pytest.fixture
    def contract(self) -> VaultContract:
        return VaultContract(
            name="release",
            redeem_script=bytes.fromhex("c0519c69"),
            backend=AsyncMock(spec=ChainBackend),
            address="bchreg:pwrelease",
            functions=["release"],
        )

    def test_estimate_uses_largest_signatures(self, contract, identity):
        plan = release_plan(contract, identity, 50_000, 200)
        estimate = plan.materialize(2000, 1000, estimate=True)
        signed = plan.materialize(2000, 1000)

        stand_in = bytes([MAX_SIGNATURE_SIZE]) + bytes(MAX_SIGNATURE_SIZE - 1)
        for inp in estimate.inputs:
            assert stand_in in inp.unlocking_bytecode
        assert estimate.size >= signed.size

    @pytest.mark.parametrize("fee_rate", [1, 2, 5])
    def test_fee_covers_signed_size(self, contract, identity, fee_rate):
        """Across many release-shaped transactions the fee never drops below the rate."""
        builder = FeeSizedBuilder(fee_rate=fee_rate, dust_threshold=1000)
        for variant in range(200):
            plan = release_plan(contract, identity, 20_000 + 37 * variant, 200 + variant)

            sized = builder.build(plan)

            assert sized.size <= sized.estimate_size
            assert sized.fee == fee_rate * sized.estimate_size + 1
            assert sized.fee >= fee_rate * sized.size + 1

    def test_final_larger_than_estimate_rejected(self):
        class GrowingUnlocker(FixedUnlocker):
            def generate_unlocking_bytecode(
                self, tx: Transaction, input_index: int, estimate: bool = False
            ) -> bytes:
                return b"\x51" * (self.size if estimate else self.size + 1)

        plan = make_plan(unlocker=GrowingUnlocker())
        with pytest.raises(RuntimeError, match="larger than"):
            FeeSizedBuilder(fee_rate=1, dust_threshold=1000).build(plan)
