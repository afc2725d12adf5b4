"""
Vault operations: mint, lock, release, send and status.

Every transaction-producing operation follows the same order: observe chain
state, select inputs, compute and encode the next state, size the
transaction in two passes, confirm, and broadcast. Broadcast is the only
step with an on-chain effect and always comes last.
"""

from __future__ import annotations

from dataclasses import dataclass

from loguru import logger
from vaultcore.codec import decode_commitment, encode_commitment
from vaultcore.constants import (
    DEFAULT_INITIAL_REWARD,
    DEFAULT_LOCK_AMOUNT,
    DEFAULT_START_HEIGHT,
    DEFAULT_TOKEN_SUPPLY,
    MINIMUM_REWARD,
    U64_SIGN_BIT,
)
from vaultcore.errors import (
    InvalidParameterError,
    ScheduleViolationError,
    SelectionError,
    UserAbortedError,
)
from vaultcore.models import NftCapability, NftData, TokenData, VaultState
from vaultcore.schedule import ReleasePlan, compute_release
from vaultcore.transaction import Transaction
from vaultwallet.backends.base import ChainBackend
from vaultwallet.wallet.identity import KeyIdentity

from tokenvault.config import OperationConfig
from tokenvault.contract import VaultContract
from tokenvault.prompts import Operator
from tokenvault.selection import (
    select_lock_inputs,
    select_mint_input,
    select_release_inputs,
    select_send_input,
    select_vault_outputs,
)
from tokenvault.tx_builder import FeeSizedBuilder, SizedTransaction, TransactionPlan


@dataclass
class VaultContext:
    """Collaborators for one invocation."""

    config: OperationConfig
    backend: ChainBackend
    identity: KeyIdentity
    operator: Operator
    mint_contract: VaultContract | None = None
    release_contract: VaultContract | None = None

    def require_mint_contract(self) -> VaultContract:
        if self.mint_contract is None:
            raise InvalidParameterError(
                "Mint contract is not configured (set mint_contract_address and mint_redeem_script)"
            )
        return self.mint_contract

    def require_release_contract(self) -> VaultContract:
        if self.release_contract is None:
            raise InvalidParameterError(
                "Release contract is not configured "
                "(set release_contract_address, release_token_address and release_redeem_script)"
            )
        return self.release_contract


@dataclass(frozen=True)
class OperationResult:
    txid: str
    tx_hex: str
    fee: int
    size: int
    transaction: Transaction


@dataclass(frozen=True)
class VaultStatus:
    height: int
    contract_balance: int
    locked_amount: int = 0
    token_category: str | None = None
    state: VaultState | None = None
    release_at_tip: ReleasePlan | None = None


def state_nft(category: str, state: VaultState) -> TokenData:
    """Zero-amount, immutable NFT carrying the encoded vault state."""
    return TokenData(
        category=category,
        amount=0,
        nft=NftData(capability=NftCapability.NONE, commitment=encode_commitment(state)),
    )


def _check_state_value(name: str, value: int) -> None:
    # State values must survive decode_commitment, which rejects the top bit
    if not 0 <= value < U64_SIGN_BIT:
        raise InvalidParameterError(f"{name} must be between 0 and {U64_SIGN_BIT - 1}, got {value}")


def _confirm_data(operator: Operator) -> None:
    if not operator.confirm("Confirm token and contract data?", default=False):
        raise UserAbortedError("User denied input values, aborting")


async def _confirm_and_broadcast(ctx: VaultContext, sized: SizedTransaction) -> OperationResult:
    logger.info(f"Transaction ready: {sized.size} bytes, fee {sized.fee} sats")
    if not ctx.operator.confirm("Send transaction?", default=False):
        logger.info("Skipping broadcasting transaction")
        logger.debug(f"Transaction hex: {sized.tx_hex}")
        raise UserAbortedError("Transaction was not sent", tx_hex=sized.tx_hex)

    logger.debug("Broadcasting transaction...")
    txid = await ctx.backend.broadcast_transaction(sized.tx_hex)
    if txid != sized.txid:
        logger.warning(f"Node reported txid {txid}, expected {sized.txid}")

    return OperationResult(
        txid=txid,
        tx_hex=sized.tx_hex,
        fee=sized.fee,
        size=sized.size,
        transaction=sized.transaction,
    )


async def _log_network(ctx: VaultContext) -> int:
    height = await ctx.backend.get_block_height()
    logger.info(f"Network: {ctx.config.network} height: {height}")
    return height


async def mint_tokens(ctx: VaultContext) -> OperationResult:
    """
    Create a new token category from the mint contract and lock part of it in
    the release vault together with its initial state.
    """
    config = ctx.config
    mint_contract = ctx.require_mint_contract()
    release_contract = ctx.require_release_contract()

    await _log_network(ctx)

    balance = await mint_contract.get_balance()
    logger.debug(f"Mint contract balance: {balance}")
    if balance == 0:
        raise SelectionError(
            f"The mint contract does not hold any funds, send funds to {mint_contract.address}"
        )

    contract_utxos = await mint_contract.get_utxos()
    mint_input = select_mint_input(
        contract_utxos, config.min_funding_satoshis, chooser=ctx.operator.choose
    )

    operator = ctx.operator
    token_amount = operator.prompt_int("How many tokens to issue", DEFAULT_TOKEN_SUPPLY)
    lock_amount = operator.prompt_int("How many tokens to lock", DEFAULT_LOCK_AMOUNT)
    start_height = operator.prompt_int("Start releasing tokens at block", DEFAULT_START_HEIGHT)
    reward = operator.prompt_int("Initial reward", DEFAULT_INITIAL_REWARD)

    for name, value in (
        ("Token amount", token_amount),
        ("Lock amount", lock_amount),
        ("Start height", start_height),
        ("Reward", reward),
    ):
        _check_state_value(name, value)
    if token_amount < 1:
        raise InvalidParameterError("Token amount must be positive")
    if lock_amount < 1 or lock_amount > token_amount:
        raise InvalidParameterError(
            f"Lock amount must be between 1 and the issued amount ({token_amount}), "
            f"got {lock_amount}"
        )
    if reward < MINIMUM_REWARD:
        raise InvalidParameterError(f"Reward must be at least {MINIMUM_REWARD}")

    state = VaultState(release_height=start_height, halving_height=start_height, reward=reward)

    logger.info(
        f"Halving length: {config.halving_length}, token amount: {token_amount}, "
        f"lock amount: {lock_amount}, release height: {start_height}, reward: {reward}"
    )
    _confirm_data(operator)

    category = mint_input.txid
    token_change = token_amount - lock_amount
    plan = (
        TransactionPlan()
        .add_input(
            mint_input,
            mint_contract.mint(ctx.identity, token_amount, lock_amount, start_height, reward),
        )
        .add_output(
            release_contract.locking_bytecode,
            config.dust_threshold,
            TokenData(category=category, amount=lock_amount),
        )
        .add_output(
            release_contract.locking_bytecode, config.dust_threshold, state_nft(category, state)
        )
        .add_change(
            ctx.identity.locking_bytecode,
            TokenData(category=category, amount=token_change) if token_change > 0 else None,
        )
    )

    sized = FeeSizedBuilder.from_config(config).build(plan)
    return await _confirm_and_broadcast(ctx, sized)


async def lock_tokens(ctx: VaultContext) -> OperationResult:
    """Lock existing fungible tokens held by the fund address in the release vault."""
    config = ctx.config
    release_contract = ctx.require_release_contract()

    await _log_network(ctx)

    fund_utxos = await ctx.backend.get_utxos(ctx.identity.address)
    logger.debug(f"Fund address holds {len(fund_utxos)} UTXOs")
    inputs = select_lock_inputs(fund_utxos, config.min_funding_satoshis)

    token = inputs.token_input.token
    assert token is not None

    operator = ctx.operator
    start_height = operator.prompt_int("Start releasing tokens at block", DEFAULT_START_HEIGHT)
    reward = operator.prompt_int("Initial reward", DEFAULT_INITIAL_REWARD)
    _check_state_value("Start height", start_height)
    _check_state_value("Reward", reward)
    if reward < MINIMUM_REWARD:
        raise InvalidParameterError(f"Reward must be at least {MINIMUM_REWARD}")

    state = VaultState(release_height=start_height, halving_height=start_height, reward=reward)

    logger.info(
        f"Halving length: {config.halving_length}, lock amount: {token.amount}, "
        f"release height: {start_height}, reward: {reward}"
    )
    _confirm_data(operator)

    plan = TransactionPlan()
    for utxo in inputs.ordered:
        plan.add_input(utxo, ctx.identity.unlock_p2pkh())
    plan.add_output(
        release_contract.locking_bytecode,
        config.dust_threshold,
        TokenData(category=token.category, amount=token.amount),
    )
    plan.add_output(
        release_contract.locking_bytecode,
        config.dust_threshold,
        state_nft(inputs.genesis_input.txid, state),
    )
    plan.add_change(ctx.identity.locking_bytecode)

    sized = FeeSizedBuilder.from_config(config).build(plan)
    return await _confirm_and_broadcast(ctx, sized)


async def release_tokens(ctx: VaultContext) -> OperationResult:
    """
    Release the tokens accrued since the last release to the fund address.

    A release never crosses a halving; heights beyond it need another run.
    When the vault is drained the state NFT is burned instead of carried on.
    """
    config = ctx.config
    release_contract = ctx.require_release_contract()

    tip = await _log_network(ctx)

    contract_utxos = await release_contract.get_utxos()
    fund_utxos = await ctx.backend.get_utxos(ctx.identity.address)
    inputs = select_release_inputs(contract_utxos, fund_utxos)

    locked = inputs.token_input.token
    state_token = inputs.state_input.token
    assert locked is not None and state_token is not None and state_token.nft is not None

    previous = decode_commitment(state_token.nft.commitment)
    logger.debug(
        f"Previous state: release height {previous.release_height}, "
        f"halving height {previous.halving_height}, reward {previous.reward}"
    )

    target_height = ctx.operator.prompt_int("Block height to release up to", tip)
    if target_height > tip:
        raise ScheduleViolationError(
            f"Unable to release beyond the current block height ({target_height} > {tip})"
        )
    if target_height < previous.release_height:
        raise ScheduleViolationError(
            f"Height {target_height} is before the last release height {previous.release_height}"
        )

    release = compute_release(previous, locked.amount, target_height, config.halving_length)
    next_state = release.next_state
    if release.halved:
        logger.warning(
            f"A halving event was found! Stopping the release at height "
            f"{next_state.release_height}. To continue releasing, run this again."
        )
    logger.debug(
        f"Next state: release height {next_state.release_height}, "
        f"halving height {next_state.halving_height}, reward {next_state.reward}"
    )
    logger.info(
        f"Releasing {release.release_amount} tokens, {release.remaining_amount} remain locked"
        + (" (end of life)" if release.end_of_life else "")
    )

    unlock = release_contract.release(ctx.identity, target_height)
    plan = (
        TransactionPlan()
        .add_input(inputs.token_input, unlock)
        .add_input(inputs.state_input, unlock)
        .add_input(inputs.fund_input, ctx.identity.unlock_p2pkh())
        .add_change(
            ctx.identity.locking_bytecode,
            TokenData(category=locked.category, amount=release.release_amount),
        )
    )
    if not release.end_of_life:
        plan.add_output(
            release_contract.locking_bytecode,
            config.dust_threshold,
            TokenData(category=locked.category, amount=release.remaining_amount),
        )
        plan.add_output(
            release_contract.locking_bytecode,
            config.dust_threshold,
            state_nft(inputs.fund_input.txid, next_state),
        )

    sized = FeeSizedBuilder.from_config(config).build(plan)
    return await _confirm_and_broadcast(ctx, sized)


async def send_utxo(ctx: VaultContext) -> OperationResult:
    """Send one fund UTXO, with any token it carries, to another address."""
    await _log_network(ctx)

    fund_utxos = await ctx.backend.get_utxos(ctx.identity.address)
    utxo = select_send_input(fund_utxos, chooser=ctx.operator.choose)

    destination = ctx.operator.prompt_str("Send input to")
    logger.debug(f"Sending to {destination}")
    locking_bytecode = await ctx.backend.get_locking_bytecode(destination)

    plan = (
        TransactionPlan()
        .add_input(utxo, ctx.identity.unlock_p2pkh())
        .add_change(locking_bytecode, utxo.token)
    )

    sized = FeeSizedBuilder.from_config(ctx.config).build(plan)
    return await _confirm_and_broadcast(ctx, sized)


async def vault_status(ctx: VaultContext) -> VaultStatus:
    """Read-only view of the release vault and what a release at the tip would pay."""
    release_contract = ctx.require_release_contract()

    height = await _log_network(ctx)
    contract_utxos = await release_contract.get_utxos()
    balance = sum(utxo.satoshis for utxo in contract_utxos)

    if not contract_utxos:
        logger.info("Release contract holds no UTXOs")
        return VaultStatus(height=height, contract_balance=0)

    vault = select_vault_outputs(contract_utxos)
    locked = vault.token_input.token
    state_token = vault.state_input.token
    assert locked is not None and state_token is not None and state_token.nft is not None

    state = decode_commitment(state_token.nft.commitment)
    release_at_tip = None
    if height >= state.release_height:
        release_at_tip = compute_release(state, locked.amount, height, ctx.config.halving_length)

    return VaultStatus(
        height=height,
        contract_balance=balance,
        locked_amount=locked.amount,
        token_category=locked.category,
        state=state,
        release_at_tip=release_at_tip,
    )
