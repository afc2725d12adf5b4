"""
Token vault CLI - mint, lock, release and send vault tokens.
"""

from __future__ import annotations

import asyncio
import sys
from collections.abc import Awaitable, Callable
from typing import TypeVar

import typer
from loguru import logger
from pydantic import ValidationError
from vaultcore.codec import decode_commitment
from vaultcore.errors import EncodingError, InvalidParameterError, UserAbortedError, VaultError
from vaultcore.schedule import compute_release
from vaultwallet.backends.bchn import BchnBackend
from vaultwallet.wallet.identity import KeyIdentity

from tokenvault.config import VaultSettings, get_settings
from tokenvault.contract import VaultContract
from tokenvault.operations import (
    OperationResult,
    VaultContext,
    VaultStatus,
    lock_tokens,
    mint_tokens,
    release_tokens,
    send_utxo,
    vault_status,
)
from tokenvault.prompts import TyperOperator

app = typer.Typer(
    name="tokenvault",
    help="Token release vault operations",
    add_completion=False,
)

T = TypeVar("T")


def setup_logging(level: str = "INFO") -> None:
    """Configure loguru logging."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=level.upper(),
        format="<green>{time:HH:mm:ss}</green> | <level>{level: <8}</level> | {message}",
    )


def build_context(settings: VaultSettings, backend: BchnBackend) -> VaultContext:
    """Wire the configured wallet and contracts to a backend."""
    if settings.private_key_wif is None or not settings.fund_address:
        raise InvalidParameterError(
            "Wallet required: set TOKENVAULT_PRIVATE_KEY_WIF and TOKENVAULT_FUND_ADDRESS"
        )

    try:
        identity = KeyIdentity.from_wif(
            settings.private_key_wif.get_secret_value(), settings.fund_address
        )
    except ValueError as e:
        raise InvalidParameterError(f"Invalid private key: {e}") from e
    logger.debug(f"Fund address: {identity.address}")

    mint_contract = None
    if settings.mint_contract_address and settings.mint_redeem_script:
        mint_contract = VaultContract(
            name="mint",
            redeem_script=bytes.fromhex(settings.mint_redeem_script),
            backend=backend,
            address=settings.mint_contract_address,
            functions=settings.mint_functions,
            address_type=settings.address_type,
        )

    release_contract = None
    if settings.release_contract_address and settings.release_redeem_script:
        release_contract = VaultContract(
            name="release",
            redeem_script=bytes.fromhex(settings.release_redeem_script),
            backend=backend,
            address=settings.release_contract_address,
            token_address=settings.release_token_address or None,
            functions=settings.release_functions,
            address_type=settings.address_type,
        )

    return VaultContext(
        config=settings.operation_config(),
        backend=backend,
        identity=identity,
        operator=TyperOperator(),
        mint_contract=mint_contract,
        release_contract=release_contract,
    )


Operation = Callable[[VaultContext], Awaitable[T]]


async def _run(settings: VaultSettings, operation: Operation[T]) -> T:
    backend = BchnBackend(
        rpc_url=settings.rpc_url,
        rpc_user=settings.rpc_user,
        rpc_password=settings.rpc_password.get_secret_value(),
    )
    try:
        ctx = build_context(settings, backend)
        return await operation(ctx)
    finally:
        await backend.close()


def run_operation(settings: VaultSettings, operation: Operation[T]) -> T:
    """Run an operation to completion, turning vault errors into an exit code."""
    try:
        return asyncio.run(_run(settings, operation))
    except UserAbortedError as e:
        logger.info(f"Aborted: {e}")
        if e.tx_hex:
            typer.echo(e.tx_hex)
        raise typer.Exit(1)
    except VaultError as e:
        logger.error(f"{type(e).__name__}: {e}")
        raise typer.Exit(1)


def _settings_or_exit(**overrides: str | None) -> VaultSettings:
    try:
        return get_settings(**overrides)
    except ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        raise typer.Exit(1)


def _load_settings(
    network: str | None,
    rpc_url: str | None,
    rpc_user: str | None,
    rpc_password: str | None,
    log_level: str | None,
) -> VaultSettings:
    setup_logging()
    settings = _settings_or_exit(
        network=network,
        rpc_url=rpc_url,
        rpc_user=rpc_user,
        rpc_password=rpc_password,
        log_level=log_level,
    )
    setup_logging(settings.log_level)
    return settings


def _print_result(result: OperationResult) -> None:
    print(f"\nBroadcast transaction: {result.txid}")
    print(f"  Size: {result.size} bytes")
    print(f"  Fee:  {result.fee} sats")


NetworkOption = typer.Option(
    None, "--network", "-n", help="mainnet | chipnet | testnet4 | regtest"
)
RpcUrlOption = typer.Option(None, "--rpc-url", help="Bitcoin Cash Node RPC URL")
RpcUserOption = typer.Option(None, "--rpc-user")
RpcPasswordOption = typer.Option(None, "--rpc-password")
LogLevelOption = typer.Option(None, "--log-level", "-l")


@app.command()
def mint(
    network: str | None = NetworkOption,
    rpc_url: str | None = RpcUrlOption,
    rpc_user: str | None = RpcUserOption,
    rpc_password: str | None = RpcPasswordOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """Mint a new token and lock part of the supply in the release vault."""
    settings = _load_settings(network, rpc_url, rpc_user, rpc_password, log_level)
    _print_result(run_operation(settings, mint_tokens))


@app.command()
def lock(
    network: str | None = NetworkOption,
    rpc_url: str | None = RpcUrlOption,
    rpc_user: str | None = RpcUserOption,
    rpc_password: str | None = RpcPasswordOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """Lock existing tokens from the fund address in the release vault."""
    settings = _load_settings(network, rpc_url, rpc_user, rpc_password, log_level)
    _print_result(run_operation(settings, lock_tokens))


@app.command()
def release(
    network: str | None = NetworkOption,
    rpc_url: str | None = RpcUrlOption,
    rpc_user: str | None = RpcUserOption,
    rpc_password: str | None = RpcPasswordOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """Release the tokens accrued since the last release."""
    settings = _load_settings(network, rpc_url, rpc_user, rpc_password, log_level)
    _print_result(run_operation(settings, release_tokens))


@app.command()
def send(
    network: str | None = NetworkOption,
    rpc_url: str | None = RpcUrlOption,
    rpc_user: str | None = RpcUserOption,
    rpc_password: str | None = RpcPasswordOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """Send a fund UTXO (and any token it carries) to another address."""
    settings = _load_settings(network, rpc_url, rpc_user, rpc_password, log_level)
    _print_result(run_operation(settings, send_utxo))


@app.command()
def status(
    network: str | None = NetworkOption,
    rpc_url: str | None = RpcUrlOption,
    rpc_user: str | None = RpcUserOption,
    rpc_password: str | None = RpcPasswordOption,
    log_level: str | None = LogLevelOption,
) -> None:
    """Show the release vault state and what a release at the tip would pay."""
    settings = _load_settings(network, rpc_url, rpc_user, rpc_password, log_level)
    vault: VaultStatus = run_operation(settings, vault_status)

    print(f"\nChain height:    {vault.height:,}")
    print(f"Contract value:  {vault.contract_balance:,} sats")
    if vault.state is None:
        print("Vault is empty.")
        return

    print(f"Token category:  {vault.token_category}")
    print(f"Locked tokens:   {vault.locked_amount:,}")
    print(f"Release height:  {vault.state.release_height:,}")
    print(f"Halving height:  {vault.state.halving_height:,}")
    print(f"Reward:          {vault.state.reward:,} per block")
    if vault.release_at_tip is None:
        print("Nothing releasable yet.")
        return

    plan = vault.release_at_tip
    print(f"Releasable now:  {plan.release_amount:,}")
    if plan.halved:
        print(f"  (stops at halving height {plan.next_state.release_height:,})")
    if plan.end_of_life:
        print("  (drains the vault)")


@app.command("decode-state")
def decode_state(
    commitment: str = typer.Argument(..., help="48 hex character NFT commitment"),
    height: int | None = typer.Option(
        None, "--height", help="Preview a release up to this height"
    ),
    locked: int | None = typer.Option(None, "--locked", help="Locked token amount"),
    halving_length: int | None = typer.Option(None, "--halving-length"),
    log_level: str = typer.Option("WARNING", "--log-level", "-l"),
) -> None:
    """Decode a vault state commitment, optionally previewing a release."""
    setup_logging(log_level)

    try:
        state = decode_commitment(commitment.strip().removeprefix("0x"))
    except EncodingError as e:
        logger.error(f"Invalid commitment: {e}")
        raise typer.Exit(1)

    print(f"Release height: {state.release_height}")
    print(f"Halving height: {state.halving_height}")
    print(f"Reward:         {state.reward}")

    if height is None:
        return
    if locked is None:
        logger.error("--locked is required with --height")
        raise typer.Exit(1)
    if height < state.release_height:
        logger.error(f"Height {height} is before the release height {state.release_height}")
        raise typer.Exit(1)

    if halving_length is None:
        halving_length = _settings_or_exit().halving_length
    plan = compute_release(state, locked, height, halving_length)

    print(f"\nRelease amount: {plan.release_amount}")
    print(
        f"Next state:     {plan.next_state.release_height} "
        f"{plan.next_state.halving_height} {plan.next_state.reward}"
    )
    print(f"Halved:         {plan.halved}")
    print(f"End of life:    {plan.end_of_life}")


def main() -> None:
    """CLI entry point."""
    app()


if __name__ == "__main__":
    main()
