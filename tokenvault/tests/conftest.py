"""
Test configuration for tokenvault tests.
"""

from __future__ import annotations

from collections.abc import Callable
from unittest.mock import AsyncMock

import pytest
from vaultcore.models import UTXO
from vaultcore.script import hash256
from vaultwallet.backends.base import ChainBackend
from vaultwallet.wallet.identity import KeyIdentity

from tokenvault.config import OperationConfig
from tokenvault.contract import VaultContract
from tokenvault.operations import VaultContext

# Private key 1 (compressed), never use outside tests
TEST_WIF = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"

FUND_ADDRESS = "bchreg:zqfund"
MINT_ADDRESS = "bchreg:pwmint"
RELEASE_ADDRESS = "bchreg:pwrelease"
RELEASE_TOKEN_ADDRESS = "bchreg:rwrelease"

MINT_REDEEM_SCRIPT = bytes.fromhex("c0009c")
RELEASE_REDEEM_SCRIPT = bytes.fromhex("c0519c69")


class ScriptedOperator:
    """Operator answering from scripted queues; prompts without a script take the default."""

    def __init__(
        self,
        ints: list[int] | None = None,
        strings: list[str] | None = None,
        confirms: list[bool] | None = None,
        choices: list[int] | None = None,
    ):
        self.ints = list(ints or [])
        self.strings = list(strings or [])
        self.confirms = list(confirms or [])
        self.choices = list(choices or [])
        self.prompts: list[str] = []
        self.offered: list[list[str]] = []

    def prompt_int(self, message: str, default: int) -> int:
        self.prompts.append(message)
        return self.ints.pop(0) if self.ints else default

    def prompt_str(self, message: str) -> str:
        self.prompts.append(message)
        return self.strings.pop(0)

    def confirm(self, message: str, default: bool = False) -> bool:
        self.prompts.append(message)
        return self.confirms.pop(0) if self.confirms else default

    def choose(self, message: str, options: list[str]) -> int:
        self.prompts.append(message)
        self.offered.append(options)
        return self.choices.pop(0)


@pytest.fixture
def config() -> OperationConfig:
    return OperationConfig(
        network="regtest",
        halving_length=100,
        dust_threshold=1000,
        fee_rate=1,
        address_type="p2sh32",
        min_funding_satoshis=10_000,
    )


@pytest.fixture
def identity() -> KeyIdentity:
    return KeyIdentity.from_wif(TEST_WIF, FUND_ADDRESS)


@pytest.fixture
def make_backend() -> Callable[..., AsyncMock]:
    """Build a mocked chain backend serving fixed UTXO sets per address."""

    def factory(utxos: dict[str, list[UTXO]] | None = None, height: int = 150) -> AsyncMock:
        by_address = utxos or {}
        backend = AsyncMock(spec=ChainBackend)
        backend.get_block_height.return_value = height
        backend.get_utxos.side_effect = lambda address: list(by_address.get(address, []))
        backend.get_balance.side_effect = lambda address: sum(
            utxo.satoshis for utxo in by_address.get(address, [])
        )
        backend.broadcast_transaction.side_effect = lambda tx_hex: hash256(
            bytes.fromhex(tx_hex)
        )[::-1].hex()
        return backend

    return factory


@pytest.fixture
def make_context(config, identity) -> Callable[..., VaultContext]:
    def factory(backend: AsyncMock, operator: ScriptedOperator) -> VaultContext:
        return VaultContext(
            config=config,
            backend=backend,
            identity=identity,
            operator=operator,
            mint_contract=VaultContract(
                name="mint",
                redeem_script=MINT_REDEEM_SCRIPT,
                backend=backend,
                address=MINT_ADDRESS,
                functions=["mint"],
            ),
            release_contract=VaultContract(
                name="release",
                redeem_script=RELEASE_REDEEM_SCRIPT,
                backend=backend,
                address=RELEASE_ADDRESS,
                token_address=RELEASE_TOKEN_ADDRESS,
                functions=["release"],
            ),
        )

    return factory


@pytest.fixture
def scripted_operator() -> type[ScriptedOperator]:
    return ScriptedOperator
