"""
Test configuration for vaultwallet tests.
"""

from __future__ import annotations

import pytest
from vaultcore.models import UTXO

from vaultwallet.wallet.identity import KeyIdentity

# Private key 1 (compressed), never use outside tests
TEST_WIF = "KwDiBf89QgGbjEhKnhXJuH7LrciVrZi3qYjgd9M7rFU73sVHnoWn"
TEST_ADDRESS = "bchtest:zqtestfundaddress"


@pytest.fixture
def identity() -> KeyIdentity:
    return KeyIdentity.from_wif(TEST_WIF, TEST_ADDRESS)


@pytest.fixture
def funding_utxo() -> UTXO:
    return UTXO(txid="ab" * 32, vout=0, satoshis=50_000)
