"""
Token vault protocol constants.

The state layout and the halving floor are fixed by the deployed release
covenant and must not change:
- VaultState commitment: three little-endian uint64 fields, 24 bytes
- MINIMUM_REWARD: the per-block reward never halves below 1
"""

from __future__ import annotations

# Fixed-width integer encoding
U64_BYTES = 8
U64_HEX_LENGTH = 2 * U64_BYTES  # 16 hex characters
MAX_U64 = 2**64 - 1
# Values with the top bit set are rejected on decode
U64_SIGN_BIT = 1 << 63

# Commitment: (release_height, halving_height, reward)
COMMITMENT_FIELDS = 3
COMMITMENT_HEX_LENGTH = COMMITMENT_FIELDS * U64_HEX_LENGTH  # 48 hex characters

# Halving floor enforced by the release covenant
MINIMUM_REWARD = 1

# Network dust limit for token-carrying outputs
DEFAULT_DUST_THRESHOLD = 1000  # satoshis

# Fee rate in satoshis per byte
DEFAULT_FEE_RATE = 1

# Minimum value for a UTXO to qualify as a fee-paying input.
# Mint and lock used 4000 and 10000 respectively in earlier tooling;
# a single threshold applies to every operation now.
DEFAULT_MIN_FUNDING_SATOSHIS = 10_000

# Defaults offered at the mint and lock prompts
DEFAULT_TOKEN_SUPPLY = 96_934_680_000_000_000
DEFAULT_LOCK_AMOUNT = 76_934_680_000_000_000
DEFAULT_START_HEIGHT = 0
DEFAULT_INITIAL_REWARD = 250_000_000_000

# Transaction format
TX_VERSION = 2
DEFAULT_SEQUENCE = 0xFFFFFFFF
