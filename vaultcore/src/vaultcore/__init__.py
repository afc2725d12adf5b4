"""
vaultcore - Core library for token vault components

Provides the state codec, the halving schedule and transaction serialization.
"""

__version__ = "0.3.0"

from vaultcore.codec import (
    decode_commitment,
    decode_u64_le,
    encode_commitment,
    encode_u64_le,
)
from vaultcore.constants import (
    DEFAULT_DUST_THRESHOLD,
    DEFAULT_FEE_RATE,
    DEFAULT_MIN_FUNDING_SATOSHIS,
    MINIMUM_REWARD,
)
from vaultcore.errors import (
    AmbiguousSelectionError,
    BackendError,
    EncodingError,
    InsufficientValueError,
    InvalidParameterError,
    ScheduleViolationError,
    SelectionError,
    UserAbortedError,
    VaultError,
)
from vaultcore.models import UTXO, NftCapability, NftData, TokenData, VaultState
from vaultcore.schedule import ReleasePlan, compute_release
from vaultcore.transaction import Transaction, TxInput, TxOutput

__all__ = [
    "AmbiguousSelectionError",
    "BackendError",
    "DEFAULT_DUST_THRESHOLD",
    "DEFAULT_FEE_RATE",
    "DEFAULT_MIN_FUNDING_SATOSHIS",
    "EncodingError",
    "InsufficientValueError",
    "InvalidParameterError",
    "MINIMUM_REWARD",
    "NftCapability",
    "NftData",
    "ReleasePlan",
    "ScheduleViolationError",
    "SelectionError",
    "TokenData",
    "Transaction",
    "TxInput",
    "TxOutput",
    "UTXO",
    "UserAbortedError",
    "VaultError",
    "VaultState",
    "compute_release",
    "decode_commitment",
    "decode_u64_le",
    "encode_commitment",
    "encode_u64_le",
]
