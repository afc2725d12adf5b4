"""
Fixed-width state codec.

The vault commitment is three consecutive 8-byte little-endian unsigned
integers, hex encoded to 48 characters:

    [0:16)   release_height
    [16:32)  halving_height
    [32:48)  reward

The release covenant reads the same bytes, so the layout is immutable.
"""

from __future__ import annotations

from vaultcore.constants import (
    COMMITMENT_HEX_LENGTH,
    MAX_U64,
    U64_BYTES,
    U64_HEX_LENGTH,
    U64_SIGN_BIT,
)
from vaultcore.errors import EncodingError
from vaultcore.models import VaultState


def encode_u64_le(value: int) -> str:
    """
    Encode an unsigned 64-bit integer as 16 little-endian hex characters.

    Args:
        value: Integer in [0, 2**64 - 1]

    Returns:
        Lowercase hex string without prefix

    Raises:
        EncodingError: If value is not an int, is negative or overflows
    """
    if isinstance(value, bool) or not isinstance(value, int):
        raise EncodingError(f"Value must be an integer, got {type(value).__name__}")
    if value < 0:
        raise EncodingError(f"Value must be non-negative, got {value}")
    if value > MAX_U64:
        raise EncodingError(f"Value must not be larger than {MAX_U64}, got {value}")
    return value.to_bytes(U64_BYTES, "little").hex()


def decode_u64_le(value: str) -> int:
    """
    Decode a 0x-prefixed 8-byte little-endian hex string.

    Values with bit 63 set are rejected even though the field is unsigned.

    Raises:
        EncodingError: On missing prefix, wrong length, bad hex or bit 63 set
    """
    if not isinstance(value, str) or not value.startswith("0x"):
        raise EncodingError("Input value must be a string with a preceding 0x")

    hex_le = value[2:]
    if len(hex_le) != U64_HEX_LENGTH:
        raise EncodingError(
            f"Expected an eight byte hex value ({U64_HEX_LENGTH} characters), "
            f"got {len(hex_le)} characters"
        )

    try:
        raw = bytes.fromhex(hex_le)
    except ValueError as e:
        raise EncodingError(f"Invalid hex value: {value}") from e
    if len(raw) != U64_BYTES:
        raise EncodingError(f"Invalid hex value: {value}")

    result = int.from_bytes(raw, "little")
    if result & U64_SIGN_BIT:
        raise EncodingError(f"Value {value} has bit 63 set and is rejected")
    return result


def encode_commitment(state: VaultState) -> str:
    """Encode vault state as the 48-character NFT commitment."""
    return (
        encode_u64_le(state.release_height)
        + encode_u64_le(state.halving_height)
        + encode_u64_le(state.reward)
    )


def decode_commitment(commitment: str) -> VaultState:
    """Decode a 48-character NFT commitment into vault state."""
    if not isinstance(commitment, str) or len(commitment) != COMMITMENT_HEX_LENGTH:
        length = len(commitment) if isinstance(commitment, str) else "non-string"
        raise EncodingError(
            f"Commitment must be exactly {COMMITMENT_HEX_LENGTH} hex characters, got {length}"
        )

    release_height, halving_height, reward = (
        decode_u64_le("0x" + commitment[offset : offset + U64_HEX_LENGTH])
        for offset in range(0, COMMITMENT_HEX_LENGTH, U64_HEX_LENGTH)
    )
    return VaultState(
        release_height=release_height,
        halving_height=halving_height,
        reward=reward,
    )
