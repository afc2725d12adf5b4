"""
Transaction serialization with CashToken output prefixes.

Output layout:
    value (8, LE) | varint(len(prefix + locking)) | token prefix | locking bytecode

Token prefix:
    0xef | category (32, internal byte order) | bitfield | [varint commitment
    length | commitment] | [varint amount]
"""

from __future__ import annotations

import struct
from dataclasses import dataclass, field

from vaultcore.constants import DEFAULT_SEQUENCE, TX_VERSION
from vaultcore.models import UTXO, NftCapability, TokenData
from vaultcore.script import encode_varint, hash256

PREFIX_TOKEN = 0xEF

# Token bitfield flags (high nibble) and capabilities (low nibble)
HAS_AMOUNT = 0x10
HAS_NFT = 0x20
HAS_COMMITMENT_LENGTH = 0x40

CAPABILITY_BITS = {
    NftCapability.NONE: 0x00,
    NftCapability.MUTABLE: 0x01,
    NftCapability.MINTING: 0x02,
}


@dataclass
class TxInput:
    """Transaction input spending an observed UTXO."""

    utxo: UTXO
    unlocking_bytecode: bytes = b""
    sequence: int = DEFAULT_SEQUENCE


@dataclass
class TxOutput:
    """Transaction output."""

    locking_bytecode: bytes
    satoshis: int
    token: TokenData | None = None


@dataclass
class Transaction:
    inputs: list[TxInput] = field(default_factory=list)
    outputs: list[TxOutput] = field(default_factory=list)
    version: int = TX_VERSION
    locktime: int = 0

    def serialize(self) -> bytes:
        """Serialize transaction to bytes."""
        result = struct.pack("<I", self.version)

        result += encode_varint(len(self.inputs))
        for inp in self.inputs:
            result += serialize_input(inp)

        result += encode_varint(len(self.outputs))
        for out in self.outputs:
            result += serialize_output(out)

        result += struct.pack("<I", self.locktime)
        return result

    def to_hex(self) -> str:
        return self.serialize().hex()

    @property
    def size(self) -> int:
        return len(self.serialize())

    @property
    def txid(self) -> str:
        """Double SHA256 of the serialization, in display order."""
        return hash256(self.serialize())[::-1].hex()

    @property
    def input_value(self) -> int:
        return sum(inp.utxo.satoshis for inp in self.inputs)

    @property
    def output_value(self) -> int:
        return sum(out.satoshis for out in self.outputs)


def encode_token_prefix(token: TokenData | None) -> bytes:
    """Encode the token prefix for an output, empty if it carries no token."""
    if token is None:
        return b""

    category = bytes.fromhex(token.category)
    if len(category) != 32:
        raise ValueError(f"Token category must be 32 bytes, got {len(category)}")
    if token.amount < 0:
        raise ValueError(f"Token amount must be non-negative, got {token.amount}")

    bitfield = 0
    payload = b""

    if token.nft is not None:
        bitfield |= HAS_NFT | CAPABILITY_BITS[NftCapability(token.nft.capability)]
        commitment = bytes.fromhex(token.nft.commitment)
        if commitment:
            bitfield |= HAS_COMMITMENT_LENGTH
            payload += encode_varint(len(commitment)) + commitment

    if token.amount > 0:
        bitfield |= HAS_AMOUNT
        payload += encode_varint(token.amount)

    if bitfield == 0:
        raise ValueError("Token must carry an NFT or a non-zero amount")

    return bytes([PREFIX_TOKEN]) + category[::-1] + bytes([bitfield]) + payload


def serialize_outpoint(txid: str, vout: int) -> bytes:
    """Serialize outpoint (txid:vout)."""
    # txid is in display order (big-endian), reversed for raw tx
    return bytes.fromhex(txid)[::-1] + struct.pack("<I", vout)


def serialize_input(inp: TxInput) -> bytes:
    result = serialize_outpoint(inp.utxo.txid, inp.utxo.vout)
    result += encode_varint(len(inp.unlocking_bytecode))
    result += inp.unlocking_bytecode
    result += struct.pack("<I", inp.sequence)
    return result


def serialize_output(out: TxOutput) -> bytes:
    if out.satoshis < 0:
        raise ValueError(f"Output value must be non-negative, got {out.satoshis}")
    script = encode_token_prefix(out.token) + out.locking_bytecode
    return struct.pack("<Q", out.satoshis) + encode_varint(len(script)) + script
