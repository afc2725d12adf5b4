"""
Script primitives: hashing, varints, minimal pushes and standard locking bytecode.
"""

from __future__ import annotations

import hashlib
import struct

OP_0 = 0x00
OP_PUSHDATA1 = 0x4C
OP_PUSHDATA2 = 0x4D
OP_PUSHDATA4 = 0x4E
OP_1NEGATE = 0x4F
OP_1 = 0x51
OP_DUP = 0x76
OP_EQUAL = 0x87
OP_EQUALVERIFY = 0x88
OP_HASH160 = 0xA9
OP_HASH256 = 0xAA
OP_CHECKSIG = 0xAC


def hash160(data: bytes) -> bytes:
    """RIPEMD160(SHA256(data))"""
    h = hashlib.new("ripemd160")
    h.update(hashlib.sha256(data).digest())
    return h.digest()


def hash256(data: bytes) -> bytes:
    return hashlib.sha256(hashlib.sha256(data).digest()).digest()


def encode_varint(n: int) -> bytes:
    """Encode integer as CompactSize varint."""
    if n < 0:
        raise ValueError(f"varint must be non-negative, got {n}")
    if n < 0xFD:
        return bytes([n])
    elif n <= 0xFFFF:
        return bytes([0xFD]) + struct.pack("<H", n)
    elif n <= 0xFFFFFFFF:
        return bytes([0xFE]) + struct.pack("<I", n)
    else:
        return bytes([0xFF]) + struct.pack("<Q", n)


def encode_script_number(value: int) -> bytes:
    """Minimally encode an integer as a VM number (little-endian, sign bit)."""
    if value == 0:
        return b""

    negative = value < 0
    magnitude = abs(value)
    result = bytearray()
    while magnitude:
        result.append(magnitude & 0xFF)
        magnitude >>= 8

    if result[-1] & 0x80:
        result.append(0x80 if negative else 0x00)
    elif negative:
        result[-1] |= 0x80
    return bytes(result)


def push_data(data: bytes) -> bytes:
    """Minimal push of a byte string."""
    length = len(data)
    if length == 0:
        return bytes([OP_0])
    if length == 1 and 1 <= data[0] <= 16:
        return bytes([OP_1 + data[0] - 1])
    if length == 1 and data[0] == 0x81:
        return bytes([OP_1NEGATE])
    if length <= 75:
        return bytes([length]) + data
    if length <= 0xFF:
        return bytes([OP_PUSHDATA1, length]) + data
    if length <= 0xFFFF:
        return bytes([OP_PUSHDATA2]) + struct.pack("<H", length) + data
    return bytes([OP_PUSHDATA4]) + struct.pack("<I", length) + data


def push_number(value: int) -> bytes:
    return push_data(encode_script_number(value))


def p2pkh_locking_bytecode(pubkey_hash: bytes) -> bytes:
    """OP_DUP OP_HASH160 <20-byte-pubkeyhash> OP_EQUALVERIFY OP_CHECKSIG"""
    if len(pubkey_hash) != 20:
        raise ValueError(f"Invalid pubkey hash length: {len(pubkey_hash)}")
    return bytes([OP_DUP, OP_HASH160, 0x14]) + pubkey_hash + bytes([OP_EQUALVERIFY, OP_CHECKSIG])


def p2sh_locking_bytecode(redeem_script: bytes, address_type: str = "p2sh32") -> bytes:
    """
    Locking bytecode paying to a redeem script.

    p2sh20: OP_HASH160 <20-byte-hash> OP_EQUAL
    p2sh32: OP_HASH256 <32-byte-hash> OP_EQUAL
    """
    if address_type == "p2sh20":
        return bytes([OP_HASH160, 0x14]) + hash160(redeem_script) + bytes([OP_EQUAL])
    if address_type == "p2sh32":
        return bytes([OP_HASH256, 0x20]) + hash256(redeem_script) + bytes([OP_EQUAL])
    raise ValueError(f"Unknown address type: {address_type}")
