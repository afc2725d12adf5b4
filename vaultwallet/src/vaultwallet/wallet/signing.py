"""
Transaction signing for Bitcoin Cash inputs (SIGHASH_ALL | SIGHASH_FORKID).

Signing serialization, BIP143 style with the CashTokens extension: the token
prefix of the output being spent is placed in front of the scriptCode.
"""

from __future__ import annotations

import struct

from coincurve import PrivateKey
from vaultcore.script import encode_varint, hash256
from vaultcore.transaction import (
    Transaction,
    encode_token_prefix,
    serialize_outpoint,
    serialize_output,
)

SIGHASH_ALL = 0x01
SIGHASH_FORKID = 0x40
SIGHASH_ALL_FORKID = SIGHASH_ALL | SIGHASH_FORKID

# Largest DER-encoded ECDSA signature (33-byte r and s) plus the sighash byte
MAX_SIGNATURE_SIZE = 73


class TransactionSigningError(Exception):
    pass


def signing_serialization(
    tx: Transaction,
    input_index: int,
    script_code: bytes,
    sighash_type: int = SIGHASH_ALL_FORKID,
) -> bytes:
    """
    Build the signing serialization (preimage) for one input.

    Args:
        tx: Transaction with final outputs; unlocking bytecode is not covered
        input_index: Index of the input being signed
        script_code: Locking bytecode for P2PKH, redeem script for P2SH
        sighash_type: Only SIGHASH_ALL | SIGHASH_FORKID is supported

    Returns:
        Preimage bytes (hash256 of these is the signed digest)
    """
    if input_index >= len(tx.inputs):
        raise TransactionSigningError(
            f"Input index {input_index} out of range ({len(tx.inputs)} inputs)"
        )
    if sighash_type != SIGHASH_ALL_FORKID:
        raise TransactionSigningError(f"Unsupported sighash type: {sighash_type:#x}")

    hash_prevouts = hash256(
        b"".join(serialize_outpoint(inp.utxo.txid, inp.utxo.vout) for inp in tx.inputs)
    )
    hash_sequence = hash256(b"".join(struct.pack("<I", inp.sequence) for inp in tx.inputs))
    hash_outputs = hash256(b"".join(serialize_output(out) for out in tx.outputs))

    target_input = tx.inputs[input_index]
    spent = target_input.utxo

    return (
        struct.pack("<I", tx.version)
        + hash_prevouts
        + hash_sequence
        + serialize_outpoint(spent.txid, spent.vout)
        + encode_token_prefix(spent.token)
        + encode_varint(len(script_code))
        + script_code
        + struct.pack("<Q", spent.satoshis)
        + struct.pack("<I", target_input.sequence)
        + hash_outputs
        + struct.pack("<I", tx.locktime)
        + struct.pack("<I", sighash_type)
    )


def compute_sighash(
    tx: Transaction,
    input_index: int,
    script_code: bytes,
    sighash_type: int = SIGHASH_ALL_FORKID,
) -> bytes:
    return hash256(signing_serialization(tx, input_index, script_code, sighash_type))


def sign_input(
    tx: Transaction,
    input_index: int,
    script_code: bytes,
    private_key: PrivateKey,
    sighash_type: int = SIGHASH_ALL_FORKID,
) -> bytes:
    """Sign an input using coincurve.

    Returns:
        DER-encoded ECDSA signature with the sighash type byte appended
    """
    sighash = compute_sighash(tx, input_index, script_code, sighash_type)

    # Sign the pre-hashed sighash (it's already SHA256d)
    # coincurve's sign() with hasher=None skips hashing
    signature = private_key.sign(sighash, hasher=None)

    return signature + bytes([sighash_type])


def placeholder_signature(sighash_type: int = SIGHASH_ALL_FORKID) -> bytes:
    """Stand-in of the largest possible signature size, for sizing passes."""
    return bytes(MAX_SIGNATURE_SIZE - 1) + bytes([sighash_type])
