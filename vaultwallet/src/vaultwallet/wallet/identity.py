"""
Signing identity: a single private key plus its receive address.

Key derivation and address encoding happen elsewhere; the address is taken
as given and only the P2PKH locking bytecode is computed here.
"""

from __future__ import annotations

import base58
from coincurve import PrivateKey
from vaultcore.script import hash160, p2pkh_locking_bytecode
from vaultcore.transaction import Transaction

from vaultwallet.wallet.signing import placeholder_signature, sign_input
from vaultwallet.wallet.unlocking import P2PKHUnlocker

WIF_VERSIONS = {0x80: "mainnet", 0xEF: "testnet"}


def decode_wif(wif: str) -> tuple[bytes, bool]:
    """
    Decode a WIF private key.

    Returns:
        (32-byte private key, compressed flag)

    Raises:
        ValueError: On bad checksum, version or length
    """
    try:
        raw = base58.b58decode_check(wif)
    except ValueError as e:
        raise ValueError(f"Invalid WIF checksum: {e}") from e

    if raw[0] not in WIF_VERSIONS:
        raise ValueError(f"Unknown WIF version byte: {raw[0]:#x}")

    if len(raw) == 34 and raw[-1] == 0x01:
        return raw[1:33], True
    if len(raw) == 33:
        return raw[1:33], False
    raise ValueError(f"Invalid WIF payload length: {len(raw)}")


class KeyIdentity:
    """Signing capability and receive address for the funding wallet."""

    def __init__(self, private_key: bytes, address: str, compressed: bool = True):
        if len(private_key) != 32:
            raise ValueError(f"Private key must be 32 bytes, got {len(private_key)}")
        self._private_key = PrivateKey(private_key)
        self.address = address
        self.compressed = compressed

    @classmethod
    def from_wif(cls, wif: str, address: str) -> KeyIdentity:
        private_key, compressed = decode_wif(wif)
        return cls(private_key, address, compressed=compressed)

    @property
    def public_key(self) -> bytes:
        return self._private_key.public_key.format(compressed=self.compressed)

    @property
    def public_key_hash(self) -> bytes:
        return hash160(self.public_key)

    @property
    def locking_bytecode(self) -> bytes:
        return p2pkh_locking_bytecode(self.public_key_hash)

    def sign(
        self, tx: Transaction, input_index: int, script_code: bytes, estimate: bool = False
    ) -> bytes:
        """Signature for an input, or a worst-case sized stand-in when `estimate` is set."""
        if estimate:
            return placeholder_signature()
        return sign_input(tx, input_index, script_code, self._private_key)

    def unlock_p2pkh(self) -> P2PKHUnlocker:
        return P2PKHUnlocker(self)

    def __repr__(self) -> str:
        return f"KeyIdentity(address={self.address!r})"
