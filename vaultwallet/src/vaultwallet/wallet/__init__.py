"""
Signing identity and input unlockers.
"""

from vaultwallet.wallet.identity import KeyIdentity, decode_wif
from vaultwallet.wallet.signing import TransactionSigningError, compute_sighash, sign_input
from vaultwallet.wallet.unlocking import P2PKHUnlocker, Unlocker

__all__ = [
    "KeyIdentity",
    "P2PKHUnlocker",
    "TransactionSigningError",
    "Unlocker",
    "compute_sighash",
    "decode_wif",
    "sign_input",
]
