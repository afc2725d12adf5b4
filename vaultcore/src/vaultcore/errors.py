"""
Error taxonomy for vault operations.

Every error here is a recoverable input problem: the run halts, the operator
fixes the input (funds a UTXO, picks another height, ...) and re-invokes.
Programming errors stay ValueError/TypeError.
"""

from __future__ import annotations

from typing import Any


class VaultError(Exception):
    """Base class for operator-facing vault errors."""

    pass


class EncodingError(VaultError):
    """A value cannot be encoded to, or decoded from, its fixed-width form."""

    pass


class SelectionError(VaultError):
    """The observed UTXO set does not match the shape an operation requires."""

    pass


class AmbiguousSelectionError(SelectionError):
    """Several UTXOs qualify and nobody is available to choose between them."""

    def __init__(self, message: str, candidates: list[Any]):
        super().__init__(message)
        self.candidates = candidates


class InsufficientValueError(VaultError):
    """Change after fees would fall below the dust threshold."""

    def __init__(self, message: str, change: int, dust_threshold: int):
        super().__init__(message)
        self.change = change
        self.dust_threshold = dust_threshold


class InvalidParameterError(VaultError):
    """An operator-supplied amount or height is out of range."""

    pass


class ScheduleViolationError(VaultError):
    """The requested release height is outside the releasable window."""

    pass


class UserAbortedError(VaultError):
    """The operator declined a confirmation prompt."""

    def __init__(self, message: str, tx_hex: str | None = None):
        super().__init__(message)
        self.tx_hex = tx_hex


class BackendError(VaultError):
    """The chain backend failed or returned an unusable response."""

    pass
