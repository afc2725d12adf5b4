"""
UTXO selection for vault operations.

Each operation needs a specific input shape. Anything else is reported as a
SelectionError; nothing here falls back to a first match. When several UTXOs
qualify equally the choice goes to the operator.
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from dataclasses import dataclass

from loguru import logger
from vaultcore.errors import AmbiguousSelectionError, SelectionError
from vaultcore.models import UTXO

# (question, option descriptions) -> chosen index
Chooser = Callable[[str, list[str]], int]

MAX_CHOICE_ATTEMPTS = 3


@dataclass(frozen=True)
class LockInputs:
    token_input: UTXO
    fee_input: UTXO

    @property
    def ordered(self) -> list[UTXO]:
        """Inputs in spending order; the first spends output 0 and seeds the state category."""
        if self.fee_input.vout == 0:
            return [self.fee_input, self.token_input]
        return [self.token_input, self.fee_input]

    @property
    def genesis_input(self) -> UTXO:
        return self.ordered[0]


@dataclass(frozen=True)
class VaultOutputs:
    """The two UTXOs held by a live release vault."""

    token_input: UTXO
    state_input: UTXO


@dataclass(frozen=True)
class ReleaseInputs:
    token_input: UTXO
    state_input: UTXO
    fund_input: UTXO


def choose_one(candidates: Sequence[UTXO], question: str, chooser: Chooser | None = None) -> UTXO:
    """
    Resolve a candidate list to a single UTXO.

    Raises:
        SelectionError: No candidates, or no valid choice was made
        AmbiguousSelectionError: Several candidates and no chooser
    """
    if not candidates:
        raise SelectionError("No candidate UTXOs to choose from")
    if len(candidates) == 1:
        return candidates[0]

    if chooser is None:
        raise AmbiguousSelectionError(
            f"{len(candidates)} UTXOs qualify and no chooser is available", list(candidates)
        )

    options = [utxo.describe() for utxo in candidates]
    for attempt in range(1, MAX_CHOICE_ATTEMPTS + 1):
        index = chooser(question, options)
        if 0 <= index < len(candidates):
            selected = candidates[index]
            logger.debug(f"Selected UTXO {selected.outpoint}")
            return selected
        logger.warning(
            f"Invalid choice {index}, expected 0-{len(candidates) - 1} "
            f"(attempt {attempt}/{MAX_CHOICE_ATTEMPTS})"
        )

    raise SelectionError(f"No valid UTXO chosen after {MAX_CHOICE_ATTEMPTS} attempts")


def select_mint_input(
    utxos: Sequence[UTXO], min_satoshis: int, chooser: Chooser | None = None
) -> UTXO:
    """
    Select the minting contract input.

    It must be token-free, hold at least min_satoshis and be output 0 of its
    transaction, since a token category can only be created by spending one.
    """
    if not utxos:
        raise SelectionError("No UTXOs found for the mint contract, ensure a valid UTXO exists")

    candidates = [
        utxo
        for utxo in utxos
        if utxo.token is None and utxo.satoshis >= min_satoshis and utxo.vout == 0
    ]
    if not candidates:
        raise SelectionError(
            f"No token-free UTXO at output index 0 with at least {min_satoshis} sats "
            f"found for the mint contract ({len(utxos)} UTXOs inspected)"
        )

    return choose_one(candidates, "Which input should be used for minting?", chooser)


def select_lock_inputs(utxos: Sequence[UTXO], min_satoshis: int) -> LockInputs:
    """
    Select the two funding UTXOs for a lock: one carrying the fungible tokens
    to lock, one token-free UTXO paying the fees.
    """
    if len(utxos) == 0:
        raise SelectionError("No UTXOs found at the fund address, expected exactly two")
    if len(utxos) == 1:
        raise SelectionError(
            "Only one UTXO found at the fund address, expected exactly two "
            "(one with the tokens to lock and one to pay fees)"
        )
    if len(utxos) > 2:
        raise SelectionError(
            f"Found {len(utxos)} UTXOs at the fund address, expected exactly two; "
            "consolidate or send the extra UTXOs away first"
        )

    token_inputs = [
        utxo for utxo in utxos if utxo.token is not None and utxo.token.is_fungible_only
    ]
    fee_inputs = [
        utxo for utxo in utxos if utxo.token is None and utxo.satoshis >= min_satoshis
    ]

    if len(token_inputs) != 1:
        raise SelectionError(
            f"Expected exactly one UTXO carrying fungible tokens without an NFT, "
            f"found {len(token_inputs)}"
        )
    if len(fee_inputs) != 1:
        raise SelectionError(
            f"Expected exactly one token-free UTXO with at least {min_satoshis} sats, "
            f"found {len(fee_inputs)}"
        )

    inputs = LockInputs(token_input=token_inputs[0], fee_input=fee_inputs[0])
    if inputs.genesis_input.vout != 0:
        raise SelectionError(
            "Neither funding UTXO is output 0 of its transaction, "
            "a state token cannot be created from them"
        )
    return inputs


def select_vault_outputs(contract_utxos: Sequence[UTXO]) -> VaultOutputs:
    """Identify the locked token UTXO and the state NFT UTXO of a release vault."""
    if not contract_utxos:
        raise SelectionError("No UTXOs found for the release contract, ensure a valid UTXO exists")
    if len(contract_utxos) != 2:
        raise SelectionError(
            f"Release contract holds {len(contract_utxos)} UTXOs, expected exactly two"
        )

    first, second = contract_utxos
    if first.txid != second.txid:
        raise SelectionError("Release contract UTXOs do not share a transaction id")

    token_inputs = [u for u in contract_utxos if u.token is not None and u.token.is_fungible_only]
    state_inputs = [
        u for u in contract_utxos if u.token is not None and u.token.nft is not None
    ]
    if len(token_inputs) != 1 or len(state_inputs) != 1:
        raise SelectionError(
            "Release contract UTXOs must be one fungible token UTXO and one state NFT UTXO"
        )

    return VaultOutputs(token_input=token_inputs[0], state_input=state_inputs[0])


def select_release_inputs(
    contract_utxos: Sequence[UTXO], fund_utxos: Sequence[UTXO]
) -> ReleaseInputs:
    vault = select_vault_outputs(contract_utxos)

    if not fund_utxos:
        raise SelectionError("No UTXOs found at the fund address, ensure a valid UTXO exists")
    if len(fund_utxos) != 1:
        raise SelectionError(
            f"Found {len(fund_utxos)} UTXOs at the fund address, expected exactly one"
        )

    fund_input = fund_utxos[0]
    if fund_input.token is not None:
        raise SelectionError(
            "The fund UTXO carries a token; the release contract requires a token-free fee input"
        )

    return ReleaseInputs(
        token_input=vault.token_input,
        state_input=vault.state_input,
        fund_input=fund_input,
    )


def select_send_input(utxos: Sequence[UTXO], chooser: Chooser | None = None) -> UTXO:
    if not utxos:
        raise SelectionError("No UTXOs found at the fund address, ensure a valid UTXO exists")
    return choose_one(utxos, "Which UTXO should be sent?", chooser)
