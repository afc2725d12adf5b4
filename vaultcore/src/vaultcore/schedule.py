"""
Halving release schedule.

Must agree exactly with the release covenant, which recomputes the same
values on chain and rejects any transaction that differs.
"""

from __future__ import annotations

from dataclasses import dataclass

from vaultcore.constants import MINIMUM_REWARD
from vaultcore.models import VaultState


@dataclass(frozen=True)
class ReleasePlan:
    """Result of a release computation."""

    release_amount: int
    next_state: VaultState
    end_of_life: bool
    halved: bool
    remaining_amount: int  # tokens left locked in the vault, 0 at end of life


def compute_release(
    previous: VaultState,
    locked_amount: int,
    target_height: int,
    halving_length: int,
) -> ReleasePlan:
    """
    Compute the tokens releasable up to target_height.

    A release never crosses a halving boundary: when the boundary is reached
    the release stops there at the pre-halving reward, and the state moves to
    the boundary with the halved reward. Heights past the boundary need
    another release.

    The caller guarantees target_height does not exceed the chain tip.

    Args:
        previous: State decoded from the current vault commitment
        locked_amount: Fungible tokens currently held by the vault
        target_height: Height to release up to (inclusive)
        halving_length: Blocks per reward period

    Returns:
        ReleasePlan; when end_of_life is set no successor state may be written
    """
    if halving_length < 1:
        raise ValueError(f"halving_length must be positive, got {halving_length}")

    blocks_since_release = target_height - previous.release_height + 1
    release_amount = blocks_since_release * previous.reward
    next_state = VaultState(
        release_height=target_height,
        halving_height=previous.halving_height,
        reward=previous.reward,
    )

    halved = False
    blocks_since_halving = target_height - previous.halving_height + 1
    if blocks_since_halving >= halving_length:
        boundary_height = previous.halving_height + halving_length
        next_state = VaultState(
            release_height=boundary_height,
            halving_height=boundary_height,
            reward=max(MINIMUM_REWARD, previous.reward // 2),
        )
        release_amount = (boundary_height - previous.release_height) * previous.reward
        halved = True

    end_of_life = locked_amount - release_amount <= 0
    if end_of_life:
        release_amount = locked_amount

    return ReleasePlan(
        release_amount=release_amount,
        next_state=next_state,
        end_of_life=end_of_life,
        halved=halved,
        remaining_amount=locked_amount - release_amount,
    )
