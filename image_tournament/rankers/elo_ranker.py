"""
Elo-style ranker implementation.

Applies the outcome of a k-way choice or a skipped group to item state, with
a learning rate that anneals as the winner accumulates views.
"""

import math
from collections.abc import Sequence
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from ..logging_config import get_logger
from ..models import ImageItem

K_FACTOR_INITIAL = 100.0
MATCH_SCALE = 400.0
ANNEALING_RATE = 0.15

# Losers without a single win are penalised more gently
UNPROVEN_LOSS_MODIFIER = 0.2
PROVEN_LOSS_MODIFIER = 0.6

WELL_OBSERVED_VIEWS = 8
LOSER_SIGMA_DECAY = 0.92
WINNER_SIGMA_DECAY = 0.85
WELL_OBSERVED_SIGMA_DECAY = 0.7

SKIP_RATING_PENALTY = 30.0
SKIP_SIGMA_DECAY = 0.75
PASS_ELIMINATION_THRESHOLD = 2


def expected_score(rating: float, opponent_rating: float) -> float:
    """Logistic probability that ``rating`` beats ``opponent_rating``."""
    return 1.0 / (1.0 + math.pow(10.0, (opponent_rating - rating) / MATCH_SCALE))


def annealing_factor(view_count: int) -> float:
    return 1.0 / (1.0 + view_count * ANNEALING_RATE)


class EloRanker:
    """
    Rating updater for multi-way choices.

    A choice is treated as the winner beating every other group member.
    Losers are processed in group order against the live winner rating, so
    each successive comparison sees the winner's gain so far. The winner's
    gain per loser is damped by ``1/sqrt(num_losers)`` while each loser's
    penalty is applied in full.
    """

    def __init__(self) -> None:
        self.logger: Logger = get_logger("elo_ranker")

    def apply_choice(self, winner: ImageItem, group: Sequence[ImageItem]) -> None:
        """Update ``winner`` and every other member of ``group`` for one resolved choice."""
        losers = [item for item in group if item.item_id != winner.item_id]
        if not losers:
            self.logger.debug(f"No losers in group for {winner.item_id}, skipping update")
            return

        k = K_FACTOR_INITIAL * annealing_factor(winner.view_count)
        damping = math.sqrt(len(losers))
        winner_before = winner.rating

        for loser in losers:
            winner_expected = expected_score(winner.rating, loser.rating)
            loser_expected = expected_score(loser.rating, winner.rating)

            loss_modifier = UNPROVEN_LOSS_MODIFIER if loser.wins == 0 else PROVEN_LOSS_MODIFIER

            winner.rating += k * (1.0 - winner_expected) / damping
            loser_before = loser.rating
            loser.rating += k * (0.0 - loser_expected) * loss_modifier

            loser.sigma *= LOSER_SIGMA_DECAY if loser.view_count <= WELL_OBSERVED_VIEWS else WELL_OBSERVED_SIGMA_DECAY
            loser.clamp_sigma()
            loser.view_count += 1

            self.logger.debug(f"  {loser.item_id}: {loser_before:.2f}->{loser.rating:.2f} (σ: {loser.sigma:.2f})")

        winner.sigma *= WINNER_SIGMA_DECAY if winner.view_count <= WELL_OBSERVED_VIEWS else WELL_OBSERVED_SIGMA_DECAY
        winner.clamp_sigma()
        winner.view_count += 1
        winner.wins += 1

        self.logger.debug(
            f"Score update: {winner.item_id} beat {[l.item_id for l in losers]}: "
            f"{winner_before:.2f}->{winner.rating:.2f} (σ: {winner.sigma:.2f})"
        )

    def apply_skip(self, group: Sequence[ImageItem]) -> list[ImageItem]:
        """
        Penalise every member of a skipped group.

        Returns:
            Items eliminated because they reached the pass threshold
        """
        eliminated = list[ImageItem]()
        for item in group:
            item.pass_count += 1
            item.view_count += 1
            item.rating -= SKIP_RATING_PENALTY
            item.sigma *= SKIP_SIGMA_DECAY
            item.clamp_sigma()
            if item.pass_count >= PASS_ELIMINATION_THRESHOLD and item.is_active:
                item.eliminate()
                eliminated.append(item)

        if eliminated:
            self.logger.info(f"Eliminated after repeated passes: {[item.item_id for item in eliminated]}")
        return eliminated
