"""
Adaptive group selector implementation.

Picks a pivot by rating and uncertainty, then fills the group randomly while
exploring or with the closest-rated rivals once precision is locked in.
"""

import random
from collections.abc import Sequence

from typing_extensions import override

from ..interfaces import Selector
from ..logging_config import get_logger
from ..models import ImageItem, Phase

EXPLORATION_GROUP_SIZE = 6
PRECISION_GROUP_SIZE = 4
PIVOT_RATING_WEIGHT = 1.5

# Module-level logger
logger = get_logger("adaptive_selector")


def pivot_score(item: ImageItem) -> float:
    """Composite score favouring high-rated, still-uncertain items."""
    return item.rating * PIVOT_RATING_WEIGHT + item.sigma


def target_group_size(phase: Phase) -> int:
    return PRECISION_GROUP_SIZE if phase is Phase.PRECISION else EXPLORATION_GROUP_SIZE


class AdaptiveSelector(Selector):
    """
    Selector used by the ranking engine.

    Exploration groups are 6-way and mostly random to spread views quickly.
    Precision groups are 4-way and built around items rated close to the
    pivot. Display order is always shuffled.
    """

    def __init__(self, rng: random.Random | None = None):
        """Initialize adaptive selector.

        Args:
            rng: Random source for member sampling and shuffling. Pass a
                seeded instance for reproducible groups.
        """
        self.rng = rng if rng is not None else random.Random()

    @override
    def select_group(
        self,
        active_items: Sequence[ImageItem],
        phase: Phase,
        last_winner_id: str | None,
    ) -> list[ImageItem] | None:
        """Return the next group in display order, or None if fewer than 2 are active."""
        if len(active_items) < 2:
            logger.warning("Insufficient active items for a group")
            return None

        size = min(target_group_size(phase), len(active_items))

        pool = list(active_items)
        if last_winner_id is not None and len(pool) > size:
            pool = [item for item in pool if item.item_id != last_winner_id]

        pool.sort(key=pivot_score, reverse=True)
        pivot = pool[0]
        others = pool[1:]

        if phase is Phase.PRECISION:
            others.sort(key=lambda item: abs(item.rating - pivot.rating))
        else:
            self.rng.shuffle(others)

        selection = [pivot] + others[: size - 1]
        self.rng.shuffle(selection)

        logger.debug(
            f"Selected {phase.value} group of size {len(selection)} around pivot {pivot.item_id}: "
            f"{[item.item_id for item in selection]}"
        )
        return selection
