"""
Dummy chooser implementation for testing.

Provides deterministic and random choices.
"""

import random
from collections.abc import Sequence

from typing_extensions import override

from ..exceptions import ValidationError
from ..interfaces import Chooser
from ..models import Decision, DecisionAction, ImageItem


class DummyChooser(Chooser):
    """
    Dummy chooser for testing purposes.

    In deterministic mode the smallest item_id always wins.
    """

    def __init__(self, mode: str = "deterministic", seed: int = 42):
        """
        Initialize dummy chooser.

        Args:
            mode: "deterministic" or "random"
            seed: Random seed for reproducible results
        """
        if mode not in ("deterministic", "random"):
            raise ValidationError(f"Unknown mode: {mode}")
        self.mode = mode
        self.rng = random.Random(seed)
        self.chooser_id = f"dummy_{mode}"

    @override
    def choose(self, group: Sequence[ImageItem]) -> Decision:
        if not group:
            raise ValidationError("Cannot choose from an empty group")

        if self.mode == "deterministic":
            winner_id = min(item.item_id for item in group)
        else:
            winner_id = self.rng.choice(list(group)).item_id

        return Decision(
            action=DecisionAction.CHOOSE,
            winner_id=winner_id,
            rationale=f"Dummy {self.mode} choice among {len(group)} images",
            chooser_id=self.chooser_id,
        )
