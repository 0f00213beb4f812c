"""
Simulated chooser implementation.

Picks the member with the highest latent score plus Gaussian noise. Used for
automated runs and tests.
"""

from collections.abc import Sequence

import numpy as np
from typing_extensions import override

from ..exceptions import ChooserError
from ..interfaces import Chooser
from ..models import Decision, DecisionAction, ImageItem


class SimulatedChooser(Chooser):
    """
    Simulated chooser for testing purposes.

    Samples a favourite from ground truth scores with added noise. Optionally
    skips groups in which every member scores below ``skip_threshold``.
    """

    def __init__(
        self,
        ground_truth: dict[str, float],
        noise: float = 0.1,
        skip_threshold: float | None = None,
        seed: int | None = None,
    ):
        """
        Initialize simulated chooser.

        Args:
            ground_truth: Dict mapping item_id to true preference score
            noise: Amount of noise to add (0-1, where 1 = full noise)
            skip_threshold: Skip a group whose best true score is below this
            seed: Seed for the noise generator
        """
        self.ground_truth = ground_truth
        self.noise = max(0.0, min(1.0, noise))  # Clamp to [0, 1]
        self.skip_threshold = skip_threshold
        self.rng = np.random.default_rng(seed)
        self.chooser_id = "simulated"

    def _noisy_scores(self, group: Sequence[ImageItem]) -> np.ndarray:
        true_scores = np.array([self.ground_truth.get(item.item_id, 0.0) for item in group], dtype=float)
        if self.noise == 0:
            return true_scores
        # Scale noise by score magnitude
        return true_scores + self.rng.normal(0.0, 1.0, size=len(group)) * np.abs(true_scores) * self.noise

    @override
    def choose(self, group: Sequence[ImageItem]) -> Decision:
        """Choose the member with the highest noisy score, or skip a weak group."""
        if not group:
            raise ChooserError("Cannot choose from an empty group")

        best_true = max(self.ground_truth.get(item.item_id, 0.0) for item in group)
        if self.skip_threshold is not None and best_true < self.skip_threshold:
            return Decision(
                action=DecisionAction.SKIP,
                rationale=f"Simulated skip: best true score {best_true:.3f} below {self.skip_threshold:.3f}",
                chooser_id=self.chooser_id,
            )

        scores = self._noisy_scores(group)
        winner = group[int(np.argmax(scores))]
        return Decision(
            action=DecisionAction.CHOOSE,
            winner_id=winner.item_id,
            rationale=(
                f"Simulated choice: {winner.item_id} scored {float(np.max(scores)):.3f} "
                f"(ground truth: {self.ground_truth.get(winner.item_id, 0.0):.3f})"
            ),
            chooser_id=self.chooser_id,
        )
