"""
Session state machine.

Holds per-session counters and runs the fixed-order check list after every
update: insufficient candidates, pass exhaustion, phase lock, elite freeze,
pruning, per-item stagnation, similarity finish and convergence finish.
"""

import math
from collections.abc import Sequence
from dataclasses import dataclass, field

from .logging_config import get_logger
from .models import SIGMA_INIT, ActionEntry, EliteType, ImageItem, Phase
from .registry import ItemRegistry

# Finish reasons
REASON_COMPLETED = "completed"
REASON_INSUFFICIENT = "insufficient candidates"
REASON_PASS_EXHAUSTION = "pass exhaustion"
REASON_REPEATED_SKIP = "manual termination via repeated skip"
REASON_SIMILARITY = "preference convergence"
REASON_CONVERGENCE = "convergence complete"
REASON_MANUAL = "manual termination"

# Pass exhaustion
PASS_WINDOW = 10
PASS_WINDOW_LIMIT = 4
GLOBAL_PASS_LIMIT = 3

# Phase lock
UNSTABLE_SIGMA_THRESHOLD = SIGMA_INIT * 0.6
UNSTABLE_RATIO_BORDER = 0.35

# Elite freeze
GOD_RATING, GOD_VIEWS = 1770.0, 4
STRONG_RATING, STRONG_VIEWS, STRONG_BAND = 1600.0, 6, 1.0
STAT_RATING, STAT_VIEWS, STAT_BAND = 1520.0, 7, 1.62

# Pruning and stagnation
PRUNE_VIEWS, PRUNE_RATING = 5, 1200.0
STAGNATION_VIEWS, STAGNATION_RATING = 10, 1500.0
STALEMATE_LIMIT = 5
STALEMATE_FREEZE_RATING = 1520.0

# Finish conditions
SIMILARITY_MAX_ACTIVE = 4
SIMILARITY_MIN_VIEWS = 6.0
SIMILARITY_SPREAD = 50.0
CONVERGENCE_SIGMA = 30.0


@dataclass
class SessionState:
    """Process-wide counters for one ranking run."""

    phase: Phase = Phase.EXPLORATION
    phase_locked: bool = False
    global_pass_streak: int = 0
    stalemate_counter: int = 0
    last_winner_id: str | None = None
    total_actions: int = 0
    initial_uncertainty_mass: float = 0.0
    action_log: list[ActionEntry] = field(default_factory=list)
    finish_reason: str = REASON_COMPLETED

    def reset(self, initial_uncertainty_mass: float = 0.0) -> None:
        self.phase = Phase.EXPLORATION
        self.phase_locked = False
        self.global_pass_streak = 0
        self.stalemate_counter = 0
        self.last_winner_id = None
        self.total_actions = 0
        self.initial_uncertainty_mass = initial_uncertainty_mass
        self.action_log = []
        self.finish_reason = REASON_COMPLETED

    def log_win(self, item_id: str) -> None:
        self.global_pass_streak = 0
        self.last_winner_id = item_id
        self.total_actions += 1
        self.action_log.append(ActionEntry.win(item_id))

    def log_pass(self) -> None:
        self.global_pass_streak += 1
        self.last_winner_id = None
        self.total_actions += 1
        self.action_log.append(ActionEntry.skip())


def classify_elite(top: ImageItem, second: ImageItem) -> EliteType:
    """Decide whether ``top`` is clearly ahead of ``second``."""
    if top.rating > GOD_RATING and top.view_count >= GOD_VIEWS:
        return EliteType.GOD
    if (
        top.rating > STRONG_RATING
        and top.view_count >= STRONG_VIEWS
        and top.rating - STRONG_BAND * top.sigma > second.rating + STRONG_BAND * second.sigma
    ):
        return EliteType.STRONG
    if (
        top.rating > STAT_RATING
        and top.view_count >= STAT_VIEWS
        and top.rating - STAT_BAND * top.sigma > second.rating + STAT_BAND * second.sigma
    ):
        return EliteType.STAT
    return EliteType.NONE


class SessionStateMachine:
    """
    Evaluates stop conditions and status changes for a session.

    Freezing or eliminating an item changes the active set, so the check list
    is re-run from the top until a pass makes no status change. Each change
    shrinks the active set, which bounds the loop by the item count.
    """

    def __init__(self) -> None:
        self.logger = get_logger("session")

    def evaluate(self, state: SessionState, registry: ItemRegistry) -> str | None:
        """
        Run the check list until it settles.

        Returns:
            Finish reason if the session should end, otherwise None
        """
        for _ in range(len(registry) + 1):
            active = registry.active()

            if len(active) < 2:
                return REASON_INSUFFICIENT

            if self._pass_exhausted(state):
                return REASON_PASS_EXHAUSTION

            self._update_phase(state, active)

            active.sort(key=lambda item: item.rating, reverse=True)

            elite_type = classify_elite(active[0], active[1])
            if elite_type is not EliteType.NONE:
                top = active[0]
                top.freeze(elite_type)
                state.stalemate_counter = 0
                self.logger.info(f"Elite freeze: {top.item_id} as {elite_type.value} (rating {top.rating:.1f}, σ {top.sigma:.1f})")
                continue

            changed = self._prune(state, active)
            changed = self._resolve_stagnant(state, active) or changed
            if changed:
                continue

            return self._finish_condition(state, active)

        return self._finish_condition(state, registry.active())

    def track_choice(
        self,
        state: SessionState,
        registry: ItemRegistry,
        group: Sequence[ImageItem],
        winner_id: str,
    ) -> None:
        """Count precision-phase choices and break a stalemate once it runs too long."""
        if state.phase is not Phase.PRECISION:
            return
        state.stalemate_counter += 1
        if state.stalemate_counter > STALEMATE_LIMIT:
            self.break_stalemate(state, registry, group, winner_id)

    def break_stalemate(
        self,
        state: SessionState,
        registry: ItemRegistry,
        group: Sequence[ImageItem],
        winner_id: str,
    ) -> None:
        """Force a resolution on the weakest live-rated member of the displayed group."""
        members = [registry.get(item.item_id) for item in group if item.item_id in registry]
        if not members:
            return
        weakest = min(members, key=lambda item: item.rating)
        if weakest.item_id == winner_id or not weakest.is_active:
            return

        if weakest.rating >= STALEMATE_FREEZE_RATING:
            weakest.freeze(EliteType.STAT)
            self.logger.info(f"Stalemate broken: froze {weakest.item_id} (rating {weakest.rating:.1f})")
        else:
            weakest.eliminate()
            self.logger.info(f"Stalemate broken: eliminated {weakest.item_id} (rating {weakest.rating:.1f})")
        state.stalemate_counter = 0

    def progress(self, state: SessionState, registry: ItemRegistry) -> int:
        """Percentage of the initial uncertainty mass resolved so far."""
        active = registry.active()
        if not active:
            return 100
        if state.initial_uncertainty_mass <= 0:
            return 0
        remaining = sum(item.sigma for item in active)
        progress = math.floor((1.0 - remaining / state.initial_uncertainty_mass) * 100)
        return max(0, min(100, progress))

    def _pass_exhausted(self, state: SessionState) -> bool:
        if len(state.action_log) <= PASS_WINDOW:
            return False
        recent = state.action_log[-PASS_WINDOW:]
        return sum(1 for entry in recent if entry.is_pass) >= PASS_WINDOW_LIMIT

    def _update_phase(self, state: SessionState, active: Sequence[ImageItem]) -> None:
        if not state.phase_locked:
            unstable = sum(1 for item in active if item.sigma > UNSTABLE_SIGMA_THRESHOLD)
            if unstable / len(active) <= UNSTABLE_RATIO_BORDER:
                state.phase_locked = True
                self.logger.info(f"Phase locked to precision ({unstable}/{len(active)} unstable)")
        state.phase = Phase.PRECISION if state.phase_locked else Phase.EXPLORATION

    def _prune(self, state: SessionState, active: Sequence[ImageItem]) -> bool:
        pruned = [item for item in active if item.view_count >= PRUNE_VIEWS and item.rating <= PRUNE_RATING]
        for item in pruned:
            item.eliminate()
        if pruned:
            state.stalemate_counter = 0
            self.logger.info(f"Pruned low-rated items: {[item.item_id for item in pruned]}")
        return bool(pruned)

    def _resolve_stagnant(self, state: SessionState, active: Sequence[ImageItem]) -> bool:
        changed = False
        for item in active:
            if not item.is_active or item.view_count < STAGNATION_VIEWS:
                continue
            if item.rating >= STAGNATION_RATING:
                item.freeze(EliteType.STAT)
                self.logger.info(f"Stagnant item frozen: {item.item_id} (rating {item.rating:.1f})")
            else:
                item.eliminate()
                self.logger.info(f"Stagnant item eliminated: {item.item_id} (rating {item.rating:.1f})")
            changed = True
        if changed:
            state.stalemate_counter = 0
        return changed

    def _finish_condition(self, state: SessionState, active: Sequence[ImageItem]) -> str | None:
        if len(active) < 2:
            return REASON_INSUFFICIENT

        ratings = [item.rating for item in active]
        if len(active) <= SIMILARITY_MAX_ACTIVE:
            mean_views = sum(item.view_count for item in active) / len(active)
            if mean_views >= SIMILARITY_MIN_VIEWS and max(ratings) - min(ratings) < SIMILARITY_SPREAD:
                return REASON_SIMILARITY

        if (
            state.phase is Phase.PRECISION
            and len(active) > 2
            and max(item.sigma for item in active) < CONVERGENCE_SIGMA
        ):
            return REASON_CONVERGENCE

        return None
