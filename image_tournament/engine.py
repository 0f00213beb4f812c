"""
Ranking engine.

Boundary object the host talks to. Wires registry, selector, ranker, session
state machine and history together and exposes the session operations plus
read-only accessors. Accessors hand out copies, never internal containers.
"""

import dataclasses
import random
import time
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .exceptions import InvalidActionError
from .group_selectors.adaptive_selector import AdaptiveSelector
from .history import HistoryManager
from .interfaces import ItemResult, ResultsState, Selector
from .logging_config import get_logger
from .models import SIGMA_INIT, ImageItem, ImageSource, Phase, SessionStatus
from .rankers.elo_ranker import EloRanker
from .registry import ItemRegistry
from .results import build_results, rank_items
from .session import (
    GLOBAL_PASS_LIMIT,
    REASON_INSUFFICIENT,
    REASON_MANUAL,
    REASON_REPEATED_SKIP,
    SessionState,
    SessionStateMachine,
)


@dataclass
class EngineConfig:
    """Configuration for the ranking engine."""

    finish_delay: float = 0.0  # seconds between ending a session and exposing results
    seed: int | None = None  # seeds the selector's random source

    def __post_init__(self):
        """Validate configuration."""
        if self.finish_delay < 0:
            raise ValueError(f"finish_delay must be non-negative, got {self.finish_delay}")


class RankingEngine:
    """Single-session ranking engine driven by choices, skips and undo."""

    def __init__(
        self,
        config: EngineConfig | None = None,
        selector: Selector | None = None,
        ranker: EloRanker | None = None,
    ):
        """Initialize the engine with an empty registry."""
        self.config: EngineConfig = config or EngineConfig()
        self.selector: Selector = selector or AdaptiveSelector(random.Random(self.config.seed))
        self.ranker: EloRanker = ranker or EloRanker()

        self._registry = ItemRegistry()
        self._state = SessionState()
        self._machine = SessionStateMachine()
        self._history = HistoryManager()

        self._group = list[str]()
        self._status: SessionStatus = SessionStatus.IDLE
        self._results_ready: bool = False

        self.logger: Logger = get_logger("engine")

    # === Item management ===

    def initialize_items(self, sources: Iterable[ImageSource]) -> None:
        """(Re)populate the registry. All stats start at their defaults."""
        self._require_not_running("initialize_items")
        self._registry.initialize(sources)
        self._status = SessionStatus.IDLE
        self._group = []
        self._history.clear()
        self._state.reset()
        self._results_ready = False

    def add_item(self, source: ImageSource) -> None:
        self._require_not_running("add_item")
        _ = self._registry.add(source)

    def remove_item(self, item_id: str) -> None:
        self._require_not_running("remove_item")
        self._registry.remove(item_id)

    def clear_items(self) -> None:
        self._require_not_running("clear_items")
        self._registry.clear()

    # === Session operations ===

    def start_session(self) -> None:
        """Reset every counter and item, enter exploration and present the first group."""
        if len(self._registry) < 2:
            raise InvalidActionError(f"At least 2 items are required to start, got {len(self._registry)}")

        self._registry.reset_stats()
        self._state.reset(initial_uncertainty_mass=len(self._registry) * SIGMA_INIT)
        self._history.clear()
        self._group = []
        self._status = SessionStatus.RUNNING
        self._results_ready = False

        self.logger.info(f"Session started with {len(self._registry)} items")
        self._settle()

    def record_choice(self, winner_id: str) -> None:
        """Record ``winner_id`` as the preferred member of the current group."""
        self._require_running("record_choice")
        if winner_id not in self._group:
            raise InvalidActionError(f"{winner_id} is not in the current group {self._group}")

        self._history.snapshot(self._state, self._registry)
        self._state.log_win(winner_id)

        group = [self._registry.get(item_id) for item_id in self._group]
        winner = self._registry.get(winner_id)
        self.ranker.apply_choice(winner, group)
        self._machine.track_choice(self._state, self._registry, group, winner_id)

        self.logger.debug(f"Action {self._state.total_actions}: chose {winner_id} from {self._group}")
        self._settle()

    def record_skip(self) -> None:
        """Skip the current group as a whole."""
        self._require_running("record_skip")

        self._history.snapshot(self._state, self._registry)
        self._state.log_pass()

        group = [self._registry.get(item_id) for item_id in self._group]
        _ = self.ranker.apply_skip(group)

        self.logger.debug(
            f"Action {self._state.total_actions}: skipped {self._group} (streak {self._state.global_pass_streak})"
        )
        if self._state.global_pass_streak >= GLOBAL_PASS_LIMIT:
            self._finish(REASON_REPEATED_SKIP)
            return
        self._settle()

    def undo_last(self) -> bool:
        """
        Restore the state before the last choice or skip.

        Undo also reopens a session that has just finished.

        Returns:
            False (and no effect) if there is no history
        """
        if self._status is SessionStatus.IDLE or not self._history.can_undo:
            return False

        _ = self._history.undo(self._state, self._registry)
        self._status = SessionStatus.RUNNING
        self._state.finish_reason = SessionState().finish_reason
        self._results_ready = False
        self._next_group()
        return True

    def request_early_finish(self) -> bool:
        """
        End the session now with the ranking learned so far.

        Returns:
            False if no item has been viewed yet
        """
        self._require_running("request_early_finish")
        if all(item.view_count == 0 for item in self._registry):
            self.logger.info("Early finish declined: nothing has been viewed yet")
            return False
        self._finish(REASON_MANUAL)
        return True

    def quit_session(self) -> None:
        """Abandon the session and return to the pre-session state."""
        self._history.clear()
        self._state.reset()
        self._registry.reset_stats()
        self._group = []
        self._status = SessionStatus.IDLE
        self._results_ready = False
        self.logger.info("Session abandoned")

    # === Accessors ===

    @property
    def status(self) -> SessionStatus:
        return self._status

    @property
    def current_group(self) -> list[ImageItem]:
        return [dataclasses.replace(self._registry.get(item_id)) for item_id in self._group]

    @property
    def phase(self) -> Phase:
        return self._state.phase

    @property
    def progress(self) -> int:
        return self._machine.progress(self._state, self._registry)

    @property
    def active_count(self) -> int:
        return len(self._registry.active())

    @property
    def frozen_count(self) -> int:
        return len(self._registry.frozen())

    @property
    def eliminated_count(self) -> int:
        return len(self._registry.eliminated())

    @property
    def global_pass_streak(self) -> int:
        return self._state.global_pass_streak

    @property
    def stalemate_counter(self) -> int:
        return self._state.stalemate_counter

    @property
    def total_actions(self) -> int:
        return self._state.total_actions

    @property
    def finish_reason(self) -> str:
        return self._state.finish_reason

    @property
    def can_undo(self) -> bool:
        return self._history.can_undo

    @property
    def results_ready(self) -> bool:
        return self._results_ready

    def items(self) -> list[ImageItem]:
        return list(self._registry.snapshot())

    def get_item(self, item_id: str) -> ImageItem:
        return dataclasses.replace(self._registry.get(item_id))

    def final_ranking(self) -> list[ItemResult]:
        """All items, whatever their status, ordered by rating - sigma."""
        return rank_items(self._registry.all())

    def results(self) -> ResultsState:
        return build_results(self._state.finish_reason, self._state.total_actions, self._registry.all())

    # === Internals ===

    def _require_running(self, operation: str) -> None:
        if self._status is not SessionStatus.RUNNING:
            raise InvalidActionError(f"{operation} requires a running session (status: {self._status.value})")

    def _require_not_running(self, operation: str) -> None:
        if self._status is SessionStatus.RUNNING:
            raise InvalidActionError(f"{operation} is not allowed while a session is running")

    def _settle(self) -> None:
        """Run the state machine, then either finish or present the next group."""
        reason = self._machine.evaluate(self._state, self._registry)
        if reason is not None:
            self._finish(reason)
            return
        self._next_group()

    def _next_group(self) -> None:
        group = self.selector.select_group(
            self._registry.active(), self._state.phase, self._state.last_winner_id
        )
        if group is None:
            self._finish(REASON_INSUFFICIENT)
            return
        self._group = [item.item_id for item in group]

    def _finish(self, reason: str) -> None:
        self._state.finish_reason = reason
        self._status = SessionStatus.FINISHED
        self._group = []
        self.logger.info(
            f"Session finished after {self._state.total_actions} actions: {reason} "
            f"(active {self.active_count}, frozen {self.frozen_count}, eliminated {self.eliminated_count})"
        )
        if self.config.finish_delay > 0:
            time.sleep(self.config.finish_delay)
        self._results_ready = True
