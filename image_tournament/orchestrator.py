"""
Orchestrator for an image ranking run.

Coordinates fetcher, chooser, storage and the ranking engine: loads the
images, presents groups to the chooser until the engine ends the session or
the action budget runs out, and records every decision.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from loguru import Logger

from .engine import RankingEngine
from .exceptions import ChooserError, InvalidActionError
from .interfaces import Chooser, DecisionRecord, ImageFetcher, ItemResult, Storage
from .logging_config import get_logger
from .models import Decision, DecisionAction, ImageItem, SessionStatus

# Constants for failure threshold logic
EARLY_ABORT_THRESHOLD = 4      # Abort if 100% of first 4 decisions fail
LATE_ABORT_THRESHOLD = 50     # Only check failure rate after 50+ decisions
FAILURE_RATE_LIMIT = 0.2      # Abort if >20% failure rate after threshold


@dataclass
class RunConfig:
    """Configuration for a ranking run."""

    budget: int = 500  # maximum choices + skips before finishing early
    progress_every: int = 10  # print progress every N actions

    def __post_init__(self):
        """Validate configuration."""
        if self.budget <= 0:
            raise ValueError(f"budget must be positive, got {self.budget}")
        if self.progress_every <= 0:
            raise ValueError(f"progress_every must be positive, got {self.progress_every}")


class Orchestrator:
    """Drives one ranking session from a chooser."""

    def __init__(
        self,
        fetcher: ImageFetcher,
        chooser: Chooser,
        storage: Storage,
        engine: RankingEngine,
        config: RunConfig,
    ):
        """Initialize orchestrator with all components."""
        self.fetcher: ImageFetcher = fetcher
        self.chooser: Chooser = chooser
        self.storage: Storage = storage
        self.engine: RankingEngine = engine
        self.config: RunConfig = config

        # Exception tolerance tracking
        self.total_decisions: int = 0  # Total attempted (including failures)
        self.failed_decisions: int = 0
        self.failure_log = list[tuple[list[str], str, str]]()  # (group ids, exception type, message)

        self.logger: Logger = get_logger("orchestrator")

    def run(self) -> list[ItemResult]:
        """Run a full session and return the final ranking."""
        self.logger.info(f"Starting image tournament with config: {self.config}")
        print(f"Starting image tournament with config: {self.config}")

        sources = list(self.fetcher.list_images())
        self.logger.info(f"Loaded {len(sources)} images for ranking")

        self.engine.initialize_items(sources)
        self.engine.start_session()

        while self.engine.status is SessionStatus.RUNNING:
            if self.engine.total_actions >= self.config.budget:
                self.logger.info(f"Budget of {self.config.budget} actions exhausted, finishing early")
                _ = self.engine.request_early_finish()
                break

            group = self.engine.current_group
            actions_before = self.engine.total_actions
            try:
                decision = self.chooser.choose(group)
                self._apply(decision, group)
                self.total_decisions += 1
            except (ChooserError, InvalidActionError) as e:
                self._record_failure(group, e)
                continue

            if (
                self.engine.total_actions != actions_before
                and self.engine.total_actions % self.config.progress_every == 0
            ):
                self._print_progress()

        results = self.engine.results()
        self.storage.save_results(results)

        self.logger.info(f"Tournament complete: {results['finish_reason']} after {results['total_actions']} actions")
        print(f"Tournament complete: {results['finish_reason']} after {results['total_actions']} actions")
        return results["ranking"]

    def _apply(self, decision: Decision, group: list[ImageItem]) -> None:
        """Forward one decision to the engine and record it."""
        if decision.action is DecisionAction.CHOOSE:
            assert decision.winner_id is not None
            self.engine.record_choice(decision.winner_id)
        elif decision.action is DecisionAction.SKIP:
            self.engine.record_skip()
        elif decision.action is DecisionAction.UNDO:
            if not self.engine.undo_last():
                self.logger.info("Nothing to undo")
        elif decision.action is DecisionAction.FINISH:
            if not self.engine.request_early_finish():
                print("Nothing has been compared yet")

        record: DecisionRecord = {
            "action": decision.action.value,
            "winner_id": decision.winner_id,
            "group_ids": [item.item_id for item in group],
            "rationale": decision.rationale,
            "timestamp": decision.timestamp,
            "chooser_id": decision.chooser_id,
            "total_actions": self.engine.total_actions,
        }
        self.storage.persist_decision(record)

    def _record_failure(self, group: list[ImageItem], error: Exception) -> None:
        group_ids = [item.item_id for item in group]
        self.logger.error(f"Decision failed for group {group_ids}: {error}")
        self.failed_decisions += 1
        self.total_decisions += 1
        self.failure_log.append((group_ids, type(error).__name__, str(error)))

        if self.total_decisions >= EARLY_ABORT_THRESHOLD and self.failed_decisions == self.total_decisions:
            raise RuntimeError(f"100% failure rate in first {EARLY_ABORT_THRESHOLD} decisions - aborting")

        if self.total_decisions >= LATE_ABORT_THRESHOLD:
            failure_rate = self.failed_decisions / self.total_decisions
            if failure_rate > FAILURE_RATE_LIMIT:
                raise RuntimeError(f"Failure rate {failure_rate:.1%} exceeds {FAILURE_RATE_LIMIT:.0%} threshold - aborting")

    def _print_progress(self) -> None:
        """Print progress."""
        self.logger.info(
            f"Progress: {self.engine.progress}% after {self.engine.total_actions} actions, "
            f"phase {self.engine.phase.value}, {self.engine.active_count} active, {self.engine.frozen_count} frozen"
        )
        print(
            f"Progress: {self.engine.progress}% | actions {self.engine.total_actions} | "
            f"phase {self.engine.phase.value} | active {self.engine.active_count} | frozen {self.engine.frozen_count}"
        )
