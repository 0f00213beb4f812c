"""
History manager for exact undo.

Every entry is a settled point between cycles: a full copy of the items and
of the session counters taken before a mutating action.
"""

from dataclasses import dataclass

from .logging_config import get_logger
from .models import ActionEntry, ImageItem, Phase
from .registry import ItemRegistry
from .session import SessionState

logger = get_logger("history")


@dataclass(frozen=True)
class HistoryEntry:
    """Immutable copy of all mutable session and item state."""

    items: tuple[ImageItem, ...]
    action_log: tuple[ActionEntry, ...]
    phase: Phase
    phase_locked: bool
    global_pass_streak: int
    stalemate_counter: int
    last_winner_id: str | None
    total_actions: int


class HistoryManager:
    """Owns the undo stack. Entries never alias live state."""

    def __init__(self) -> None:
        self._stack = list[HistoryEntry]()

    def __len__(self) -> int:
        return len(self._stack)

    @property
    def can_undo(self) -> bool:
        return bool(self._stack)

    def clear(self) -> None:
        self._stack.clear()

    def snapshot(self, state: SessionState, registry: ItemRegistry) -> None:
        """Push a copy of the current state."""
        self._stack.append(
            HistoryEntry(
                items=registry.snapshot(),
                action_log=tuple(state.action_log),
                phase=state.phase,
                phase_locked=state.phase_locked,
                global_pass_streak=state.global_pass_streak,
                stalemate_counter=state.stalemate_counter,
                last_winner_id=state.last_winner_id,
                total_actions=state.total_actions,
            )
        )
        logger.debug(f"Snapshot pushed at action {state.total_actions}, depth {len(self._stack)}")

    def undo(self, state: SessionState, registry: ItemRegistry) -> bool:
        """
        Restore the newest entry into ``state`` and ``registry``.

        Returns:
            False if there was nothing to undo
        """
        if not self._stack:
            logger.debug("Undo requested with empty history")
            return False

        entry = self._stack.pop()
        registry.restore(entry.items)
        state.action_log = list(entry.action_log)
        state.phase = entry.phase
        state.phase_locked = entry.phase_locked
        state.global_pass_streak = entry.global_pass_streak
        state.stalemate_counter = entry.stalemate_counter
        state.last_winner_id = entry.last_winner_id
        state.total_actions = entry.total_actions
        logger.info(f"Undo restored state at action {entry.total_actions}")
        return True
