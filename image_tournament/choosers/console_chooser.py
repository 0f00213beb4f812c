"""
Console chooser implementation.

Asks a person at the terminal to pick a favourite. Keys: 1-6 choose,
p/0/space skip, u/backspace undo, f or an empty line finishes.
"""

from collections.abc import Callable, Sequence

from typing_extensions import override

from ..exceptions import ChooserError
from ..interfaces import Chooser
from ..logging_config import get_logger
from ..models import Decision, DecisionAction, ImageItem

SKIP_KEYS = frozenset({"p", "0", " "})
UNDO_KEYS = frozenset({"u", "backspace"})
FINISH_KEYS = frozenset({"f", "enter", ""})


class ConsoleChooser(Chooser):
    """Interactive chooser reading one line per decision."""

    def __init__(
        self,
        input_fn: Callable[[str], str] = input,
        output_fn: Callable[[str], None] = print,
    ):
        self.input_fn = input_fn
        self.output_fn = output_fn
        self.chooser_id = "console"
        self.logger = get_logger("console_chooser")

    def _render(self, group: Sequence[ImageItem]) -> None:
        self.output_fn("")
        for index, item in enumerate(group, 1):
            self.output_fn(f"  [{index}] {item.name}  ({item.image_ref})")
        self.output_fn("  [p] skip   [u] undo   [f] finish")

    def parse(self, raw: str, group: Sequence[ImageItem]) -> Decision | None:
        """Translate one line of input into a decision, or None if it is not a valid key."""
        key = raw if raw == " " else raw.strip().lower()
        if key in SKIP_KEYS:
            return Decision(action=DecisionAction.SKIP, chooser_id=self.chooser_id)
        if key in UNDO_KEYS:
            return Decision(action=DecisionAction.UNDO, chooser_id=self.chooser_id)
        if key in FINISH_KEYS:
            return Decision(action=DecisionAction.FINISH, chooser_id=self.chooser_id)
        if key.isdigit() and 1 <= int(key) <= len(group):
            winner = group[int(key) - 1]
            return Decision(
                action=DecisionAction.CHOOSE,
                winner_id=winner.item_id,
                rationale=f"Picked {winner.name} at the console",
                chooser_id=self.chooser_id,
            )
        return None

    @override
    def choose(self, group: Sequence[ImageItem]) -> Decision:
        if not group:
            raise ChooserError("Cannot choose from an empty group")

        self._render(group)
        while True:
            try:
                raw = self.input_fn("> ")
            except EOFError as e:
                raise ChooserError("Console input closed") from e
            decision = self.parse(raw, group)
            if decision is not None:
                return decision
            self.logger.debug(f"Ignoring unrecognised input: {raw!r}")
            self.output_fn(f"Unrecognised key {raw.strip()!r}, choose 1-{len(group)}, p, u or f")
