"""
JSONL storage implementation.

Appends decisions to a JSONL file and writes the final ranking to a JSON file.
"""

import json
import typing
from collections.abc import Iterable
from pathlib import Path
from typing import Any

from typing_extensions import override

from ..interfaces import DecisionRecord, ResultsState, Storage
from ..logging_config import get_logger

# Module-level logger
logger = get_logger("jsonl_storage")


class JSONLStorage(Storage):
    """
    JSONL-based storage implementation.

    Uses a JSONL file for decisions (append-only) and a JSON file for results.
    """

    decisions_path: Path
    results_path: Path

    def __init__(self, decisions_path: Path, results_path: Path):
        """
        Initialize JSONL storage.

        Args:
            decisions_path: Path to JSONL file for decisions
            results_path: Path to JSON file for the final ranking
        """
        self.decisions_path = Path(decisions_path)
        self.results_path = Path(results_path)

        # Ensure parent directories exist
        self.decisions_path.parent.mkdir(parents=True, exist_ok=True)
        self.results_path.parent.mkdir(parents=True, exist_ok=True)

        logger.info(f"JSONL storage initialized: decisions={self.decisions_path}, results={self.results_path}")

    @override
    def persist_decision(self, record: DecisionRecord) -> None:
        """Append a decision record to JSONL."""
        logger.debug(f"Persisting decision: {record['action']} {record['winner_id']}")

        with open(self.decisions_path, "a", encoding="utf-8") as f:
            json.dump(record, f, ensure_ascii=False)
            f.write("\n")

    @override
    def load_decisions(self) -> Iterable[DecisionRecord]:
        """Load all persisted decisions from JSONL."""
        if not self.decisions_path.exists():
            return

        with open(self.decisions_path, "r", encoding="utf-8") as f:
            for line in f:
                line = line.strip()
                if not line:
                    continue

                try:
                    data = typing.cast(dict[str, Any], json.loads(line))  # pyright: ignore[reportExplicitAny]

                    assert "action" in data, "Missing required field: action"
                    assert "group_ids" in data, "Missing required field: group_ids"
                    assert isinstance(data["group_ids"], list), "group_ids must be a list"
                    winner_id = data.get("winner_id")
                    assert winner_id is None or isinstance(winner_id, str), "winner_id must be a string or null"

                    yield DecisionRecord(
                        action=typing.cast(str, data["action"]),
                        winner_id=typing.cast(str | None, winner_id),
                        group_ids=typing.cast(list[str], data["group_ids"]),
                        rationale=str(data.get("rationale", "")),
                        timestamp=float(data.get("timestamp", 0.0)),
                        chooser_id=str(data.get("chooser_id", "unknown")),
                        total_actions=int(data.get("total_actions", 0)),
                    )
                except (json.JSONDecodeError, AssertionError) as e:
                    # Skip corrupted or invalid lines
                    logger.warning(f"Skipping invalid JSON line in {self.decisions_path}: {e}")
                    continue

    @override
    def save_results(self, results: ResultsState) -> None:
        """Write the final ranking (overwrites any previous results)."""
        logger.info(f"Saving {len(results['ranking'])} ranked items to {self.results_path}")

        with open(self.results_path, "w", encoding="utf-8") as f:
            json.dump(results, f, indent=2, ensure_ascii=False)

    @override
    def load_results(self) -> ResultsState | None:
        """Load the final ranking from JSON."""
        if not self.results_path.exists():
            logger.debug("No results file exists")
            return None

        try:
            with open(self.results_path, "r", encoding="utf-8") as f:
                data = typing.cast(dict[str, Any], json.load(f))  # pyright: ignore[reportExplicitAny]

            assert "finish_reason" in data, "Missing required field: finish_reason"
            assert "ranking" in data, "Missing required field: ranking"
            assert isinstance(data["ranking"], list), "ranking must be a list"

            return typing.cast(ResultsState, typing.cast(object, data))

        except (json.JSONDecodeError, AssertionError) as e:
            logger.error(f"Failed to load results from {self.results_path}: {e}")
            return None

    def get_decision_count(self) -> int:
        """Get number of stored decisions."""
        if not self.decisions_path.exists():
            return 0

        with open(self.decisions_path, "r", encoding="utf-8") as f:
            return sum(1 for line in f if line.strip())
