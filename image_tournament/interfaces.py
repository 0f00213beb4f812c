"""
Abstract base classes defining the interfaces for the image tournament system.

All interfaces are synchronous; the engine runs every operation to completion
before accepting the next one.
"""

from abc import ABC, abstractmethod
from collections.abc import Iterable, Sequence
from typing import TypedDict

from .models import Decision, ImageItem, ImageSource, Phase


class DecisionRecord(TypedDict):
    """TypedDict for one persisted chooser decision."""
    action: str
    winner_id: str | None
    group_ids: list[str]
    rationale: str
    timestamp: float
    chooser_id: str
    total_actions: int


class ItemResult(TypedDict):
    """TypedDict for one row of the final ranking."""
    rank: int
    item_id: str
    name: str
    image_ref: str
    rating: float
    sigma: float
    effective_rating: float
    tier: str
    status: str
    elite_type: str
    view_count: int
    wins: int
    match_probability: int


class ResultsState(TypedDict):
    """TypedDict for the results document written at the end of a run."""
    finish_reason: str
    total_actions: int
    ranking: list[ItemResult]
    summary: dict[str, float]


class ImageFetcher(ABC):
    """Interface for fetching the images to rank."""

    @abstractmethod
    def list_images(self) -> Iterable[ImageSource]:
        """Return all available images."""
        pass

    @abstractmethod
    def get_image(self, item_id: str) -> ImageSource:
        """Get a specific image by ID."""
        pass


class Chooser(ABC):
    """Interface for the party that picks a favourite from each group."""

    @abstractmethod
    def choose(self, group: Sequence[ImageItem]) -> Decision:
        """
        Decide on the presented group.

        May block (e.g. waiting for keyboard input).

        Args:
            group: Items currently presented, in display order

        Returns:
            Decision to choose one member, skip the group, undo or finish
        """
        pass


class Storage(ABC):
    """Interface for persisting the run record."""

    @abstractmethod
    def persist_decision(self, record: DecisionRecord) -> None:
        """Append a decision to the run record."""
        pass

    @abstractmethod
    def load_decisions(self) -> Iterable[DecisionRecord]:
        """Load all persisted decisions."""
        pass

    @abstractmethod
    def save_results(self, results: ResultsState) -> None:
        """Save the final ranking."""
        pass

    @abstractmethod
    def load_results(self) -> ResultsState | None:
        """Load the final ranking, if one was saved."""
        pass


class Selector(ABC):
    """Interface for composing the next comparison group."""

    @abstractmethod
    def select_group(
        self,
        active_items: Sequence[ImageItem],
        phase: Phase,
        last_winner_id: str | None,
    ) -> list[ImageItem] | None:
        """
        Select the next group of items to present.

        Args:
            active_items: Items still taking part in comparisons
            phase: Current session phase
            last_winner_id: Most recently chosen item, if any

        Returns:
            Group in display order, or None if fewer than 2 items are active
        """
        pass
