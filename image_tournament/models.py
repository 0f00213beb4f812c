"""
Core dataclasses for the image tournament system.

Defines ImageSource, ImageItem, action log entries and chooser decisions
with validation.
"""

import time
from dataclasses import dataclass, field
from enum import Enum

from .exceptions import ValidationError

RATING_BASE = 1500.0
SIGMA_INIT = 150.0
SIGMA_MIN = 5.0


class ItemStatus(str, Enum):
    """Lifecycle of an item within one session. Only leaves ACTIVE."""

    ACTIVE = "active"
    FROZEN = "frozen"
    ELIMINATED = "eliminated"


class EliteType(str, Enum):
    """Confidence tier attached to an item when it is frozen."""

    NONE = "none"
    GOD = "god"
    STRONG = "strong"
    STAT = "stat"


class Phase(str, Enum):
    EXPLORATION = "exploration"
    PRECISION = "precision"


class SessionStatus(str, Enum):
    """Where the host is: before, during or after a ranking session."""

    IDLE = "idle"
    RUNNING = "running"
    FINISHED = "finished"


@dataclass
class ImageSource:
    """An image as handed over by the host. Treated as a black box."""

    item_id: str
    name: str
    image_ref: str
    timestamp: float = field(default_factory=time.time)

    def __post_init__(self) -> None:
        """Validate source data."""
        if not self.item_id:
            raise ValidationError("item_id cannot be empty")
        if not self.image_ref:
            raise ValidationError("image_ref cannot be empty")


@dataclass
class ImageItem:
    """One image under ranking together with its mutable rating state."""

    item_id: str
    name: str
    image_ref: str
    rating: float = RATING_BASE
    sigma: float = SIGMA_INIT
    view_count: int = 0
    pass_count: int = 0
    wins: int = 0
    status: ItemStatus = ItemStatus.ACTIVE
    elite_type: EliteType = EliteType.NONE

    @classmethod
    def from_source(cls, source: ImageSource) -> "ImageItem":
        return cls(item_id=source.item_id, name=source.name, image_ref=source.image_ref)

    @property
    def is_active(self) -> bool:
        return self.status is ItemStatus.ACTIVE

    @property
    def effective_rating(self) -> float:
        """Conservative rating used only for the final ordering."""
        return self.rating - self.sigma

    def reset(self) -> None:
        """Return to the pre-session defaults."""
        self.rating = RATING_BASE
        self.sigma = SIGMA_INIT
        self.view_count = 0
        self.pass_count = 0
        self.wins = 0
        self.status = ItemStatus.ACTIVE
        self.elite_type = EliteType.NONE

    def clamp_sigma(self) -> None:
        self.sigma = max(self.sigma, SIGMA_MIN)

    def freeze(self, elite_type: EliteType) -> None:
        if not self.is_active:
            raise ValidationError(f"Cannot freeze {self.item_id}: status is {self.status.value}")
        self.status = ItemStatus.FROZEN
        self.elite_type = elite_type

    def eliminate(self) -> None:
        if not self.is_active:
            raise ValidationError(f"Cannot eliminate {self.item_id}: status is {self.status.value}")
        self.status = ItemStatus.ELIMINATED


@dataclass(frozen=True)
class ActionEntry:
    """One logged action: a win for ``item_id`` or a pass (``item_id`` is None)."""

    kind: str
    item_id: str | None = None

    def __post_init__(self) -> None:
        if self.kind not in ("win", "pass"):
            raise ValidationError(f"Unknown action kind: {self.kind}")
        if self.kind == "win" and not self.item_id:
            raise ValidationError("win action requires an item_id")

    @classmethod
    def win(cls, item_id: str) -> "ActionEntry":
        return cls(kind="win", item_id=item_id)

    @classmethod
    def skip(cls) -> "ActionEntry":
        return cls(kind="pass")

    @property
    def is_pass(self) -> bool:
        return self.kind == "pass"


class DecisionAction(str, Enum):
    CHOOSE = "choose"
    SKIP = "skip"
    UNDO = "undo"
    FINISH = "finish"


@dataclass
class Decision:
    """What a chooser wants to do with the group it was shown."""

    action: DecisionAction
    winner_id: str | None = None
    rationale: str = ""
    timestamp: float = field(default_factory=time.time)
    chooser_id: str = "unknown"

    def __post_init__(self) -> None:
        """Validate decision data."""
        if self.action is DecisionAction.CHOOSE and not self.winner_id:
            raise ValidationError("choose decision requires a winner_id")
        if self.action is not DecisionAction.CHOOSE and self.winner_id is not None:
            raise ValidationError(f"{self.action.value} decision cannot carry a winner_id")
