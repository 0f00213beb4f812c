"""
Final ranking and tiering.

Orders every item by effective rating (rating - sigma) and buckets it into
S/A/B/C/D tiers. Effective rating is never used while the session runs.
"""

import math
from collections.abc import Sequence

import numpy as np

from .interfaces import ItemResult, ResultsState
from .models import RATING_BASE, ImageItem, ItemStatus

MATCH_SCALE = 400.0

# (tier, minimum effective rating), highest first
TIERS: tuple[tuple[str, float], ...] = (
    ("S", 1650.0),
    ("A", 1550.0),
    ("B", 1450.0),
    ("C", 1350.0),
    ("D", -math.inf),
)


def tier_for(effective_rating: float) -> str:
    for tier, minimum in TIERS:
        if effective_rating >= minimum:
            return tier
    return TIERS[-1][0]


def match_probability(rating: float) -> int:
    """Chance, in percent, that an item at ``rating`` beats a fresh item."""
    p = 1.0 / (1.0 + math.pow(10.0, (RATING_BASE - rating) / MATCH_SCALE))
    return round(p * 100)


def rank_items(items: Sequence[ImageItem]) -> list[ItemResult]:
    """Rank active, frozen and eliminated items together by effective rating."""
    ordered = sorted(items, key=lambda item: item.effective_rating, reverse=True)
    return [
        ItemResult(
            rank=rank,
            item_id=item.item_id,
            name=item.name,
            image_ref=item.image_ref,
            rating=item.rating,
            sigma=item.sigma,
            effective_rating=item.effective_rating,
            tier=tier_for(item.effective_rating),
            status=item.status.value,
            elite_type=item.elite_type.value,
            view_count=item.view_count,
            wins=item.wins,
            match_probability=match_probability(item.rating),
        )
        for rank, item in enumerate(ordered, 1)
    ]


def summarize(items: Sequence[ImageItem]) -> dict[str, float]:
    """Aggregate statistics shown next to the final ranking."""
    if not items:
        return {"items": 0.0}

    ratings = np.array([item.rating for item in items], dtype=float)
    sigmas = np.array([item.sigma for item in items], dtype=float)
    views = np.array([item.view_count for item in items], dtype=float)

    summary = {
        "items": float(len(items)),
        "mean_rating": float(np.mean(ratings)),
        "rating_spread": float(np.ptp(ratings)),
        "mean_sigma": float(np.mean(sigmas)),
        "mean_views": float(np.mean(views)),
    }
    for status in ItemStatus:
        summary[f"{status.value}_count"] = float(sum(1 for item in items if item.status is status))
    tiers = np.array([tier_for(e) for e in ratings - sigmas])
    for tier, _ in TIERS:
        summary[f"tier_{tier}"] = float(np.count_nonzero(tiers == tier))
    return summary


def build_results(finish_reason: str, total_actions: int, items: Sequence[ImageItem]) -> ResultsState:
    return ResultsState(
        finish_reason=finish_reason,
        total_actions=total_actions,
        ranking=rank_items(items),
        summary=summarize(items),
    )
