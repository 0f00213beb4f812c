"""
Tests for AdaptiveSelector implementation.

Focus on group size, pivot choice, rematch avoidance and reproducibility.
"""

import random

from image_tournament.group_selectors.adaptive_selector import AdaptiveSelector, pivot_score
from image_tournament.models import ImageItem, Phase


def make_item(item_id: str, rating: float = 1500.0, sigma: float = 150.0) -> ImageItem:
    return ImageItem(item_id=item_id, name=f"{item_id}.png", image_ref=f"/images/{item_id}.png", rating=rating, sigma=sigma)


def make_pool(count: int) -> list[ImageItem]:
    return [make_item(f"img_{i:02d}", rating=1500.0 + i) for i in range(count)]


class TestAdaptiveSelector:
    """Test AdaptiveSelector behavior through public interface."""

    def test_returns_none_with_fewer_than_two_active(self) -> None:
        selector = AdaptiveSelector(random.Random(0))

        assert selector.select_group([], Phase.EXPLORATION, None) is None
        assert selector.select_group([make_item("solo")], Phase.PRECISION, None) is None

    def test_exploration_group_has_six_distinct_members_including_pivot(self) -> None:
        """Exploration groups are 6-way and always contain the top-scored item."""
        # Arrange
        selector = AdaptiveSelector(random.Random(1))
        pool = make_pool(10)
        pivot = max(pool, key=pivot_score)

        # Act
        group = selector.select_group(pool, Phase.EXPLORATION, None)

        # Assert
        assert group is not None
        assert len(group) == 6
        assert len({item.item_id for item in group}) == 6, "Members should be distinct"
        assert pivot in group, "Pivot should always be selected"

    def test_precision_group_has_four_members(self) -> None:
        selector = AdaptiveSelector(random.Random(2))

        group = selector.select_group(make_pool(10), Phase.PRECISION, None)

        assert group is not None
        assert len(group) == 4

    def test_group_size_clamped_to_active_count(self) -> None:
        selector = AdaptiveSelector(random.Random(3))

        group = selector.select_group(make_pool(3), Phase.EXPLORATION, None)

        assert group is not None
        assert len(group) == 3

    def test_precision_selects_closest_ratings_to_pivot(self) -> None:
        """Precision fills the group with the nearest-rated rivals."""
        # Arrange
        selector = AdaptiveSelector(random.Random(4))
        pool = [
            make_item("a", rating=1600.0, sigma=10.0),
            make_item("b", rating=1590.0, sigma=10.0),
            make_item("c", rating=1500.0, sigma=10.0),
            make_item("d", rating=1400.0, sigma=10.0),
            make_item("e", rating=1580.0, sigma=10.0),
            make_item("f", rating=1200.0, sigma=10.0),
        ]

        # Act
        group = selector.select_group(pool, Phase.PRECISION, None)

        # Assert
        assert group is not None
        assert {item.item_id for item in group} == {"a", "b", "e", "c"}

    def test_excludes_last_winner_when_pool_is_large_enough(self) -> None:
        """The previous winner sits out while enough other items remain."""
        # Arrange
        pool = [
            make_item("a", rating=1600.0, sigma=10.0),
            make_item("b", rating=1590.0, sigma=10.0),
            make_item("c", rating=1500.0, sigma=10.0),
            make_item("d", rating=1400.0, sigma=10.0),
            make_item("e", rating=1580.0, sigma=10.0),
            make_item("f", rating=1200.0, sigma=10.0),
        ]

        for seed in range(10):
            selector = AdaptiveSelector(random.Random(seed))

            # Act
            group = selector.select_group(pool, Phase.PRECISION, "a")

            # Assert
            assert group is not None
            assert {item.item_id for item in group} == {"b", "e", "c", "d"}

    def test_keeps_last_winner_when_pool_equals_target(self) -> None:
        """With exactly six active items every one of them is shown."""
        selector = AdaptiveSelector(random.Random(5))
        pool = make_pool(6)

        group = selector.select_group(pool, Phase.EXPLORATION, pool[0].item_id)

        assert group is not None
        assert {item.item_id for item in group} == {item.item_id for item in pool}

    def test_same_seed_gives_same_groups(self) -> None:
        """Selection is reproducible for a fixed random source."""
        # Arrange
        pool = make_pool(12)
        first = AdaptiveSelector(random.Random(42))
        second = AdaptiveSelector(random.Random(42))

        # Act
        first_groups = [first.select_group(pool, Phase.EXPLORATION, None) for _ in range(5)]
        second_groups = [second.select_group(pool, Phase.EXPLORATION, None) for _ in range(5)]

        # Assert
        assert first_groups == second_groups
