"""
Item registry.

Owns the set of rankable items and their mutable rating state.
"""

import dataclasses
from collections.abc import Iterable, Iterator

from .exceptions import ValidationError
from .logging_config import get_logger
from .models import ImageItem, ImageSource, ItemStatus

logger = get_logger("registry")


class ItemRegistry:
    """Ordered container of ImageItem keyed by item_id."""

    def __init__(self) -> None:
        self._items = dict[str, ImageItem]()

    def __len__(self) -> int:
        return len(self._items)

    def __iter__(self) -> Iterator[ImageItem]:
        return iter(self._items.values())

    def __contains__(self, item_id: object) -> bool:
        return item_id in self._items

    def initialize(self, sources: Iterable[ImageSource]) -> None:
        """Replace the registry content with fresh items built from ``sources``."""
        items = dict[str, ImageItem]()
        for source in sources:
            if source.item_id in items:
                raise ValidationError(f"Duplicate item_id: {source.item_id}")
            items[source.item_id] = ImageItem.from_source(source)
        self._items = items
        logger.info(f"Registry initialized with {len(self._items)} items")

    def add(self, source: ImageSource) -> ImageItem:
        if source.item_id in self._items:
            raise ValidationError(f"Duplicate item_id: {source.item_id}")
        item = ImageItem.from_source(source)
        self._items[item.item_id] = item
        return item

    def remove(self, item_id: str) -> None:
        if item_id not in self._items:
            raise KeyError(f"Item not found: {item_id}")
        del self._items[item_id]

    def clear(self) -> None:
        self._items.clear()

    def reset_stats(self) -> None:
        """Reset every item to default rating, sigma, counters and ACTIVE."""
        for item in self._items.values():
            item.reset()

    def get(self, item_id: str) -> ImageItem:
        if item_id not in self._items:
            raise KeyError(f"Item not found: {item_id}")
        return self._items[item_id]

    def all(self) -> list[ImageItem]:
        return list(self._items.values())

    def with_status(self, status: ItemStatus) -> list[ImageItem]:
        return [item for item in self._items.values() if item.status is status]

    def active(self) -> list[ImageItem]:
        return self.with_status(ItemStatus.ACTIVE)

    def frozen(self) -> list[ImageItem]:
        return self.with_status(ItemStatus.FROZEN)

    def eliminated(self) -> list[ImageItem]:
        return self.with_status(ItemStatus.ELIMINATED)

    def snapshot(self) -> tuple[ImageItem, ...]:
        """Copy every item. ImageItem holds only scalars, so a field copy is a deep copy."""
        return tuple(dataclasses.replace(item) for item in self._items.values())

    def restore(self, items: Iterable[ImageItem]) -> None:
        """Replace live state with copies of ``items``."""
        self._items = {item.item_id: dataclasses.replace(item) for item in items}
