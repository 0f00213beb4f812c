"""
Selector implementations.

Provides implementations of the Selector interface for choosing which images
to compare next.

Available implementations:
- AdaptiveSelector: Pivot-based selection, random in exploration and
  rating-proximity based in precision
"""

from .adaptive_selector import AdaptiveSelector

__all__ = ["AdaptiveSelector"]
