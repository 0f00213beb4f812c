"""
Ranker implementations.

Available implementations:
- EloRanker: Elo-style multi-way updates with annealed learning rate and
  per-item uncertainty decay
"""

from .elo_ranker import EloRanker

__all__ = ["EloRanker"]
