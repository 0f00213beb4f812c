"""
Storage implementations.

Provides implementations of the Storage interface for recording a ranking run.

Available implementations:
- JSONLStorage: Appends decisions to JSONL and writes results to JSON
"""

from .jsonl_storage import JSONLStorage

__all__ = ["JSONLStorage"]
