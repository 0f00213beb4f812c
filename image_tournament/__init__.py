"""
Image Tournament - Adaptive Preference Ranking

Ranks a collection of images by implicit preference using sequential
multi-way comparisons, Elo-style updates with per-item uncertainty, elite
freezing and several independent stopping conditions.
"""

from .models import ImageItem, ImageSource, Decision, ItemStatus, EliteType, Phase, SessionStatus
from .interfaces import ImageFetcher, Chooser, Storage, Selector
from .engine import EngineConfig, RankingEngine
from .orchestrator import Orchestrator, RunConfig

__version__ = "0.1.0"
__all__ = [
    "ImageItem",
    "ImageSource",
    "Decision",
    "ItemStatus",
    "EliteType",
    "Phase",
    "SessionStatus",
    "ImageFetcher",
    "Chooser",
    "Storage",
    "Selector",
    "EngineConfig",
    "RankingEngine",
    "Orchestrator",
    "RunConfig",
]
