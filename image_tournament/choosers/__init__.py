"""
Chooser implementations.
"""

from .console_chooser import ConsoleChooser
from .dummy_chooser import DummyChooser
from .sim_chooser import SimulatedChooser

__all__ = [
    "ConsoleChooser",
    "DummyChooser",
    "SimulatedChooser",
]
