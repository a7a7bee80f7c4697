"""CLI interface for CardBox.

This package is the home for all Click commands. Use the
``cardbox.interfaces.cli`` namespace for imports and module execution.
"""

from .__main__ import cli
from .analyze import analyze, extract
from .brands import brands
from .serve import serve

__all__ = [
    "analyze",
    "brands",
    "cli",
    "extract",
    "serve",
]
