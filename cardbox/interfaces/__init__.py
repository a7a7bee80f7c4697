"""Interface layer for CardBox.

Packages under ``cardbox.interfaces`` expose boundary adapters such as CLI
commands.
"""

from . import cli

__all__ = ["cli"]
