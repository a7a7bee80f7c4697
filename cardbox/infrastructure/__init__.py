"""Infrastructure layer for CardBox.

Holds the image recognizers and the observability adapters.
"""

from . import ai, observability

__all__ = ["ai", "observability"]
