"""Domain layer for CardBox.

Cards and the brand catalogue; pure data and rules with no infrastructure
concerns beyond the analysis result they are drafted from.
"""

from . import brands, models

__all__ = ["brands", "models"]
