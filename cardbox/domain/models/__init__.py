"""Domain models package.

This package contains domain model classes for CardBox.
"""

from .card import Card, CardDraftError

__all__ = ["Card", "CardDraftError"]
