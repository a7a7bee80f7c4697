"""Service layer modules for CardBox."""

from .card_analysis import CardAnalysisService  # noqa: F401

__all__ = ["CardAnalysisService"]
