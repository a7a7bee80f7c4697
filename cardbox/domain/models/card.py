"""Loyalty card domain model."""

from __future__ import annotations

import uuid
from dataclasses import asdict, dataclass, replace
from datetime import datetime, timezone
from typing import Any

from cardbox.domain.brands import Brand
from cardbox.infrastructure.ai.models import AnalysisResult


class CardDraftError(ValueError):
    """Raised when a card cannot be drafted from the given form values."""


@dataclass(frozen=True)
class Card:
    """A loyalty card owned by one user.

    Cards are stored by the persistence service, keyed by ``owner_id``; this
    model only carries the fields and the drafting rules.
    """

    id: str
    name: str
    category: str
    owner_id: str
    created_at: datetime
    brand_id: str | None = None
    logo_url: str | None = None
    card_number: str | None = None
    note: str | None = None
    image_url: str | None = None

    @classmethod
    def draft(
        cls,
        brand: Brand,
        owner_id: str,
        *,
        analysis: AnalysisResult | None = None,
        card_number: str | None = None,
        custom_name: str | None = None,
        note: str | None = None,
    ) -> "Card":
        """Build a new card from the add-card form.

        The number typed by the user always wins over the analysis
        suggestion; the suggestion is the QR payload, else the barcode, else
        the best OCR number.

        Raises:
            CardDraftError: If the owner is missing or a custom brand has no name.
        """
        if not owner_id:
            raise CardDraftError("A card needs an owner")

        name = brand.name
        if brand.is_custom:
            name = (custom_name or "").strip()
            if not name:
                raise CardDraftError("A custom brand needs a name")

        number = (card_number or "").strip()
        if not number and analysis is not None:
            number = analysis.best_value or ""

        return cls(
            id=uuid.uuid4().hex,
            name=name,
            category=brand.category.value,
            owner_id=owner_id,
            created_at=datetime.now(timezone.utc),
            brand_id=brand.id,
            logo_url=brand.logo_url,
            card_number=number or None,
            note=(note or "").strip() or None,
        )

    def with_number(self, card_number: str | None) -> "Card":
        """Return a copy with the number replaced (manual edit)."""
        return replace(self, card_number=(card_number or "").strip() or None)

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        return data
