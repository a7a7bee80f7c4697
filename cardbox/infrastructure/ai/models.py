"""Value objects shared by the recognizers and the analysis service."""

from __future__ import annotations

from dataclasses import asdict, dataclass, field
from typing import Any


@dataclass(frozen=True)
class DecodedBarcode:
    """A 1D symbol decoded from an image."""

    value: str
    symbology: str
    profile: str  # Name of the decoding profile that found it


@dataclass(frozen=True)
class ScoreBreakdown:
    """Score of one numeric candidate with the components that produced it.

    ``components`` is empty when the candidate was disqualified; the reason
    is kept in ``disqualified_by`` instead.
    """

    candidate: str
    score: int
    components: dict[str, int] = field(default_factory=dict)
    disqualified_by: str | None = None

    @property
    def disqualified(self) -> bool:
        return self.disqualified_by is not None


@dataclass(frozen=True)
class AnalysisResult:
    """Result of analysing one card photograph.

    Created fresh per analysis and never mutated; the caller copies the
    chosen value into a card and discards the result.
    """

    barcodes: tuple[str, ...] = ()
    qrcodes: tuple[str, ...] = ()
    text: str = ""
    numbers: tuple[str, ...] = ()
    success: bool = False
    error: str | None = None
    barcode_format: str | None = None

    @classmethod
    def failure(cls, error: str) -> "AnalysisResult":
        """Result for an analysis that could not run at all."""
        return cls(success=False, error=error)

    @staticmethod
    def is_successful(
        qrcodes: tuple[str, ...],
        barcodes: tuple[str, ...],
        numbers: tuple[str, ...],
        text: str,
    ) -> bool:
        return bool(qrcodes or barcodes or numbers) or len(text) > 10

    @property
    def best_value(self) -> str | None:
        """The value to prefill: QR first, then barcode, then best OCR number."""
        for values in (self.qrcodes, self.barcodes, self.numbers):
            if values:
                return values[0]
        return None

    @property
    def source(self) -> str:
        """Which recognizer produced :attr:`best_value`."""
        if self.error is not None:
            return "failed"
        if self.qrcodes:
            return "qr"
        if self.barcodes:
            return "barcode"
        if self.numbers:
            return "ocr"
        return "none"

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        for key in ("barcodes", "qrcodes", "numbers"):
            data[key] = list(data[key])
        return data


def format_result(result: AnalysisResult) -> str:
    """Render a short human-readable summary of an analysis."""
    parts: list[str] = []

    if result.qrcodes:
        parts.append(f"QR code: {result.qrcodes[0]}")
    if result.barcodes:
        label = f" ({result.barcode_format})" if result.barcode_format else ""
        parts.append(f"Barcode{label}: {result.barcodes[0]}")
    if result.numbers:
        parts.append(f"Number: {result.numbers[0]}")

    if not parts and result.text:
        parts.append(f"Text: {result.text[:50]}...")

    return "\n".join(parts) or "No information detected"
