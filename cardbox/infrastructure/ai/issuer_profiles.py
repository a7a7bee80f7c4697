"""Known card numbering schemes that earn a scoring bonus.

Each :class:`IssuerPattern` pairs one or more numeric prefixes with the
total length a real number of that scheme has. A candidate matching both
receives the pattern's bonus; bonuses of several matching patterns add up.

The default table reflects French retail loyalty cards (most are EAN-13
numbers with a ``3`` country prefix or an in-store ``20`` prefix). Deployments
can replace it with a JSON file of the form::

    [
        {"name": "in-store-20", "prefixes": ["20"], "length": 13, "bonus": 10},
        {"name": "house-99", "prefixes": ["99"], "length": 10, "bonus": 40}
    ]
"""

from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Iterable, Sequence


class IssuerProfileError(ValueError):
    """Raised when an issuer table cannot be parsed."""


@dataclass(frozen=True)
class IssuerPattern:
    """A prefix/length scheme with the bonus it earns."""

    name: str
    prefixes: tuple[str, ...]
    length: int
    bonus: int

    def matches(self, candidate: str) -> bool:
        return len(candidate) == self.length and candidate.startswith(self.prefixes)

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "IssuerPattern":
        try:
            name = str(data["name"])
            raw_prefixes = data["prefixes"]
            length = int(data["length"])
            bonus = int(data["bonus"])
        except (KeyError, TypeError, ValueError) as e:
            raise IssuerProfileError(f"Invalid issuer pattern {data!r}: {e}") from e

        if isinstance(raw_prefixes, str):
            raw_prefixes = [raw_prefixes]
        prefixes = tuple(str(p) for p in raw_prefixes)
        if not prefixes or not all(p.isdigit() for p in prefixes):
            raise IssuerProfileError(
                f"Issuer pattern {name!r} needs numeric prefixes, got {raw_prefixes!r}"
            )
        if length <= 0:
            raise IssuerProfileError(f"Issuer pattern {name!r} has invalid length {length}")
        return cls(name=name, prefixes=prefixes, length=length, bonus=bonus)

    def to_dict(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "prefixes": list(self.prefixes),
            "length": self.length,
            "bonus": self.bonus,
        }


NON_ZERO = tuple("123456789")

DEFAULT_ISSUER_PATTERNS: tuple[IssuerPattern, ...] = (
    # EAN-13 shaped numbers not starting with 0
    IssuerPattern("ean13", NON_ZERO, 13, 15),
    # UPC-A shaped numbers not starting with 0
    IssuerPattern("upca", NON_ZERO, 12, 13),
    # EAN-8 numbers from the 3-9 ranges
    IssuerPattern("ean8", tuple("3456789"), 8, 12),
    # GS1 France
    IssuerPattern("ean13-france", ("3",), 13, 12),
    # Restricted-circulation numbers issued by stores
    IssuerPattern("in-store-20", ("20",), 13, 10),
    # Other European GS1 ranges
    IssuerPattern("ean13-europe", ("4", "5", "6"), 13, 8),
    # Long retailer loyalty numbers. Inert while candidates over
    # MAX_CANDIDATE_LENGTH (18) digits are disqualified before bonuses apply.
    IssuerPattern("loyalty-913", ("913",), 19, 40),
)


def matching_patterns(
    candidate: str, patterns: Iterable[IssuerPattern]
) -> list[IssuerPattern]:
    """Return every pattern ``candidate`` matches, in table order."""
    return [p for p in patterns if p.matches(candidate)]


def parse_issuer_patterns(data: Sequence[dict[str, Any]]) -> tuple[IssuerPattern, ...]:
    """Build a pattern table from decoded JSON."""
    if not isinstance(data, list):
        raise IssuerProfileError("Issuer table must be a JSON list")
    return tuple(IssuerPattern.from_dict(item) for item in data)


def load_issuer_patterns(path: str | Path) -> tuple[IssuerPattern, ...]:
    """Load an issuer table from a JSON file.

    Raises:
        IssuerProfileError: If the file is missing or malformed.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise IssuerProfileError(f"Cannot read issuer table {path}: {e}") from e
    return parse_issuer_patterns(data)
