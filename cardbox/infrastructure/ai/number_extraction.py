"""Extraction of card-number candidates from raw OCR text.

The text is first normalised with a letter-to-digit table for characters
Tesseract commonly confuses with digits. Candidates are then collected, in
priority order, from fixed digit patterns and from digits following
card-number keywords. Only when neither finds anything are windows of the
concatenated digits tried. The candidates are ranked by
:class:`CandidateScorer`.
"""

from __future__ import annotations

import re

from cardbox.infrastructure.observability.logging import get_logger

from .candidate_scoring import CandidateScorer

logger = get_logger(__name__)

MIN_CANDIDATE_LENGTH = 8
MAX_WINDOW_LENGTH = 19
MAX_RESULTS = 3

# Letters (and the pipe) Tesseract reads in place of digits
OCR_SUBSTITUTIONS: dict[str, str] = {
    "O": "0",
    "I": "1",
    "l": "1",
    "|": "1",
    "Z": "2",
    "S": "5",
    "G": "6",
    "T": "7",
    "B": "8",
    "g": "9",
    "U": "0",
    "W": "0",
    "A": "4",
}
_OCR_TABLE = str.maketrans(OCR_SUBSTITUTIONS)
_WHITESPACE = re.compile(r"\s+")

CANDIDATE_PATTERNS: tuple[re.Pattern[str], ...] = (
    # Long numbers (13-19 digits)
    re.compile(r"(?<!\d)\d{13,19}(?!\d)", re.ASCII),
    # Medium numbers (8-12 digits)
    re.compile(r"(?<!\d)\d{8,12}(?!\d)", re.ASCII),
    # 4-4-4-4 groups
    re.compile(r"(?<!\d)\d{4}[\s-]?\d{4}[\s-]?\d{4}[\s-]?\d{4}(?!\d)", re.ASCII),
    # 4-6-5 groups (Amex layout)
    re.compile(r"(?<!\d)\d{4}[\s-]?\d{6}[\s-]?\d{5}(?!\d)", re.ASCII),
    # Any run of 8+ digits
    re.compile(r"\d{8,}", re.ASCII),
)

CARD_KEYWORDS: tuple[str, ...] = (
    "carte",
    "card",
    "number",
    "numéro",
    "n°",
    "num",
    "client",
    "member",
    "code",
    "fidélité",
    "adhérent",
)
_KEYWORD_PATTERNS: tuple[re.Pattern[str], ...] = tuple(
    re.compile(rf"{re.escape(keyword)}[^0-9]*([0-9\s-]{{8,20}})", re.IGNORECASE)
    for keyword in CARD_KEYWORDS
)
_SEPARATORS = re.compile(r"[\s-]")
_NON_DIGITS = re.compile(r"\D", re.ASCII)


def fix_ocr_errors(text: str) -> str:
    """Replace letters commonly misread for digits and collapse whitespace.

    The table is applied to the whole text, so legitimate letters are
    rewritten too.
    """
    return _WHITESPACE.sub(" ", text.translate(_OCR_TABLE))


class _CandidateSet:
    """Insertion-ordered set of candidates of acceptable length."""

    def __init__(self) -> None:
        self.items: list[str] = []
        self._seen: set[str] = set()

    def add(self, value: str) -> bool:
        if len(value) < MIN_CANDIDATE_LENGTH or value in self._seen:
            return False
        self._seen.add(value)
        self.items.append(value)
        return True


def _keyword_numbers(text: str) -> list[str]:
    """Digit runs that follow a card-number keyword, separators stripped."""
    found: list[str] = []
    for pattern in _KEYWORD_PATTERNS:
        for match in pattern.finditer(text):
            found.append(_SEPARATORS.sub("", match.group(1)))
    return found


def extract_candidates(text: str) -> list[str]:
    """Collect every numeric candidate in discovery order.

    Keywords are searched in the uncorrected text because the correction
    table rewrites letters such as ``A`` and ``T`` inside them. Digit windows
    are a fallback for text where no bounded run or keyword number exists.
    """
    corrected = fix_ocr_errors(text)
    candidates = _CandidateSet()

    for pattern in CANDIDATE_PATTERNS:
        for match in pattern.finditer(corrected):
            candidates.add(_SEPARATORS.sub("", match.group(0)))

    for number in _keyword_numbers(text):
        candidates.add(number)

    if candidates.items:
        return candidates.items

    digits = _NON_DIGITS.sub("", corrected)
    if len(digits) >= MIN_CANDIDATE_LENGTH:
        # Longest unseen window (19 down to 8 digits) at every offset
        for start in range(len(digits) - MIN_CANDIDATE_LENGTH + 1):
            for length in range(MAX_WINDOW_LENGTH, MIN_CANDIDATE_LENGTH - 1, -1):
                if start + length > len(digits):
                    continue
                if candidates.add(digits[start:start + length]):
                    break

    return candidates.items


def extract_numbers(text: str, scorer: CandidateScorer | None = None) -> list[str]:
    """Return up to three card-number candidates, best first.

    The best candidate is followed by at most two positive-scoring
    alternatives. Identical text always yields the identical list.
    """
    candidates = extract_candidates(text)
    if not candidates:
        return []

    scorer = scorer or CandidateScorer()
    ranked = scorer.rank(candidates)
    best = ranked[0].candidate
    numbers = [best, *scorer.alternatives(ranked)]
    logger.debug(
        "Extracted %d candidates from %d characters, kept %s",
        len(candidates),
        len(text),
        numbers,
    )
    return numbers[:MAX_RESULTS]
