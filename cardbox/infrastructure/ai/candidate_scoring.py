"""Ranking of numeric candidates found in OCR text.

Every candidate is scored on its own by :func:`score_candidate`, a pure
function returning a :class:`ScoreBreakdown`. The score adds up:

- a length term peaking at 13 digits (EAN-13, the usual loyalty-card
  encoding), then 8, 12, 10-11 and 9 digits;
- bonuses for known issuer prefix/length schemes (see ``issuer_profiles``);
- a bonus for a non-zero leading digit on long numbers and a bonus per
  distinct digit value;
- penalties for repeated digits, simple sequences, alternating patterns and
  trailing zeros.

Candidates that look like OCR noise are disqualified outright and get
:data:`DISQUALIFIED_SCORE`.
"""

from __future__ import annotations

import functools
import re
from collections import Counter
from typing import Callable, Iterable, Sequence

from cardbox.infrastructure.observability.logging import get_logger
from cardbox.infrastructure.observability.tracing import traced

from .issuer_profiles import DEFAULT_ISSUER_PATTERNS, IssuerPattern, matching_patterns
from .models import ScoreBreakdown

logger = get_logger(__name__)

DISQUALIFIED_SCORE = -1000
MAX_CANDIDATE_LENGTH = 18

LENGTH_SCORES: dict[int, int] = {
    8: 25,
    9: 12,
    10: 18,
    11: 18,
    12: 22,
    13: 30,
    14: 10,
    15: 6,
    16: 4,
    17: 0,
    18: -5,
}
TOO_SHORT_SCORE = -20  # under 8 digits
TOO_LONG_SCORE = -60  # 19 digits and more

OCR_ARTIFACT_PREFIXES = ("111111", "000000", "101010", "010101")

LEADING_DIGIT_BONUS = 8
LEADING_DIGIT_MIN_LENGTH = 10
DIVERSITY_WEIGHT = 2

RUN_PENALTY_PER_DIGIT = 4
SEQUENCE_PENALTY = 5
ALTERNATING_PENALTY = 8
MAX_REPETITION_PENALTY = 30

_LONG_RUN = re.compile(r"(\d)\1{5,}")
_RUN = re.compile(r"(\d)\1{2,}")
_ALTERNATING = re.compile(r"(\d)(?!\1)(\d)(?:\1\2){2}")

ScoreFunction = Callable[[str, Sequence[IssuerPattern]], ScoreBreakdown]


def _monotonic_windows(candidate: str, size: int) -> int:
    """Count windows of ``size`` digits stepping by +1 or -1 (9 wraps to 0)."""
    count = 0
    for start in range(len(candidate) - size + 1):
        window = candidate[start:start + size]
        steps = {(int(b) - int(a)) % 10 for a, b in zip(window, window[1:])}
        if steps == {1} or steps == {9}:
            count += 1
    return count


def length_score(length: int) -> int:
    if length < 8:
        return TOO_SHORT_SCORE
    if length >= 19:
        return TOO_LONG_SCORE
    return LENGTH_SCORES[length]


def disqualification_reason(candidate: str) -> str | None:
    """Return why ``candidate`` is almost certainly OCR noise, if it is."""
    if len(candidate) > MAX_CANDIDATE_LENGTH:
        return "too_long"
    if _LONG_RUN.search(candidate):
        return "identical_run"
    if candidate.startswith(OCR_ARTIFACT_PREFIXES):
        return "artifact_prefix"
    if candidate:
        _, top = Counter(candidate).most_common(1)[0]
        if top * 2 > len(candidate):
            return "dominant_digit"
    if _monotonic_windows(candidate, 6):
        return "sequence"
    return None


def repetition_penalty(candidate: str) -> int:
    penalty = sum(
        RUN_PENALTY_PER_DIGIT * len(m.group(0)) for m in _RUN.finditer(candidate)
    )
    penalty += SEQUENCE_PENALTY * _monotonic_windows(candidate, 4)
    penalty += ALTERNATING_PENALTY * len(_ALTERNATING.findall(candidate))
    return min(penalty, MAX_REPETITION_PENALTY)


def trailing_zeros_penalty(candidate: str) -> int:
    zeros = len(candidate) - len(candidate.rstrip("0"))
    if zeros > 6:
        return 25
    if zeros > 4:
        return 15
    if zeros > 2:
        return 8
    return 0


def score_candidate(
    candidate: str,
    patterns: Sequence[IssuerPattern] = DEFAULT_ISSUER_PATTERNS,
) -> ScoreBreakdown:
    """Score a single numeric candidate."""
    reason = disqualification_reason(candidate)
    if reason is not None:
        return ScoreBreakdown(
            candidate=candidate, score=DISQUALIFIED_SCORE, disqualified_by=reason
        )

    length = len(candidate)
    leading = (
        LEADING_DIGIT_BONUS
        if length >= LEADING_DIGIT_MIN_LENGTH and candidate[0] != "0"
        else 0
    )
    components = {
        "length": length_score(length),
        "issuer": sum(p.bonus for p in matching_patterns(candidate, patterns)),
        "leading_digit": leading,
        "diversity": DIVERSITY_WEIGHT * len(set(candidate)),
        "repetition": -repetition_penalty(candidate),
        "trailing_zeros": -trailing_zeros_penalty(candidate),
    }
    return ScoreBreakdown(
        candidate=candidate, score=sum(components.values()), components=components
    )


def logged_scoring(func: ScoreFunction) -> ScoreFunction:
    """Wrap a score function so every breakdown is logged at DEBUG level."""

    @functools.wraps(func)
    def wrapper(
        candidate: str, patterns: Sequence[IssuerPattern] = DEFAULT_ISSUER_PATTERNS
    ) -> ScoreBreakdown:
        breakdown = func(candidate, patterns)
        if breakdown.disqualified:
            logger.debug(
                "Candidate %s disqualified (%s)", candidate, breakdown.disqualified_by
            )
        else:
            logger.debug(
                "Candidate %s scored %d %s",
                candidate,
                breakdown.score,
                breakdown.components,
            )
        return breakdown

    return wrapper


class CandidateScorer:
    """Ranks candidates and picks the most plausible card number.

    Args:
        patterns: Issuer table used for prefix bonuses.
        log_scores: Log each score breakdown at DEBUG level.
    """

    def __init__(
        self,
        patterns: Sequence[IssuerPattern] = DEFAULT_ISSUER_PATTERNS,
        log_scores: bool = True,
    ) -> None:
        self.patterns = tuple(patterns)
        self._score: ScoreFunction = (
            logged_scoring(score_candidate) if log_scores else score_candidate
        )

    def score(self, candidate: str) -> ScoreBreakdown:
        return self._score(candidate, self.patterns)

    @traced("rank_candidates")
    def rank(self, candidates: Iterable[str]) -> list[ScoreBreakdown]:
        """Score all candidates, highest first.

        The sort is stable, so equal scores keep discovery order.
        """
        scored = [self.score(c) for c in candidates]
        return sorted(scored, key=lambda b: b.score, reverse=True)

    def select_best(self, candidates: Sequence[str]) -> str | None:
        """Return the best candidate, or None for an empty input.

        When no candidate scores above zero the least negative one is still
        returned.
        """
        ranked = self.rank(candidates)
        return ranked[0].candidate if ranked else None

    @staticmethod
    def alternatives(ranked: Sequence[ScoreBreakdown], limit: int = 2) -> list[str]:
        """Positive-scoring runners-up after the best candidate."""
        return [b.candidate for b in ranked[1:] if b.score > 0][:limit]


def select_best(candidates: Sequence[str]) -> str | None:
    """Pick the best candidate with the default issuer table."""
    return CandidateScorer().select_best(candidates)
