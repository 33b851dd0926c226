# feedlens/ranker.py
"""
Blend base relevance, learned keyword patterns and recency into one ordering.

    final = (1 - recency_weight) * (base + pattern) + recency_weight * recency

``pattern`` is the mean learned weight over the article's keywords (unknown
keywords count as 0), so it stays within [-1, 1] however many patterns match.
``recency`` halves every ``recency_decay_days``. Everything here is a pure
function of its arguments.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from datetime import datetime
from functools import cmp_to_key
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

from .errors import InvalidRecencyParameters
from .logging_setup import get_logger
from .timeutils import coerce_utc

logger = get_logger("feedlens.ranker")

SCORE_TOLERANCE = 1e-9
SECONDS_PER_DAY = 86400.0


@dataclass
class Candidate:
    id: str
    published_at: Optional[datetime] = None
    keywords: Sequence[str] = ()


@dataclass
class RankedArticle:
    candidate: Candidate
    base: float
    pattern: float
    recency: float
    final: float
    matched: List[Tuple[str, float]] = field(default_factory=list)

    @property
    def id(self) -> str:
        return self.candidate.id


def validate_recency(recency_weight: float, recency_decay_days: float) -> None:
    if isinstance(recency_weight, bool) or isinstance(recency_decay_days, bool):
        raise InvalidRecencyParameters(recency_weight, recency_decay_days)
    try:
        ok = (
            math.isfinite(recency_weight) and 0.0 <= recency_weight <= 1.0
            and math.isfinite(recency_decay_days) and recency_decay_days > 0
        )
    except TypeError:
        ok = False
    if not ok:
        raise InvalidRecencyParameters(recency_weight, recency_decay_days)


def _pattern_weight(pattern: Any) -> Optional[float]:
    """Weight of a pattern row, or None when the row is unusable."""
    weight = getattr(pattern, "weight", pattern)
    if isinstance(weight, bool) or not isinstance(weight, (int, float)):
        return None
    if not math.isfinite(weight) or not -1.0 <= weight <= 1.0:
        return None
    return float(weight)


def pattern_contribution(keywords: Sequence[str], patterns: Mapping[str, Any]) -> Tuple[float, List[Tuple[str, float]]]:
    if not keywords or not patterns:
        return 0.0, []
    total = 0.0
    matched: List[Tuple[str, float]] = []
    for kw in keywords:
        if kw not in patterns:
            continue
        weight = _pattern_weight(patterns[kw])
        if weight is None:
            logger.warning("PATTERN_SKIPPED", extra={"keyword": kw})
            continue
        total += weight
        matched.append((kw, weight))
    matched.sort(key=lambda kv: -abs(kv[1]))
    return total / len(keywords), matched


def recency_contribution(published_at: Optional[datetime], now: datetime, recency_decay_days: float) -> float:
    published_at = coerce_utc(published_at)
    if published_at is None:
        return 0.0
    age_days = max(0.0, (coerce_utc(now) - published_at).total_seconds() / SECONDS_PER_DAY)
    return 0.5 ** (age_days / recency_decay_days)


def _published_key(r: RankedArticle) -> float:
    ts = coerce_utc(r.candidate.published_at)
    return ts.timestamp() if ts else float("-inf")


def _compare(a: RankedArticle, b: RankedArticle) -> int:
    if not math.isclose(a.final, b.final, rel_tol=SCORE_TOLERANCE, abs_tol=SCORE_TOLERANCE):
        return -1 if a.final > b.final else 1
    # tie: newer first, then id for a stable, input-order-free result
    pa, pb = _published_key(a), _published_key(b)
    if pa != pb:
        return -1 if pa > pb else 1
    return (a.id > b.id) - (a.id < b.id)


def rank(
    candidates: Sequence[Candidate],
    base_scores: Mapping[str, float],
    patterns: Mapping[str, Any],
    recency_weight: float,
    recency_decay_days: float,
    now: datetime,
) -> List[RankedArticle]:
    validate_recency(recency_weight, recency_decay_days)

    scored: List[RankedArticle] = []
    for c in candidates:
        base = float(base_scores.get(c.id, 0.0))
        pattern, matched = pattern_contribution(c.keywords, patterns)
        recency = recency_contribution(c.published_at, now, recency_decay_days)
        final = (1.0 - recency_weight) * (base + pattern) + recency_weight * recency
        scored.append(RankedArticle(c, base, pattern, recency, final, matched))

    return sorted(scored, key=cmp_to_key(_compare))


def score_breakdown(r: RankedArticle) -> Dict[str, Any]:
    return {
        "id": r.id,
        "published_at": r.candidate.published_at,
        "keywords": list(r.candidate.keywords),
        "base": round(r.base, 6),
        "pattern": round(r.pattern, 6),
        "recency": round(r.recency, 6),
        "final": r.final,
        "matched_patterns": [{"keyword": k, "weight": w} for k, w in r.matched[:5]],
    }
