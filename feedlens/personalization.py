# feedlens/personalization.py
"""
Cold-start gate and the user-facing ranking entry point.

Below ``PERSONALIZATION_MIN_FEEDBACK`` total feedback events a user is *cold*
and ranking ignores learned patterns entirely (base relevance + recency only).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import List, Mapping, Optional, Sequence

from sqlmodel import Session

from .config import PERSONALIZATION_MIN_FEEDBACK
from .logging_setup import get_logger
from .models import UserPrefs
from .patterns import feedback_total, pattern_map
from .ranker import Candidate, RankedArticle, rank
from .timeutils import utc_now

logger = get_logger("feedlens.personalization")

COLD = "cold"
WARM = "warm"


class PersonalizationGate:
    def __init__(self, threshold: int = PERSONALIZATION_MIN_FEEDBACK):
        self.threshold = threshold

    def is_active(self, total_feedback_count: int) -> bool:
        return total_feedback_count >= self.threshold

    def state(self, total_feedback_count: int) -> str:
        return WARM if self.is_active(total_feedback_count) else COLD


gate = PersonalizationGate()


def get_prefs(s: Session, user_id: str) -> UserPrefs:
    return s.get(UserPrefs, user_id) or UserPrefs(user_id=user_id)


@dataclass
class RankOutcome:
    results: List[RankedArticle]
    personalized: bool
    feedback_total: int
    recency_weight: float
    recency_decay_days: float
    filtered: int = 0


def rank_for_user(
    s: Session,
    user_id: str,
    candidates: Sequence[Candidate],
    base_scores: Mapping[str, float],
    recency_weight: Optional[float] = None,
    recency_decay_days: Optional[float] = None,
    now: Optional[datetime] = None,
    min_score: Optional[float] = None,
) -> RankOutcome:
    """
    Rank ``candidates`` for one user. ``min_score`` drops results whose final
    score falls below it, but only once personalization is warm; cold users
    are never filtered.
    """
    prefs = get_prefs(s, user_id)
    if recency_weight is None:
        recency_weight = prefs.recency_weight
    if recency_decay_days is None:
        recency_decay_days = prefs.recency_decay_days

    total = feedback_total(s, user_id)
    personalized = gate.is_active(total)
    patterns = pattern_map(s, user_id) if personalized else {}

    results = rank(candidates, base_scores, patterns, recency_weight, recency_decay_days, now or utc_now())
    filtered = 0
    if personalized and min_score is not None:
        kept = [r for r in results if r.final >= min_score]
        filtered = len(results) - len(kept)
        results = kept

    logger.info(
        "RANK_DONE",
        extra={
            "user_id": user_id,
            "candidates": len(candidates),
            "personalized": personalized,
            "patterns": len(patterns),
            "recency_weight": recency_weight,
            "filtered": filtered,
        },
    )
    return RankOutcome(results, personalized, total, recency_weight, recency_decay_days, filtered)
