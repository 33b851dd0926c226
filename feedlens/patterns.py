# feedlens/patterns.py
"""
Per-user keyword patterns learned from feedback.

Weight updates are single SQL UPDATE statements with the clamp computed in the
database, so concurrent increments for the same (user, keyword) are never lost.
Ingestion, reset and maintenance for one user are additionally serialized by
an in-process lock, and the learning-state epoch acts as a compare-and-set
guard across processes: an ingest whose epoch changed underneath it rolls back.
"""
from __future__ import annotations

import threading
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime
from typing import Dict, Iterator, List, Optional

from sqlalchemy import case, delete, func, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .errors import ConcurrentResetRace
from .feedback import FeedbackEvent, FeedbackKind, feedback_value, signed_delta
from .keywords import normalize_keywords
from .logging_setup import get_logger
from .models import Feedback, LearningState, Pattern
from .timeutils import utc_now

logger = get_logger("feedlens.patterns")

WEIGHT_MIN = -1.0
WEIGHT_MAX = 1.0

# fixed pool; users hashing to the same stripe just share a lock
LOCK_STRIPES = 64
_locks = [threading.Lock() for _ in range(LOCK_STRIPES)]


@contextmanager
def user_lock(user_id: str) -> Iterator[None]:
    with _locks[hash(user_id) % LOCK_STRIPES]:
        yield


def clamp_weight(value: float) -> float:
    return max(WEIGHT_MIN, min(WEIGHT_MAX, value))


@dataclass
class IngestResult:
    user_id: str
    keywords: List[str]
    delta: float
    feedback_total: int


def _state(s: Session, user_id: str) -> LearningState:
    state = s.get(LearningState, user_id)
    if state is None:
        state = LearningState(user_id=user_id)
        s.add(state)
        s.flush()
    return state


def _bump_pattern(s: Session, user_id: str, keyword: str, delta: float, now: datetime) -> None:
    raw = Pattern.weight + delta
    stmt = (
        update(Pattern)
        .where(Pattern.user_id == user_id, Pattern.keyword == keyword)
        .values(
            weight=case((raw > WEIGHT_MAX, WEIGHT_MAX), (raw < WEIGHT_MIN, WEIGHT_MIN), else_=raw),
            feedback_count=Pattern.feedback_count + 1,
            updated_at=now,
        )
    )
    if s.connection().execute(stmt).rowcount == 0:
        # created lazily on first feedback for this keyword
        s.add(Pattern(user_id=user_id, keyword=keyword, weight=clamp_weight(delta), feedback_count=1, updated_at=now))
        s.flush()


def _ingest_once(s: Session, event: FeedbackEvent, keywords: List[str], delta: float, now: datetime) -> int:
    epoch = _state(s, event.user_id).epoch

    for kw in keywords:
        _bump_pattern(s, event.user_id, kw, delta, now)

    s.add(Feedback(
        user_id=event.user_id,
        article_id=str(event.article_id),
        kind=FeedbackKind(event.kind).value,
        value=feedback_value(event.kind),
        time_spent=event.time_spent,
        estimated_time=event.estimated_time,
        keywords=keywords,
        occurred_at=event.occurred_at,
    ))

    # compare-and-set on the epoch: a reset in between means drop everything
    bumped = s.connection().execute(
        update(LearningState)
        .where(LearningState.user_id == event.user_id, LearningState.epoch == epoch)
        .values(feedback_total=LearningState.feedback_total + 1)
    )
    if bumped.rowcount == 0:
        s.rollback()
        raise ConcurrentResetRace(event.user_id)

    s.commit()
    return s.exec(select(LearningState.feedback_total).where(LearningState.user_id == event.user_id)).one()


def ingest(s: Session, event: FeedbackEvent, now: Optional[datetime] = None) -> IngestResult:
    """
    Apply one feedback event to the user's patterns.

    Duplicates are not rejected; each application nudges the weights again
    and bumps the counts.
    """
    now = now or utc_now()
    keywords = normalize_keywords(event.keywords)
    delta = signed_delta(event.kind)

    with user_lock(event.user_id):
        try:
            total = _ingest_once(s, event, keywords, delta, now)
        except IntegrityError:
            # another process created the same state/pattern row first; retry on top of it
            s.rollback()
            logger.warning("FEEDBACK_INGEST_RETRY", extra={"user_id": event.user_id, "article_id": event.article_id})
            total = _ingest_once(s, event, keywords, delta, now)

    logger.info(
        "FEEDBACK_INGESTED",
        extra={
            "user_id": event.user_id,
            "article_id": event.article_id,
            "kind": FeedbackKind(event.kind).value,
            "keywords": len(keywords),
            "delta": delta,
            "feedback_total": total,
        },
    )
    return IngestResult(user_id=event.user_id, keywords=keywords, delta=delta, feedback_total=total)


def reset_learning(s: Session, user_id: str, now: Optional[datetime] = None) -> int:
    """Delete every pattern of the user and return the gate to cold, atomically."""
    now = now or utc_now()
    with user_lock(user_id):
        deleted = s.connection().execute(delete(Pattern).where(Pattern.user_id == user_id)).rowcount
        _state(s, user_id)
        s.connection().execute(
            update(LearningState)
            .where(LearningState.user_id == user_id)
            .values(epoch=LearningState.epoch + 1, feedback_total=0, reset_at=now)
        )
        s.commit()

    logger.info("LEARNING_RESET", extra={"user_id": user_id, "deleted": deleted})
    return deleted


def feedback_total(s: Session, user_id: str) -> int:
    state = s.get(LearningState, user_id)
    return state.feedback_total if state else 0


def list_patterns(s: Session, user_id: str, limit: Optional[int] = None) -> List[Pattern]:
    stmt = select(Pattern).where(Pattern.user_id == user_id).order_by(Pattern.weight.desc(), Pattern.keyword)
    if limit:
        stmt = stmt.limit(limit)
    return list(s.exec(stmt).all())


def pattern_map(s: Session, user_id: str) -> Dict[str, Pattern]:
    return {p.keyword: p for p in list_patterns(s, user_id)}


def pattern_stats(s: Session, user_id: str) -> dict:
    patterns = list_patterns(s, user_id)
    positive = [p for p in patterns if p.weight > 0]
    negative = [p for p in patterns if p.weight < 0]
    return {
        "total_patterns": len(patterns),
        "positive_patterns": len(positive),
        "negative_patterns": len(negative),
        "strongest_positive": max(positive, key=lambda p: p.weight) if positive else None,
        "strongest_negative": min(negative, key=lambda p: p.weight) if negative else None,
    }


def has_explicit_feedback(s: Session, user_id: str, article_id: str) -> bool:
    stmt = select(Feedback.id).where(
        Feedback.user_id == user_id,
        Feedback.article_id == str(article_id),
        Feedback.kind.in_([FeedbackKind.THUMBS_UP.value, FeedbackKind.THUMBS_DOWN.value]),
    )
    return s.exec(stmt).first() is not None


def feedback_stats(s: Session, user_id: str) -> dict:
    rows = s.exec(
        select(Feedback.kind, func.count(Feedback.id)).where(Feedback.user_id == user_id).group_by(Feedback.kind)
    ).all()
    by_kind = {kind.value: 0 for kind in FeedbackKind}
    by_kind.update({kind: count for kind, count in rows})
    avg_time = s.exec(
        select(func.avg(Feedback.time_spent)).where(Feedback.user_id == user_id, Feedback.time_spent.is_not(None))
    ).one()
    return {
        "total_feedback": sum(by_kind.values()),
        "thumbs_up": by_kind[FeedbackKind.THUMBS_UP.value],
        "thumbs_down": by_kind[FeedbackKind.THUMBS_DOWN.value],
        "completions": by_kind[FeedbackKind.COMPLETION.value],
        "bounces": by_kind[FeedbackKind.BOUNCE.value],
        "average_time_spent": float(avg_time) if avg_time is not None else None,
    }
