from fastapi import APIRouter, Depends

from ..deps import require_user
from ..errors import ConcurrentResetRace
from ..feedback import FeedbackEvent, classify_reading_session
from ..keywords import keyword_set
from ..logging_setup import get_logger
from ..patterns import feedback_stats, feedback_total, has_explicit_feedback, ingest
from ..personalization import gate, get_prefs
from ..schema import FeedbackIn, ReadingSessionIn
from ..store import get_session
from ..timeutils import utc_now

logger = get_logger("feedlens.routes.feedback")

router = APIRouter(prefix="/feedback", tags=["Feedback"])

FEEDBACK_KEYWORDS = 15


def _keywords(body) -> list:
    if body.keywords is not None:
        return body.keywords
    return keyword_set(body.content or "", FEEDBACK_KEYWORDS)


def _ingest(s, event: FeedbackEvent) -> dict:
    try:
        result = ingest(s, event)
    except ConcurrentResetRace:
        # a missed learning opportunity, not an error for the caller
        logger.warning("FEEDBACK_DROPPED_RESET_RACE", extra={"user_id": event.user_id, "article_id": event.article_id})
        return {"accepted": False, "reason": "reset_in_progress"}
    return {
        "accepted": True,
        "kind": event.kind.value,
        "keywords": result.keywords,
        "delta": result.delta,
        "feedback_total": result.feedback_total,
        "personalization": gate.state(result.feedback_total),
    }


@router.post("")
def post_feedback(body: FeedbackIn, user_id: str = Depends(require_user)):
    logger.info(f"Feedback received: article={body.article_id} kind={body.kind.value}")
    event = FeedbackEvent(
        user_id=user_id,
        article_id=body.article_id,
        kind=body.kind,
        keywords=_keywords(body),
        occurred_at=body.occurred_at or utc_now(),
    )
    with get_session() as s:
        return _ingest(s, event)


@router.post("/reading-session")
def post_reading_session(body: ReadingSessionIn, user_id: str = Depends(require_user)):
    with get_session() as s:
        if has_explicit_feedback(s, user_id, body.article_id):
            return {"accepted": False, "reason": "explicit_feedback_exists"}

        prefs = get_prefs(s, user_id)
        kind = classify_reading_session(body.time_spent, body.estimated_reading_time, prefs.bounce_threshold)
        logger.info(
            "READING_SESSION_CLASSIFIED",
            extra={
                "user_id": user_id,
                "article_id": body.article_id,
                "fraction": round(body.time_spent / body.estimated_reading_time, 3),
                "kind": kind.value if kind else None,
            },
        )
        if kind is None:
            return {"accepted": False, "reason": "no_signal"}

        event = FeedbackEvent(
            user_id=user_id,
            article_id=body.article_id,
            kind=kind,
            keywords=_keywords(body),
            time_spent=body.time_spent,
            estimated_time=body.estimated_reading_time,
        )
        return _ingest(s, event)


@router.get("/stats")
def get_feedback_stats(user_id: str = Depends(require_user)):
    with get_session() as s:
        stats = feedback_stats(s, user_id)
        total = feedback_total(s, user_id)
    stats["learning_feedback_total"] = total
    stats["personalization"] = gate.state(total)
    stats["personalization_threshold"] = gate.threshold
    return stats
