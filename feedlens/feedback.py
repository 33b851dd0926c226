# feedlens/feedback.py
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import List, Optional

from .config import COMPLETION_THRESHOLD, FEEDBACK_LEARNING_RATE
from .timeutils import utc_now


class FeedbackKind(str, Enum):
    THUMBS_UP = "thumbs_up"
    THUMBS_DOWN = "thumbs_down"
    COMPLETION = "completion"
    BOUNCE = "bounce"

    @property
    def explicit(self) -> bool:
        return self in (FeedbackKind.THUMBS_UP, FeedbackKind.THUMBS_DOWN)


# Sentiment per kind; implicit signals count half as much as explicit thumbs
FEEDBACK_VALUES = {
    FeedbackKind.THUMBS_UP: 1.0,
    FeedbackKind.THUMBS_DOWN: -1.0,
    FeedbackKind.COMPLETION: 0.5,
    FeedbackKind.BOUNCE: -0.5,
}


def feedback_value(kind: FeedbackKind) -> float:
    return FEEDBACK_VALUES[FeedbackKind(kind)]


def signed_delta(kind: FeedbackKind, learning_rate: float = FEEDBACK_LEARNING_RATE) -> float:
    return feedback_value(kind) * learning_rate


@dataclass
class FeedbackEvent:
    user_id: str
    article_id: str
    kind: FeedbackKind
    keywords: List[str] = field(default_factory=list)
    occurred_at: datetime = field(default_factory=utc_now)
    time_spent: Optional[float] = None
    estimated_time: Optional[float] = None


def classify_reading_session(
    time_spent: float,
    estimated_time: float,
    bounce_threshold: float,
    completion_threshold: float = COMPLETION_THRESHOLD,
) -> Optional[FeedbackKind]:
    """
    Turn reading-session telemetry into an implicit signal.

    Completion wins when the reader got through ``completion_threshold`` of
    the estimated reading time; a bounce is leaving before
    ``bounce_threshold``. Anything in between carries no signal.
    """
    if not estimated_time or estimated_time <= 0:
        return None
    fraction = max(0.0, time_spent) / estimated_time
    if fraction >= completion_threshold:
        return FeedbackKind.COMPLETION
    if fraction < bounce_threshold:
        return FeedbackKind.BOUNCE
    return None
