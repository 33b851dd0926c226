from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from .feedback import FeedbackKind

class SettingsOverrideIn(BaseModel):
    # value=None reverts the field to "inherit"
    fields: Dict[str, Any] = Field(default_factory=dict)

class ResolvedValueOut(BaseModel):
    value: Any
    source: str  # feed | category | user | system

class EffectiveSettingsOut(BaseModel):
    feed_id: int
    settings: Dict[str, ResolvedValueOut]
    overrides: Dict[str, Dict[str, Any]]

class FeedbackIn(BaseModel):
    article_id: str
    kind: FeedbackKind
    keywords: Optional[List[str]] = None   # preferred: topics already extracted upstream
    content: Optional[str] = None          # fallback: extract keywords from text
    occurred_at: Optional[datetime] = None

class ReadingSessionIn(BaseModel):
    article_id: str
    time_spent: float = Field(ge=0)                # seconds
    estimated_reading_time: float = Field(gt=0)    # seconds
    keywords: Optional[List[str]] = None
    content: Optional[str] = None

class CandidateIn(BaseModel):
    id: str
    base_score: float = 0.0
    published_at: Optional[datetime] = None
    keywords: Optional[List[str]] = None
    content: Optional[str] = None

class RankIn(BaseModel):
    candidates: List[CandidateIn]
    # bounds are enforced by the ranker so errors carry the domain error shape
    recency_weight: Optional[float] = None
    recency_decay_days: Optional[float] = None
    # warm users only: drop results whose final score is below this
    min_score: Optional[float] = Field(default=None, allow_inf_nan=False)

class PrefsIn(BaseModel):
    bounce_threshold: Optional[float] = Field(default=None, ge=0.05, le=0.95)
    recency_weight: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    recency_decay_days: Optional[int] = Field(default=None, ge=1, le=365)
