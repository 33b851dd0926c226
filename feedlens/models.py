from typing import Optional, List
from sqlmodel import SQLModel, Field, Column, JSON, UniqueConstraint
from datetime import datetime

from .config import DEFAULT_BOUNCE_THRESHOLD, DEFAULT_RECENCY_WEIGHT, DEFAULT_RECENCY_DECAY_DAYS
from .timeutils import utc_now

class Category(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    name: str = ""

class Feed(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    category_id: Optional[int] = Field(default=None, foreign_key="category.id", index=True)
    url: str = ""
    title: str = ""

class SettingsOverride(SQLModel, table=True):
    """Sparse per-scope override; absent keys inherit. Deleted once empty."""
    __tablename__ = "settings_override"
    __table_args__ = (UniqueConstraint("scope", "scope_id"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    scope: str  # user | category | feed
    scope_id: str
    overrides: dict = Field(default_factory=dict, sa_column=Column(JSON))
    version: int = 0  # bumped on every write; compare-and-set guard
    updated_at: datetime = Field(default_factory=utc_now)

class Pattern(SQLModel, table=True):
    __table_args__ = (UniqueConstraint("user_id", "keyword"),)

    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    keyword: str
    weight: float = 0.0  # clamped to [-1, 1]
    feedback_count: int = 0
    updated_at: datetime = Field(default_factory=utc_now)
    decayed_at: Optional[datetime] = None

class Feedback(SQLModel, table=True):
    id: Optional[int] = Field(default=None, primary_key=True)
    user_id: str = Field(index=True)
    article_id: str = Field(index=True)
    kind: str  # thumbs_up | thumbs_down | completion | bounce
    value: float
    time_spent: Optional[float] = None  # seconds
    estimated_time: Optional[float] = None  # seconds
    keywords: List[str] = Field(default_factory=list, sa_column=Column(JSON))
    occurred_at: datetime = Field(default_factory=utc_now)

class LearningState(SQLModel, table=True):
    __tablename__ = "learning_state"

    user_id: str = Field(primary_key=True)
    feedback_total: int = 0
    epoch: int = 0
    reset_at: Optional[datetime] = None

class UserPrefs(SQLModel, table=True):
    __tablename__ = "user_prefs"

    user_id: str = Field(primary_key=True)
    bounce_threshold: float = DEFAULT_BOUNCE_THRESHOLD
    recency_weight: float = DEFAULT_RECENCY_WEIGHT
    recency_decay_days: int = DEFAULT_RECENCY_DECAY_DAYS
