import os
from dotenv import load_dotenv
from pathlib import Path

# Go up one level from feedlens/ to root/
env_path = Path(__file__).resolve().parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

# Storage
DB_FILE = os.getenv("DB_FILE", "feedlens.db")
DB_URL = os.getenv("DB_URL", f"sqlite:///{DB_FILE}")

# Scheduling
TIMEZONE = os.getenv("TIMEZONE", "UTC")
PATTERN_DECAY_HOUR = int(os.getenv("PATTERN_DECAY_HOUR", "3"))

# Personalization
PERSONALIZATION_MIN_FEEDBACK = int(os.getenv("PERSONALIZATION_MIN_FEEDBACK", "10"))
FEEDBACK_LEARNING_RATE = float(os.getenv("FEEDBACK_LEARNING_RATE", "0.1"))
COMPLETION_THRESHOLD = float(os.getenv("COMPLETION_THRESHOLD", "0.9"))

# Per-user preference defaults
DEFAULT_BOUNCE_THRESHOLD = float(os.getenv("DEFAULT_BOUNCE_THRESHOLD", "0.25"))
DEFAULT_RECENCY_WEIGHT = float(os.getenv("DEFAULT_RECENCY_WEIGHT", "0.3"))
DEFAULT_RECENCY_DECAY_DAYS = int(os.getenv("DEFAULT_RECENCY_DECAY_DAYS", "30"))

# Pattern maintenance
PATTERN_STALE_DAYS = int(os.getenv("PATTERN_STALE_DAYS", "30"))
PATTERN_DECAY_FACTOR = float(os.getenv("PATTERN_DECAY_FACTOR", "0.9"))
PATTERN_MIN_WEIGHT = float(os.getenv("PATTERN_MIN_WEIGHT", "0.1"))
PATTERN_MAX_PER_USER = int(os.getenv("PATTERN_MAX_PER_USER", "100"))
