# feedlens/maintenance.py
"""
Daily pattern upkeep: decay stale weights and prune weak or surplus patterns.
"""
from __future__ import annotations

import time
from datetime import datetime, timedelta
from typing import Dict, Optional

from sqlalchemy import delete, update
from sqlmodel import Session, select

from .config import (
    PATTERN_DECAY_FACTOR,
    PATTERN_MAX_PER_USER,
    PATTERN_MIN_WEIGHT,
    PATTERN_STALE_DAYS,
)
from .logging_setup import get_logger
from .models import Pattern
from .patterns import user_lock
from .store import get_session
from .timeutils import coerce_utc, utc_now

logger = get_logger("feedlens.maintenance")


def _periods(start: datetime, end: datetime, stale_days: int) -> int:
    return max(0, (end - start).days // stale_days)


def apply_pattern_decay(
    s: Session,
    user_id: str,
    now: Optional[datetime] = None,
    stale_days: int = PATTERN_STALE_DAYS,
    factor: float = PATTERN_DECAY_FACTOR,
) -> int:
    """
    Multiply the weight of each pattern untouched for ``stale_days`` by
    ``factor`` once per whole stale period. Periods already applied by an
    earlier run (recorded in ``decayed_at``) are not applied again.
    """
    now = coerce_utc(now or utc_now())
    cutoff = now - timedelta(days=stale_days)
    stale = s.exec(select(Pattern).where(Pattern.user_id == user_id, Pattern.updated_at < cutoff)).all()

    decayed = 0
    for p in stale:
        updated = coerce_utc(p.updated_at)
        done = _periods(updated, coerce_utc(p.decayed_at), stale_days) if p.decayed_at else 0
        todo = _periods(updated, now, stale_days) - done
        if todo <= 0:
            continue
        # guarded on updated_at so a concurrent ingest wins over the decay
        res = s.connection().execute(
            update(Pattern)
            .where(Pattern.id == p.id, Pattern.updated_at == p.updated_at)
            .values(weight=Pattern.weight * (factor ** todo), decayed_at=now)
        )
        decayed += res.rowcount
    s.commit()
    return decayed


def cleanup_patterns(
    s: Session,
    user_id: str,
    now: Optional[datetime] = None,
    min_weight: float = PATTERN_MIN_WEIGHT,
    max_patterns: int = PATTERN_MAX_PER_USER,
    stale_days: int = PATTERN_STALE_DAYS,
) -> int:
    """Drop stale near-zero patterns, then everything beyond the strongest ``max_patterns``."""
    now = coerce_utc(now or utc_now())
    cutoff = now - timedelta(days=stale_days)
    conn = s.connection()
    removed = conn.execute(
        delete(Pattern).where(
            Pattern.user_id == user_id,
            Pattern.weight > -min_weight,
            Pattern.weight < min_weight,
            Pattern.updated_at < cutoff,
        )
    ).rowcount

    rows = s.exec(select(Pattern.id, Pattern.weight).where(Pattern.user_id == user_id)).all()
    if len(rows) > max_patterns:
        weakest = sorted(rows, key=lambda r: abs(r[1]), reverse=True)[max_patterns:]
        removed += conn.execute(delete(Pattern).where(Pattern.id.in_([r[0] for r in weakest]))).rowcount
    s.commit()
    return removed


def maintain_user(s: Session, user_id: str, now: Optional[datetime] = None) -> Dict[str, int]:
    with user_lock(user_id):
        decayed = apply_pattern_decay(s, user_id, now)
        removed = cleanup_patterns(s, user_id, now)
    return {"decayed": decayed, "removed": removed}


def run_pattern_maintenance(now: Optional[datetime] = None) -> Dict[str, int]:
    """Scheduled entry point: decay and prune patterns for every user that has any."""
    t0 = time.perf_counter()
    users_processed = 0
    errors = 0

    with get_session() as s:
        user_ids = list(s.exec(select(Pattern.user_id).distinct()).all())
    logger.info("PATTERN_MAINTENANCE_START", extra={"users": len(user_ids)})

    for user_id in user_ids:
        try:
            with get_session() as s:
                result = maintain_user(s, user_id, now)
            users_processed += 1
            logger.debug("PATTERN_MAINTENANCE_USER", extra={"user_id": user_id, **result})
        except Exception as e:
            errors += 1
            logger.exception(
                "PATTERN_MAINTENANCE_USER_FAILED",
                extra={"handled": True, "user_id": user_id, "error": type(e).__name__},
            )

    logger.info(
        "PATTERN_MAINTENANCE_DONE",
        extra={
            "users_processed": users_processed,
            "errors": errors,
            "elapsed_ms": round((time.perf_counter() - t0) * 1000),
        },
    )
    return {"users_processed": users_processed, "errors": errors}
