# feedlens/settings_store.py
"""
Sparse settings overrides at user, category and feed scope.

A scope row exists only while it overrides at least one field; reverting the
last field deletes the row. Writes are validated as a whole before anything is
persisted and land in a single commit. Concurrent writers to one scope are
serialized by a compare-and-set on the row version; the loser re-reads and
merges again.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional, Tuple

from sqlalchemy import delete, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from .errors import SettingsWriteConflict, UnknownScope
from .logging_setup import get_logger
from .models import Category, Feed, SettingsOverride
from .settings_fields import validate_override
from .settings_resolver import ResolvedValue, resolve_all
from .timeutils import utc_now

logger = get_logger("feedlens.settings")

SCOPES = ("user", "category", "feed")
WRITE_ATTEMPTS = 5


def _owned(s: Session, model, user_id: str, scope: str, scope_id: Any):
    try:
        pk = int(scope_id)
    except (TypeError, ValueError):
        raise UnknownScope(scope, scope_id) from None
    row = s.get(model, pk)
    if row is None or row.user_id != user_id:
        raise UnknownScope(scope, scope_id)
    return row


def check_scope(s: Session, user_id: str, scope: str, scope_id: Any) -> str:
    """Return the canonical scope id, or raise UnknownScope."""
    if scope == "user":
        if str(scope_id) != user_id:
            raise UnknownScope(scope, scope_id)
        return user_id
    if scope == "category":
        return str(_owned(s, Category, user_id, scope, scope_id).id)
    if scope == "feed":
        return str(_owned(s, Feed, user_id, scope, scope_id).id)
    raise UnknownScope(scope, scope_id)


def _get_row(s: Session, scope: str, scope_id: str) -> Optional[SettingsOverride]:
    stmt = select(SettingsOverride).where(
        SettingsOverride.scope == scope, SettingsOverride.scope_id == scope_id
    )
    return s.exec(stmt).first()


def get_override(s: Session, scope: str, scope_id: str) -> Dict[str, Any]:
    row = _get_row(s, scope, scope_id)
    return dict(row.overrides) if row else {}


def _merge(current: Dict[str, Any], fields: Dict[str, Any]) -> Dict[str, Any]:
    merged = dict(current)
    for name, value in fields.items():
        if value is None:
            merged.pop(name, None)
        else:
            merged[name] = value
    return merged


def _store_once(s: Session, scope: str, sid: str, fields: Dict[str, Any]) -> Optional[Dict[str, Any]]:
    """
    One read-merge-write attempt. Returns the stored override, or None when
    another writer got in between the read and the write.
    """
    row = _get_row(s, scope, sid)
    merged = _merge(row.overrides if row else {}, fields)

    if row is None:
        if merged:
            s.add(SettingsOverride(scope=scope, scope_id=sid, overrides=merged))
            try:
                s.flush()
            except IntegrityError:
                # a concurrent first write created the row
                s.rollback()
                return None
        s.commit()
        return merged

    seen = (SettingsOverride.id == row.id, SettingsOverride.version == row.version)
    if merged:
        stmt = update(SettingsOverride).where(*seen).values(
            overrides=merged, version=SettingsOverride.version + 1, updated_at=utc_now()
        )
    else:
        stmt = delete(SettingsOverride).where(*seen)
    if s.connection().execute(stmt).rowcount == 0:
        s.rollback()
        return None
    s.commit()
    return merged


def write_override(s: Session, user_id: str, scope: str, scope_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
    """
    Merge ``fields`` into the scope's override. ``None`` reverts a field.
    Returns the override as stored after the write.
    """
    sid = check_scope(s, user_id, scope, scope_id)
    validate_override(fields)

    for attempt in range(1, WRITE_ATTEMPTS + 1):
        merged = _store_once(s, scope, sid, fields)
        if merged is not None:
            break
        logger.warning("SETTINGS_OVERRIDE_RETRY", extra={"scope": scope, "scope_id": sid, "attempt": attempt})
    else:
        raise SettingsWriteConflict(scope, sid)

    logger.info(
        "SETTINGS_OVERRIDE_WRITTEN",
        extra={"user_id": user_id, "scope": scope, "scope_id": sid, "fields": sorted(fields), "stored": merged},
    )
    return merged


def clear_override(s: Session, user_id: str, scope: str, scope_id: Any) -> None:
    sid = check_scope(s, user_id, scope, scope_id)
    deleted = s.connection().execute(
        delete(SettingsOverride).where(SettingsOverride.scope == scope, SettingsOverride.scope_id == sid)
    ).rowcount
    s.commit()
    if deleted:
        logger.info("SETTINGS_OVERRIDE_CLEARED", extra={"user_id": user_id, "scope": scope, "scope_id": sid})


def layered_overrides(s: Session, user_id: str, feed: Feed) -> Dict[str, Dict[str, Any]]:
    category = get_override(s, "category", str(feed.category_id)) if feed.category_id is not None else {}
    return {
        "feed": get_override(s, "feed", str(feed.id)),
        "category": category,
        "user": get_override(s, "user", user_id),
    }


def effective_settings(s: Session, user_id: str, feed_id: Any) -> Tuple[Dict[str, ResolvedValue], Dict[str, Dict[str, Any]]]:
    feed = _owned(s, Feed, user_id, "feed", feed_id)
    layers = layered_overrides(s, user_id, feed)
    resolved = resolve_all(layers["feed"], layers["category"], layers["user"])
    return resolved, layers


def affected_feed_ids(s: Session, user_id: str, scope: str, scope_id: str) -> List[int]:
    stmt = select(Feed.id).where(Feed.user_id == user_id)
    if scope == "feed":
        stmt = stmt.where(Feed.id == int(scope_id))
    elif scope == "category":
        stmt = stmt.where(Feed.category_id == int(scope_id))
    return list(s.exec(stmt.order_by(Feed.id)).all())
