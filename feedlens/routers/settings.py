from fastapi import APIRouter, Depends, Response, status

from ..deps import require_user
from ..logging_setup import get_logger
from ..schema import EffectiveSettingsOut, SettingsOverrideIn
from ..settings_fields import FIELDS
from ..settings_store import (
    affected_feed_ids,
    check_scope,
    clear_override,
    effective_settings,
    get_override,
    write_override,
)
from ..store import get_session

logger = get_logger("feedlens.routes.settings")

router = APIRouter(tags=["Settings"])


def _effective_out(s, user_id: str, feed_id: int) -> EffectiveSettingsOut:
    resolved, layers = effective_settings(s, user_id, feed_id)
    return EffectiveSettingsOut(
        feed_id=int(feed_id),
        settings={name: rv.as_dict() for name, rv in resolved.items()},
        overrides=layers,
    )


@router.get("/settings/system-defaults")
def get_system_defaults():
    return {"fields": [f.describe() for f in FIELDS.values()]}


@router.get("/feeds/{feed_id}/effective-settings", response_model=EffectiveSettingsOut)
def get_effective_settings(feed_id: int, user_id: str = Depends(require_user)):
    with get_session() as s:
        return _effective_out(s, user_id, feed_id)


@router.get("/settings/{scope}/{scope_id}")
def get_scope_override(scope: str, scope_id: str, user_id: str = Depends(require_user)):
    with get_session() as s:
        sid = check_scope(s, user_id, scope, scope_id)
        return {"scope": scope, "scope_id": sid, "overrides": get_override(s, scope, sid)}


@router.put("/settings/{scope}/{scope_id}")
def put_scope_override(scope: str, scope_id: str, body: SettingsOverrideIn, user_id: str = Depends(require_user)):
    logger.info(f"Settings override write: scope={scope} id={scope_id} fields={sorted(body.fields)}")
    with get_session() as s:
        stored = write_override(s, user_id, scope, scope_id, body.fields)
        sid = check_scope(s, user_id, scope, scope_id)
        feeds = [_effective_out(s, user_id, fid) for fid in affected_feed_ids(s, user_id, scope, sid)]
    return {"scope": scope, "scope_id": sid, "overrides": stored, "affected_feeds": feeds}


@router.delete("/settings/{scope}/{scope_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_scope_override(scope: str, scope_id: str, user_id: str = Depends(require_user)):
    with get_session() as s:
        clear_override(s, user_id, scope, scope_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
