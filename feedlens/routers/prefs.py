from fastapi import APIRouter, Depends

from ..deps import require_user
from ..logging_setup import get_logger
from ..personalization import get_prefs
from ..schema import PrefsIn
from ..store import get_session

logger = get_logger("feedlens.routes.prefs")

router = APIRouter(prefix="/prefs", tags=["Preferences"])


def _prefs_out(prefs) -> dict:
    return {
        "bounce_threshold": prefs.bounce_threshold,
        "recency_weight": prefs.recency_weight,
        "recency_decay_days": prefs.recency_decay_days,
    }


@router.get("")
def read_prefs(user_id: str = Depends(require_user)):
    with get_session() as s:
        return _prefs_out(get_prefs(s, user_id))


@router.put("")
def update_prefs(body: PrefsIn, user_id: str = Depends(require_user)):
    logger.info("Updating preferences")
    with get_session() as s:
        prefs = get_prefs(s, user_id)
        if body.bounce_threshold is not None:
            prefs.bounce_threshold = body.bounce_threshold
        if body.recency_weight is not None:
            prefs.recency_weight = body.recency_weight
        if body.recency_decay_days is not None:
            prefs.recency_decay_days = int(body.recency_decay_days)
        s.add(prefs); s.commit(); s.refresh(prefs)
        return _prefs_out(prefs)
