from typing import Optional

from fastapi import APIRouter, Depends, Query

from ..deps import require_user
from ..logging_setup import get_logger
from ..patterns import list_patterns, pattern_stats, reset_learning
from ..store import get_session

logger = get_logger("feedlens.routes.patterns")

router = APIRouter(prefix="/patterns", tags=["Patterns"])


def _pattern_out(p) -> Optional[dict]:
    if p is None:
        return None
    return {
        "keyword": p.keyword,
        "weight": p.weight,
        "feedback_count": p.feedback_count,
        "updated_at": p.updated_at,
    }


@router.get("")
def get_patterns(limit: Optional[int] = Query(None, ge=1, le=1000), user_id: str = Depends(require_user)):
    with get_session() as s:
        return {"patterns": [_pattern_out(p) for p in list_patterns(s, user_id, limit)]}


@router.get("/stats")
def get_pattern_stats(user_id: str = Depends(require_user)):
    with get_session() as s:
        stats = pattern_stats(s, user_id)
        stats["strongest_positive"] = _pattern_out(stats["strongest_positive"])
        stats["strongest_negative"] = _pattern_out(stats["strongest_negative"])
    return {"stats": stats}


@router.post("/reset")
def post_reset_learning(user_id: str = Depends(require_user)):
    logger.info(f"Reset learning requested: user={user_id}")
    with get_session() as s:
        deleted = reset_learning(s, user_id)
    return {"ok": True, "deleted": deleted}
