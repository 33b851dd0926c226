from fastapi import APIRouter, Depends

from ..deps import require_user
from ..keywords import keyword_set, normalize_keywords
from ..logging_setup import get_logger
from ..personalization import rank_for_user
from ..ranker import Candidate, score_breakdown
from ..schema import RankIn
from ..store import get_session

logger = get_logger("feedlens.routes.rank")

router = APIRouter(prefix="/rank", tags=["Ranking"])

RANK_KEYWORDS = 30


@router.post("")
def post_rank(body: RankIn, user_id: str = Depends(require_user)):
    candidates = []
    base_scores = {}
    for c in body.candidates:
        if c.keywords is not None:
            kws = normalize_keywords(c.keywords)
        else:
            kws = keyword_set(c.content or "", RANK_KEYWORDS)
        candidates.append(Candidate(id=c.id, published_at=c.published_at, keywords=kws))
        base_scores[c.id] = c.base_score

    with get_session() as s:
        outcome = rank_for_user(
            s, user_id, candidates, base_scores,
            recency_weight=body.recency_weight,
            recency_decay_days=body.recency_decay_days,
            min_score=body.min_score,
        )
    return {
        "personalized": outcome.personalized,
        "feedback_total": outcome.feedback_total,
        "recency_weight": outcome.recency_weight,
        "recency_decay_days": outcome.recency_decay_days,
        "min_score": body.min_score,
        "filtered": outcome.filtered,
        "results": [score_breakdown(r) for r in outcome.results],
    }
