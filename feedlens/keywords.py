# feedlens/keywords.py
"""
Default keyword/topic extraction for articles that arrive as raw text.

Term-frequency scoring over a single document: words that recur a handful of
times are boosted, very frequent words are damped.
"""
from __future__ import annotations

import re
from collections import Counter
from typing import Dict, List

from bs4 import BeautifulSoup

STOP_WORDS = set("""
a about above after again against all am an and any are as at be because been before being below between
both but by can did do does doing don down during each few for from further had has have having he her
here hers herself him himself his how i if in into is it its itself just me might more most must my myself
no nor not now of off on once only or other our ours ourselves out over own re s same she should so some
such t than that the their theirs them themselves then there these they this those through to too under
until up very was we were what when where which while who whom why will with would you your yours
yourself yourselves
""".split())

_TOKEN_RE = re.compile(r"\W+")


def strip_html(text: str) -> str:
    if not text or "<" not in text:
        return text or ""
    soup = BeautifulSoup(text, "html.parser")
    for tag in soup(["script", "style", "noscript"]):
        tag.decompose()
    return " ".join(soup.stripped_strings)


def extract_keywords(text: str, max_keywords: int = 20) -> Dict[str, float]:
    """Return ``{keyword: relevance}`` for the top ``max_keywords`` terms."""
    words = [
        w for w in _TOKEN_RE.split(strip_html(text).lower())
        if len(w) > 2 and w not in STOP_WORDS
    ]
    if not words:
        return {}

    counts = Counter(words)
    total = len(words)
    scored: Dict[str, float] = {}
    for word, count in counts.items():
        score = count / total
        if 2 <= count <= 10:
            score *= 1.5
        elif count > 10:
            score *= 0.5
        scored[word] = score

    # ties broken alphabetically so the result is deterministic
    top = sorted(scored.items(), key=lambda kv: (-kv[1], kv[0]))[:max_keywords]
    return dict(top)


def keyword_set(text: str, max_keywords: int = 20) -> List[str]:
    return list(extract_keywords(text, max_keywords))


def normalize_keywords(keywords) -> List[str]:
    """Lowercase, strip and dedupe caller-supplied keywords, preserving order."""
    seen = set()
    out: List[str] = []
    for kw in keywords or []:
        k = (kw or "").strip().lower()
        if k and k not in seen:
            seen.add(k)
            out.append(k)
    return out
