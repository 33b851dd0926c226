# feedlens/deps.py
from typing import Optional

from fastapi import Header, HTTPException, status


def require_user(x_user_id: Optional[str] = Header(default=None)) -> str:
    """Caller identity as asserted by the upstream auth layer."""
    user_id = (x_user_id or "").strip()
    if not user_id:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Missing X-User-Id header")
    return user_id
