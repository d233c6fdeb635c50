from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from fastapi import Depends, Header

from stockdb import errors


@dataclass
class CallerContext:
    """Identity forwarded by the gateway in front of this service."""

    organization_id: str
    user_id: Optional[str] = None


def get_caller(
    organization_id: str = Header(..., alias="X-Organization-Id", min_length=1, max_length=36),
    user_id: Optional[str] = Header(None, alias="X-User-Id", max_length=36),
) -> CallerContext:
    return CallerContext(organization_id=organization_id.strip(), user_id=(user_id or "").strip() or None)


def require_actor(caller: CallerContext = Depends(get_caller)) -> CallerContext:
    """
    Dependency for mutating endpoints: every stock change is attributed to a user.
    """
    if not caller.user_id:
        raise errors.ValidationError(
            "X-User-Id header is required for this operation.",
            detail=[{"field": "X-User-Id", "reason": "acting user required"}],
        )
    return caller
