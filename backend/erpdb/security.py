# backend/erpdb/security.py

"""
Actor resolution for write endpoints.

Authentication is handled upstream by the identity provider / API gateway,
which forwards the authenticated user's id in the `X-Actor-Id` header. The
backend never validates that id beyond requiring it; it is stored verbatim
as `created_by` / `approved_by` and in the audit trail.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Header, HTTPException, status

ACTOR_HEADER = "X-Actor-Id"
MAX_ACTOR_LENGTH = 255


def get_current_actor(
    x_actor_id: Optional[str] = Header(None, alias=ACTOR_HEADER),
) -> str:
    actor_id = (x_actor_id or "").strip()
    if not actor_id:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=f"{ACTOR_HEADER} header is required",
        )
    if len(actor_id) > MAX_ACTOR_LENGTH:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"{ACTOR_HEADER} must be at most {MAX_ACTOR_LENGTH} characters",
        )
    return actor_id
