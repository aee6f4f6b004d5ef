from __future__ import annotations

from typing import Any, Dict, List

from sqlalchemy.orm import Session

GuardResult = List[Dict[str, str]]


def _get_value(obj: Any, key: str) -> Any:
    if obj is None:
        return None
    if isinstance(obj, dict):
        return obj.get(key)
    return getattr(obj, key, None)


def guard_purchase_order_approval(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    if not _get_value(after_obj, "approved_by"):
        return [{"field": "approved_by", "reason": "approver required"}]
    return []


def guard_purchase_order_has_lines(
    db: Session,
    *,
    before_obj: Any,
    after_obj: Any,
    from_state: str,
    to_state: str,
) -> GuardResult:
    line_count = _get_value(after_obj, "line_count")
    if not line_count:
        return [{"field": "items", "reason": "at least one line item required"}]
    return []
