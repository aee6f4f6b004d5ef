from __future__ import annotations

from typing import Any, Dict, List, Optional

from sqlalchemy.orm import Session

from erpdb.apps.audit import services as audit_services
from erpdb.errors import InvalidStateError

from .registry import WORKFLOWS


class TransitionError(InvalidStateError):
    def __init__(self, code: str, detail: List[Dict[str, str]]) -> None:
        super().__init__("; ".join(item["reason"] for item in detail) or code)
        self.code = code
        self.detail = detail


def _state_value(state: Any) -> str:
    return getattr(state, "value", state)


def ensure_transition(
    db: Session,
    *,
    entity_type: str,
    from_state: Any,
    to_state: Any,
    before_obj: Any = None,
    after_obj: Any = None,
) -> None:
    from_state = _state_value(from_state)
    to_state = _state_value(to_state)

    workflow = WORKFLOWS.get(entity_type)
    if not workflow:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "entity_type", "reason": f"No workflow registered for {entity_type}"}],
        )

    allowed = workflow.get("transitions", {}).get(from_state, {})
    guards = allowed.get(to_state)
    if guards is None:
        raise TransitionError(
            code="invalid_transition",
            detail=[{"field": "status", "reason": f"Cannot transition from {from_state} to {to_state}"}],
        )

    failures: List[Dict[str, str]] = []
    for guard in guards:
        failures.extend(
            guard(
                db,
                before_obj=before_obj,
                after_obj=after_obj,
                from_state=from_state,
                to_state=to_state,
            )
        )
    if failures:
        raise TransitionError(code="missing_requirements", detail=failures)


def apply_transition(
    db: Session,
    *,
    actor_user_id: Optional[str],
    entity_type: str,
    entity_id: str,
    from_state: Any,
    to_state: Any,
    before_obj: Any = None,
    after_obj: Any = None,
    correlation_id: Optional[str] = None,
) -> None:
    """Validate a status change against the registry and record it in the audit trail."""
    ensure_transition(
        db,
        entity_type=entity_type,
        from_state=from_state,
        to_state=to_state,
        before_obj=before_obj,
        after_obj=after_obj,
    )

    before_payload: Dict[str, Any] = {"status": _state_value(from_state)}
    after_payload: Dict[str, Any] = {"status": _state_value(to_state)}
    if isinstance(before_obj, dict):
        before_payload.update(before_obj)
    if isinstance(after_obj, dict):
        after_payload.update(after_obj)

    audit_services.record_event(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        action="transition",
        actor_user_id=actor_user_id,
        before=before_payload,
        after=after_payload,
        correlation_id=correlation_id,
        metadata={"workflow": entity_type},
    )
