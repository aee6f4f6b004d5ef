from .engine import TransitionError, apply_transition, ensure_transition
from .registry import PURCHASE_ORDER, WORK_ORDER, WORKFLOWS

__all__ = [
    "PURCHASE_ORDER",
    "TransitionError",
    "WORK_ORDER",
    "WORKFLOWS",
    "apply_transition",
    "ensure_transition",
]
