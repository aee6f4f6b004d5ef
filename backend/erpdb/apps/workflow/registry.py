from __future__ import annotations

from .guards import guard_purchase_order_approval, guard_purchase_order_has_lines

PURCHASE_ORDER = "purchase_order"
WORK_ORDER = "work_order"

# A purchase order may skip ahead to any later status; it never moves back.
_PO_APPROVED = [guard_purchase_order_approval]
_PO_HAS_LINES = [guard_purchase_order_has_lines]

WORKFLOWS = {
    PURCHASE_ORDER: {
        "transitions": {
            "DRAFT": {
                "PENDING": [],
                "APPROVED": _PO_APPROVED,
                "ORDERED": _PO_HAS_LINES,
                "RECEIVED": _PO_HAS_LINES,
                "CANCELLED": [],
            },
            "PENDING": {
                "APPROVED": _PO_APPROVED,
                "ORDERED": _PO_HAS_LINES,
                "RECEIVED": _PO_HAS_LINES,
                "CANCELLED": [],
            },
            "APPROVED": {
                "ORDERED": _PO_HAS_LINES,
                "RECEIVED": _PO_HAS_LINES,
                "CANCELLED": [],
            },
            "ORDERED": {
                "RECEIVED": _PO_HAS_LINES,
                "CANCELLED": [],
            },
            "RECEIVED": {},
            "CANCELLED": {},
        }
    },
    WORK_ORDER: {
        "transitions": {
            "CREATED": {
                "IN_PROGRESS": [],
                "COMPLETED": [],
                "CANCELLED": [],
            },
            "IN_PROGRESS": {
                "COMPLETED": [],
                "CANCELLED": [],
            },
            "COMPLETED": {},
            "CANCELLED": {},
        }
    },
}
