"""
Identifier helpers.

- generate_uuid7: time-ordered ids for audit events.
- next_purchase_order_number / next_work_order_number: the default numbering
  service. Numbers are opaque to the rest of the backend; the format
  `PO-YYYY-NNNNNN` / `WO-YYYY-NNNNNN` is presentation only and the unique
  column is what finally guarantees uniqueness.
"""

from __future__ import annotations

import os
import re
import time
import uuid
from datetime import datetime, timezone
from typing import Optional

from sqlalchemy.orm import Session

SEQUENCE_WIDTH = 6


def generate_uuid7() -> str:
    """
    Generate a UUIDv7 string (time-ordered).

    - 48-bit Unix timestamp in milliseconds
    - 4-bit version (0b0111)
    - 74-bit randomness
    """
    ts_ms = int(time.time() * 1000)
    raw = bytearray(ts_ms.to_bytes(6, "big", signed=False) + os.urandom(10))
    raw[6] = (raw[6] & 0x0F) | 0x70
    raw[8] = (raw[8] & 0x3F) | 0x80
    return str(uuid.UUID(bytes=bytes(raw)))


def format_sequence_number(prefix: str, year: int, sequence: int) -> str:
    return f"{prefix}-{year}-{sequence:0{SEQUENCE_WIDTH}d}"


def next_sequence_number(db: Session, *, column, prefix: str, now: Optional[datetime] = None) -> str:
    """
    Return the number after the highest `<prefix>-<year>-NNNNNN` already stored
    in `column` for the current year. Malformed values are ignored.
    """
    year = (now or datetime.now(timezone.utc)).year
    year_prefix = f"{prefix}-{year}-"
    pattern = re.compile(rf"^{re.escape(year_prefix)}(\d+)$")

    highest = 0
    for (value,) in db.query(column).filter(column.like(f"{year_prefix}%")).all():
        match = pattern.match(value or "")
        if match:
            highest = max(highest, int(match.group(1)))
    return format_sequence_number(prefix, year, highest + 1)


def next_purchase_order_number(db: Session, *, now: Optional[datetime] = None) -> str:
    from erpdb.apps.purchasing import models as purchasing_models

    return next_sequence_number(db, column=purchasing_models.PurchaseOrder.po_number, prefix="PO", now=now)


def next_work_order_number(db: Session, *, now: Optional[datetime] = None) -> str:
    from erpdb.apps.work import models as work_models

    return next_sequence_number(db, column=work_models.WorkOrder.wo_number, prefix="WO", now=now)
