from __future__ import annotations

from datetime import datetime
from typing import List, Optional

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from erpdb.database import get_read_db

from . import schemas, services


router = APIRouter(
    prefix="/audit",
    tags=["audit"],
)


@router.get("/events", response_model=List[schemas.AuditEventRead])
def list_audit_events(
    entity_type: Optional[str] = None,
    entity_id: Optional[str] = None,
    start: Optional[datetime] = None,
    end: Optional[datetime] = None,
    db: Session = Depends(get_read_db),
):
    return services.list_audit_events(
        db,
        entity_type=entity_type,
        entity_id=entity_id,
        start=start,
        end=end,
    )
