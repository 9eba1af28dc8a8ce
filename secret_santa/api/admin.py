from __future__ import annotations

from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Depends
from pydantic import BaseModel, Field as PydField
from sqlmodel import Session

from ..config import settings
from ..database import get_db
from ..services.notifications import require_smtp, send_reminders
from ..services.organization import OrgConfig
from ..services.reporting import assignment_rows, participation_stats, pending_members
from ..services.roster import replace_roster
from .deps import get_org_config, require_admin

router = APIRouter(prefix="/admin", tags=["admin"], dependencies=[Depends(require_admin)])


# -----------------------------
# Schemas
# -----------------------------

class RosterUpload(BaseModel):
    """
    Rows already parsed from the uploaded sheet. Values are loosely typed on
    purpose: bad rows are filtered out rather than failing the whole request.
    """
    members: List[Dict[str, Any]] = PydField(default_factory=list)


class ReminderRequest(BaseModel):
    # Omit (or send empty) to remind everyone who hasn't drawn yet
    member_ids: Optional[List[int]] = None
    custom_message: Optional[str] = PydField(default=None, max_length=1000)


# -----------------------------
# Routes
# -----------------------------

@router.post("/roster")
def upload_roster(payload: RosterUpload, db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Replace the active roster with the uploaded rows (upsert by email).
    """
    result = replace_roster(db, payload.members)
    return {
        "success": True,
        "count": result.count,
        "members": [{**p.summary(), "is_active": p.is_active} for p in result.participants],
    }


@router.get("/assignments")
def list_assignments(db: Session = Depends(get_db)) -> Dict[str, Any]:
    rows = assignment_rows(db)
    return {"success": True, "count": len(rows), "assignments": rows}


@router.get("/reminders")
def reminder_status(db: Session = Depends(get_db)) -> Dict[str, Any]:
    """
    Who has and hasn't drawn yet.
    """
    stats = participation_stats(db)
    return {
        "success": True,
        "stats": stats.counts(),
        "pending_members": [m.summary() for m in stats.pending_members],
        "completed_members": [m.summary() for m in stats.completed_members],
    }


@router.post("/reminders")
def send_reminder_emails(
    payload: ReminderRequest,
    db: Session = Depends(get_db),
    config: OrgConfig = Depends(get_org_config),
) -> Dict[str, Any]:
    require_smtp(config)

    members = pending_members(db, payload.member_ids)
    if not members:
        return {"success": True, "message": "No pending members to remind", "sent": 0, "failed": 0}

    custom = (payload.custom_message or "").strip() or None
    sent, failed = send_reminders(members, config=config, settings=settings, custom_message=custom)

    message = f"Sent {sent} reminder{'' if sent == 1 else 's'}"
    if failed:
        message += f", {failed} failed"
    return {"success": True, "message": message, "sent": sent, "failed": failed}
