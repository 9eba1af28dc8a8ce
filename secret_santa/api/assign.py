from __future__ import annotations

from typing import Any, Dict

from fastapi import APIRouter, Depends
from sqlmodel import Session

from ..config import settings
from ..database import get_db
from ..services.draw_engine import draw, status_for
from ..services.notifications import AssignmentNotifier
from ..services.organization import OrgConfig, is_admin
from .deps import get_org_config, require_email

router = APIRouter(tags=["assign"])


@router.post("/assign")
def assign(
    *,
    db: Session = Depends(get_db),
    email: str = Depends(require_email),
    config: OrgConfig = Depends(get_org_config),
) -> Dict[str, Any]:
    """
    Draw a Secret Santa receiver for the caller.

    Calling again returns the same receiver with already_assigned=true.
    """
    result = draw(
        db,
        email,
        notifier=AssignmentNotifier(config, settings),
        max_attempts=settings.draw_max_attempts,
    )

    body: Dict[str, Any] = {"success": True, "receiver": result.receiver_name}
    if result.already_assigned:
        body["already_assigned"] = True
    return body


@router.get("/me")
def me(
    *,
    db: Session = Depends(get_db),
    email: str = Depends(require_email),
    config: OrgConfig = Depends(get_org_config),
) -> Dict[str, Any]:
    status = status_for(db, email)
    return {
        "email": email,
        "is_participant": status.is_participant,
        "is_admin": is_admin(email, config),
        "has_drawn": status.has_drawn,
        "receiver": status.receiver_name,
    }
