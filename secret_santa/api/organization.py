from __future__ import annotations

from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Query
from pydantic import BaseModel, ConfigDict, EmailStr, Field as PydField
from sqlmodel import Session

from ..config import settings
from ..database import get_db
from ..services.notifications import send_test_email
from ..services.organization import (
    OrgConfig,
    admin_view,
    is_admin,
    public_view,
    update_settings,
)
from .deps import get_org_config, optional_email, require_admin

router = APIRouter(prefix="/organization", tags=["organization"])


# -----------------------------
# Schemas
# -----------------------------

class SettingsPatch(BaseModel):
    """
    Partial update. Any field omitted is left unchanged.

    smtp_password accepts the masked placeholder returned by GET, meaning
    "keep the stored password".
    """

    model_config = ConfigDict(populate_by_name=True, extra="forbid")

    organization_name: Optional[str] = PydField(default=None, alias="name")
    logo_url: Optional[str] = None
    primary_color: Optional[str] = None
    secondary_color: Optional[str] = None
    homepage_title: Optional[str] = None
    homepage_message: Optional[str] = None

    smtp_host: Optional[str] = None
    smtp_port: Optional[int] = None
    smtp_user: Optional[str] = None
    smtp_password: Optional[str] = None
    smtp_secure: Optional[bool] = None
    email_from: Optional[str] = None
    email_from_name: Optional[str] = None
    hr_email: Optional[str] = None
    email_subject: Optional[str] = None
    email_footer: Optional[str] = None

    admin_emails: Optional[str] = None

    google_enabled: Optional[bool] = None
    microsoft_enabled: Optional[bool] = None
    setup_complete: Optional[bool] = None


class SmtpCheckRequest(BaseModel):
    email: EmailStr


# -----------------------------
# Routes
# -----------------------------

@router.get("")
def get_organization(
    *,
    public: bool = Query(False, description="Force the public (branding-only) view"),
    email: Optional[str] = Depends(optional_email),
    config: OrgConfig = Depends(get_org_config),
) -> Dict[str, Any]:
    """
    Admins get every field (password masked); everyone else gets branding and
    feature flags only.
    """
    if public or not is_admin(email, config):
        return public_view(config)
    return admin_view(config)


@router.put("", dependencies=[Depends(require_admin)])
def put_organization(payload: SettingsPatch, db: Session = Depends(get_db)) -> Dict[str, Any]:
    row = update_settings(db, payload.model_dump(exclude_unset=True))
    return {"success": True, "organization": admin_view(OrgConfig.from_row(row))}


@router.post("/test-email", dependencies=[Depends(require_admin)])
def post_test_email(payload: SmtpCheckRequest, config: OrgConfig = Depends(get_org_config)) -> Dict[str, Any]:
    send_test_email(str(payload.email), config=config, settings=settings)
    return {"success": True}


@router.delete("/logo", dependencies=[Depends(require_admin)])
def delete_logo(db: Session = Depends(get_db)) -> Dict[str, Any]:
    update_settings(db, {"logo_url": None})
    return {"success": True}
