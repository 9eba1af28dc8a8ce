from __future__ import annotations

from typing import Optional

from fastapi import Depends, Request
from sqlmodel import Session

from ..config import settings
from ..database import get_db
from ..errors import NotAuthenticated, NotAuthorized
from ..models.participant import normalize_email
from ..services.organization import OrgConfig, is_admin, load_config


def get_org_config(db: Session = Depends(get_db)) -> OrgConfig:
    """
    Organization settings snapshot, reloaded for every request.
    """
    return load_config(db)


def optional_email(request: Request) -> Optional[str]:
    """
    Authenticated caller email, as forwarded by the sign-in proxy.
    """
    email = normalize_email(request.headers.get(settings.auth_email_header))
    return email or None


def require_email(email: Optional[str] = Depends(optional_email)) -> str:
    if not email:
        raise NotAuthenticated()
    return email


def require_admin(
    email: str = Depends(require_email),
    config: OrgConfig = Depends(get_org_config),
) -> str:
    if not is_admin(email, config):
        raise NotAuthorized("Forbidden")
    return email
