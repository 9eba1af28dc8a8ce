from __future__ import annotations

import logging
from dataclasses import asdict, dataclass, fields
from typing import Any, Dict, FrozenSet, Mapping, Optional

from sqlalchemy.exc import IntegrityError
from sqlmodel import Session

from ..errors import ValidationError
from ..models.organization import SETTINGS_ID, OrganizationSettings
from ..models.participant import normalize_email, utcnow

logger = logging.getLogger(__name__)

# Write-side placeholder for "keep the stored password"; also what reads return.
PASSWORD_MASK = "********"


@dataclass(frozen=True)
class OrgConfig:
    """
    Immutable snapshot of the organization settings row.

    Loaded once per request (see api/deps.py) and passed explicitly to
    is_admin() and the mailer, so nothing reads the settings table behind the
    caller's back. Updates are visible from the next request on.
    """

    organization_name: str
    logo_url: Optional[str]
    primary_color: str
    secondary_color: str
    homepage_title: str
    homepage_message: str

    smtp_host: Optional[str]
    smtp_port: int
    smtp_user: Optional[str]
    smtp_password: Optional[str]
    smtp_secure: bool
    email_from: Optional[str]
    email_from_name: str
    hr_email: Optional[str]
    email_subject: str
    email_footer: str

    admin_emails: str

    google_enabled: bool
    microsoft_enabled: bool
    setup_complete: bool

    @classmethod
    def from_row(cls, row: OrganizationSettings) -> "OrgConfig":
        return cls(**{f.name: getattr(row, f.name) for f in fields(cls)})

    @property
    def admin_email_set(self) -> FrozenSet[str]:
        return parse_admin_emails(self.admin_emails)

    @property
    def smtp_configured(self) -> bool:
        return bool(self.smtp_host and self.smtp_user and self.smtp_password)


# -------------------------
# Settings store
# -------------------------

def get_settings_row(session: Session) -> OrganizationSettings:
    """
    Return the singleton row, creating it with defaults on first access.
    """
    row = session.get(OrganizationSettings, SETTINGS_ID)
    if row is not None:
        return row

    row = OrganizationSettings(id=SETTINGS_ID)
    session.add(row)
    try:
        session.commit()
    except IntegrityError:
        # Another request created it first
        session.rollback()
        row = session.get(OrganizationSettings, SETTINGS_ID)
        if row is None:
            raise
        return row

    session.refresh(row)
    logger.info("Created default organization settings")
    return row


def load_config(session: Session) -> OrgConfig:
    return OrgConfig.from_row(get_settings_row(session))


# -------------------------
# Admin authorization
# -------------------------

def parse_admin_emails(raw: Optional[str]) -> FrozenSet[str]:
    return frozenset(normalize_email(part) for part in (raw or "").split(",") if part.strip())


def is_admin(email: Optional[str], config: OrgConfig) -> bool:
    """
    Admin decision for a requester.

    - No email: never admin.
    - No admins configured: everyone signed in is admin (first-run bootstrap).
    - Otherwise: case-insensitive membership in the configured list.
    """
    candidate = normalize_email(email)
    if not candidate:
        return False

    admins = config.admin_email_set
    if not admins:
        return True

    return candidate in admins


# -------------------------
# Partial updates
# -------------------------

_TEXT_LIMITS: Dict[str, int] = {
    "organization_name": 100,
    "primary_color": 20,
    "secondary_color": 20,
    "homepage_title": 100,
    "homepage_message": 500,
    "email_from_name": 100,
    "email_subject": 200,
    "email_footer": 500,
    "admin_emails": 1000,
}

# Blank input clears these to NULL
_NULLABLE_TEXT_LIMITS: Dict[str, int] = {
    "logo_url": 500,
    "smtp_host": 100,
    "smtp_user": 200,
    "smtp_password": 200,
    "email_from": 200,
    "hr_email": 200,
}

_BOOL_FIELDS = frozenset({"smtp_secure", "google_enabled", "microsoft_enabled", "setup_complete"})


def _clamp_port(value: Any) -> int:
    try:
        port = int(value)
    except (TypeError, ValueError):
        port = 0
    if port == 0:
        port = 587
    return min(65535, max(1, port))


def _normalize_admin_emails(raw: str) -> str:
    entries = [normalize_email(part) for part in raw.split(",") if part.strip()]
    bad = [e for e in entries if "@" not in e]
    if bad:
        raise ValidationError(f"Invalid admin email(s): {', '.join(bad)}")
    joined = ", ".join(dict.fromkeys(entries))
    # Rejected, never clipped
    limit = _TEXT_LIMITS["admin_emails"]
    if len(joined) > limit:
        raise ValidationError(f"Admin email list is too long (max {limit} characters)")
    return joined


def _normalize_changes(changes: Mapping[str, Any]) -> Dict[str, Any]:
    out: Dict[str, Any] = {}
    for key, value in changes.items():
        if key in _TEXT_LIMITS:
            # Column is NOT NULL: an explicit null leaves it unchanged
            if value is None:
                continue
            text = str(value).strip()
            if key == "admin_emails":
                out[key] = _normalize_admin_emails(text)
            else:
                out[key] = text[: _TEXT_LIMITS[key]]
        elif key in _NULLABLE_TEXT_LIMITS:
            if key == "smtp_password" and value == PASSWORD_MASK:
                continue
            text = "" if value is None else str(value).strip()
            out[key] = text[: _NULLABLE_TEXT_LIMITS[key]] or None
        elif key in _BOOL_FIELDS:
            if value is None:
                continue
            out[key] = bool(value)
        elif key == "smtp_port":
            out[key] = _clamp_port(value)
        else:
            raise ValidationError(f"Unknown settings field: {key}")
    return out


def update_settings(session: Session, changes: Mapping[str, Any]) -> OrganizationSettings:
    """
    Apply only the supplied fields to the singleton row.

    The masked password placeholder is ignored so re-submitting a form that
    echoed it back never overwrites the stored secret.
    """
    normalized = _normalize_changes(changes)
    row = get_settings_row(session)

    for key, value in normalized.items():
        setattr(row, key, value)
    row.updated_at = utcnow()

    session.add(row)
    session.commit()
    session.refresh(row)

    logger.info("Organization settings updated: %s", ", ".join(sorted(normalized)) or "(no changes)")
    return row


# -------------------------
# Views
# -------------------------

def public_view(config: OrgConfig) -> Dict[str, Any]:
    """Branding + feature flags only; safe for unauthenticated callers."""
    return {
        "name": config.organization_name,
        "logo_url": config.logo_url,
        "primary_color": config.primary_color,
        "secondary_color": config.secondary_color,
        "homepage_title": config.homepage_title,
        "homepage_message": config.homepage_message,
        "google_enabled": config.google_enabled,
        "microsoft_enabled": config.microsoft_enabled,
        "setup_complete": config.setup_complete,
    }


def admin_view(config: OrgConfig) -> Dict[str, Any]:
    data = asdict(config)
    data["name"] = config.organization_name
    data["smtp_password"] = PASSWORD_MASK if config.smtp_password else None
    return data
