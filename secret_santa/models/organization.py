from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlmodel import Field, SQLModel

from .participant import utcnow

SETTINGS_ID = "singleton"

DEFAULT_HOMEPAGE_MESSAGE = "Sign in to discover who you'll be gifting this holiday season!"
DEFAULT_EMAIL_FOOTER = "This is an automated message from the Secret Santa app."


class OrganizationSettings(SQLModel, table=True):
    """
    The one organization configuration row (id is always SETTINGS_ID).

    Created with these defaults the first time anything reads it; admins then
    patch individual fields.
    """

    __tablename__ = "organization_settings"

    id: str = Field(default=SETTINGS_ID, primary_key=True)

    # ---- Identity / branding ----
    organization_name: str = Field(default="My Organization", max_length=100)
    logo_url: Optional[str] = Field(default=None, max_length=500)
    primary_color: str = Field(default="#165B33", max_length=20)
    secondary_color: str = Field(default="#C41E3A", max_length=20)
    homepage_title: str = Field(default="Secret Santa", max_length=100)
    homepage_message: str = Field(default=DEFAULT_HOMEPAGE_MESSAGE, max_length=500)

    # ---- Mail transport ----
    smtp_host: Optional[str] = Field(default=None, max_length=100)
    smtp_port: int = Field(default=587)
    smtp_user: Optional[str] = Field(default=None, max_length=200)
    smtp_password: Optional[str] = Field(default=None, max_length=200)
    smtp_secure: bool = Field(default=False)
    email_from: Optional[str] = Field(default=None, max_length=200)
    email_from_name: str = Field(default="Secret Santa", max_length=100)
    hr_email: Optional[str] = Field(default=None, max_length=200)
    email_subject: str = Field(default="Your Secret Santa Assignment!", max_length=200)
    email_footer: str = Field(default=DEFAULT_EMAIL_FOOTER, max_length=500)

    # ---- Authorization ----
    # Comma-separated; empty means bootstrap mode (everyone signed in is admin)
    admin_emails: str = Field(default="", max_length=1000)

    # ---- Feature flags ----
    google_enabled: bool = Field(default=True)
    microsoft_enabled: bool = Field(default=True)
    setup_complete: bool = Field(default=False)

    created_at: datetime = Field(default_factory=utcnow)
    updated_at: datetime = Field(default_factory=utcnow)
