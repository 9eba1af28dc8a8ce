from __future__ import annotations

import logging
import smtplib
import ssl
from dataclasses import dataclass
from datetime import datetime, timezone
from email.message import EmailMessage
from email.utils import formataddr
from typing import Iterable, List, Optional, Protocol, Tuple

from ..config import Settings
from ..errors import DeliveryError, ValidationError
from ..models.participant import Participant
from .organization import OrgConfig

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AssignmentNotice:
    giver_name: str
    giver_email: str
    receiver_name: str


class Notifier(Protocol):
    """Delivers an assignment. Raises on failure; the draw logs and moves on."""

    def __call__(self, notice: AssignmentNotice) -> None: ...


@dataclass(frozen=True)
class OutgoingMail:
    to: str
    subject: str
    body: str


@dataclass(frozen=True)
class SmtpMailer:
    """
    SMTP transport resolved from the organization settings row, with the
    EMAIL_* environment values filling any blanks.

    Every connection uses a bounded timeout; callers only use this after their
    database work is committed.
    """

    host: str
    port: int
    user: Optional[str]
    password: Optional[str]
    secure: bool
    from_address: str
    timeout_s: float

    @classmethod
    def from_config(cls, config: OrgConfig, settings: Settings) -> "SmtpMailer":
        host = config.smtp_host or settings.email_server
        if not host:
            raise ValidationError("SMTP settings not configured. Please configure email settings first.")

        port = config.smtp_port or settings.email_port or 587
        user = config.smtp_user or settings.email_user or None
        from_email = config.email_from or settings.email_from or user or ""
        return cls(
            host=host,
            port=int(port),
            user=user,
            password=config.smtp_password or settings.email_password or None,
            secure=bool(config.smtp_secure),
            from_address=formataddr((config.email_from_name or "Secret Santa", from_email)),
            timeout_s=settings.smtp_timeout_s,
        )

    def _connect(self) -> smtplib.SMTP:
        context = ssl.create_default_context()
        if self.secure:
            smtp: smtplib.SMTP = smtplib.SMTP_SSL(self.host, self.port, timeout=self.timeout_s, context=context)
        else:
            smtp = smtplib.SMTP(self.host, self.port, timeout=self.timeout_s)
            smtp.ehlo()
            if smtp.has_extn("starttls"):
                smtp.starttls(context=context)
                smtp.ehlo()
        if self.user:
            try:
                smtp.login(self.user, self.password or "")
            except smtplib.SMTPException:
                smtp.close()
                raise
        return smtp

    def _build(self, mail: OutgoingMail) -> EmailMessage:
        msg = EmailMessage()
        msg["From"] = self.from_address
        msg["To"] = mail.to
        msg["Subject"] = mail.subject
        msg.set_content(mail.body)
        return msg

    def send(self, mail: OutgoingMail) -> None:
        with self._connect() as smtp:
            smtp.send_message(self._build(mail))

    def send_many(self, mails: Iterable[OutgoingMail]) -> Tuple[List[str], List[str]]:
        """
        Send over one connection. A failure for one recipient does not stop
        the rest. Returns (delivered, failed) recipient lists.
        """
        delivered: List[str] = []
        failed: List[str] = []
        with self._connect() as smtp:
            for mail in mails:
                try:
                    smtp.send_message(self._build(mail))
                except (smtplib.SMTPException, OSError):
                    logger.exception("Failed sending mail to %s", mail.to)
                    failed.append(mail.to)
                else:
                    delivered.append(mail.to)
        return delivered, failed


# -------------------------
# Message bodies
# -------------------------

def assignment_mail(notice: AssignmentNotice, config: OrgConfig) -> OutgoingMail:
    lines = [
        f"Ho Ho Ho, {notice.giver_name}!",
        "",
        "You've been selected to be a Secret Santa for:",
        "",
        f"    {notice.receiver_name}",
        "",
        "Remember to keep it a secret!",
        "",
        config.email_footer,
    ]
    if config.hr_email:
        lines.append(f"Questions? Contact {config.hr_email}")
    return OutgoingMail(
        to=notice.giver_email,
        subject=config.email_subject or "Your Secret Santa Assignment!",
        body="\n".join(lines),
    )


def hr_copy_mail(notice: AssignmentNotice, hr_email: str) -> OutgoingMail:
    assigned_at = datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M UTC")
    body = "\n".join(
        [
            "Secret Santa Assignment Notification",
            "",
            f"Giver:       {notice.giver_name}",
            f"Giver Email: {notice.giver_email}",
            f"Receiver:    {notice.receiver_name}",
            f"Assigned At: {assigned_at}",
        ]
    )
    return OutgoingMail(
        to=hr_email,
        subject=f"Secret Santa Assignment: {notice.giver_name} -> {notice.receiver_name}",
        body=body,
    )


def reminder_mail(member: Participant, config: OrgConfig, app_url: str, custom_message: Optional[str]) -> OutgoingMail:
    lines = [
        f"Hi {member.name},",
        "",
        "This is a friendly reminder that you haven't picked your Secret Santa recipient yet!",
    ]
    if custom_message:
        lines += ["", custom_message]
    lines += [
        "",
        f"Pick your Secret Santa here: {app_url}",
        "",
        "Happy Holidays!",
        "",
        config.email_footer,
    ]
    return OutgoingMail(
        to=member.email,
        subject=f"Reminder: Pick Your Secret Santa! - {config.organization_name}",
        body="\n".join(lines),
    )


def smtp_check_mail(to: str, config: OrgConfig, mailer: SmtpMailer) -> OutgoingMail:
    body = "\n".join(
        [
            "Hello!",
            "",
            "This is a test email from your Secret Santa application.",
            "If you received this email, your SMTP settings are configured correctly!",
            "",
            f"SMTP Host: {mailer.host}",
            f"SMTP Port: {mailer.port}",
            f"From: {mailer.from_address}",
            "",
            config.email_footer,
        ]
    )
    return OutgoingMail(to=to, subject=f"Test Email - {config.organization_name} Secret Santa", body=body)


# -------------------------
# Dispatchers
# -------------------------

class AssignmentNotifier:
    """
    Default Notifier: mails the giver and, if configured, an HR copy.
    """

    def __init__(self, config: OrgConfig, settings: Settings) -> None:
        self.config = config
        self.settings = settings

    def __call__(self, notice: AssignmentNotice) -> None:
        mailer = SmtpMailer.from_config(self.config, self.settings)
        mailer.send(assignment_mail(notice, self.config))

        hr_email = self.config.hr_email or self.settings.hr_email
        if hr_email:
            mailer.send(hr_copy_mail(notice, hr_email))


def require_smtp(config: OrgConfig) -> None:
    if not config.smtp_configured:
        raise ValidationError("SMTP settings not configured. Please configure email settings first.")


def send_reminders(
    members: List[Participant],
    *,
    config: OrgConfig,
    settings: Settings,
    custom_message: Optional[str] = None,
) -> Tuple[int, int]:
    """
    Mail every member a reminder to draw. Returns (sent, failed).
    """
    require_smtp(config)
    if not members:
        return 0, 0

    mailer = SmtpMailer.from_config(config, settings)
    mails = [reminder_mail(m, config, settings.public_app_url, custom_message) for m in members]
    try:
        delivered, failed = mailer.send_many(mails)
    except (smtplib.SMTPException, OSError):
        # Could not connect/authenticate at all
        logger.exception("Reminder batch failed: SMTP transport unavailable")
        return 0, len(mails)

    logger.info("Reminders sent=%d failed=%d", len(delivered), len(failed))
    return len(delivered), len(failed)


def send_test_email(to: str, *, config: OrgConfig, settings: Settings) -> None:
    require_smtp(config)
    mailer = SmtpMailer.from_config(config, settings)
    try:
        mailer.send(smtp_check_mail(to, config, mailer))
    except (smtplib.SMTPException, OSError) as e:
        logger.exception("Test email to %s failed", to)
        raise DeliveryError(f"Failed to send test email: {e}") from e
