from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Mapping, Optional

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from ..errors import PersistenceError, ValidationError
from ..models.participant import Participant, normalize_email, utcnow

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RosterEntry:
    name: str
    email: str


@dataclass(frozen=True)
class RosterResult:
    count: int
    participants: List[Participant]


def _clean_entry(raw: Mapping[str, Any]) -> Optional[RosterEntry]:
    """
    Rows come from a parsed spreadsheet, so values may be missing or non-strings.
    Returns None for rows that should be skipped.
    """
    name = raw.get("name")
    email = raw.get("email")
    if not isinstance(name, str) or not isinstance(email, str):
        return None

    name = name.strip()
    email = normalize_email(email)
    if not name or not email or "@" not in email:
        return None

    return RosterEntry(name=name, email=email)


def validate_entries(entries: Iterable[Mapping[str, Any]]) -> List[RosterEntry]:
    """
    Filter to valid rows. Duplicate emails collapse to one entry (last name wins).
    """
    by_email: Dict[str, RosterEntry] = {}
    for raw in entries:
        entry = _clean_entry(raw)
        if entry is not None:
            by_email[entry.email] = entry

    if not by_email:
        raise ValidationError('No valid rows found. Ensure columns are named "name" and "email"')

    return list(by_email.values())


def replace_roster(session: Session, entries: Iterable[Mapping[str, Any]]) -> RosterResult:
    """
    Replace the active roster wholesale.

    1) deactivate every active participant
    2) upsert each valid row by email (update name + reactivate, or create)

    Both phases commit together, so a concurrent draw sees either the old or
    the new roster. Invalid input changes nothing.
    """
    valid = validate_entries(entries)

    try:
        session.exec(
            update(Participant)
            .where(Participant.is_active == True)  # noqa: E712
            .values(is_active=False, updated_at=utcnow())
        )

        emails = [e.email for e in valid]
        existing = {
            p.email: p
            for p in session.exec(select(Participant).where(Participant.email.in_(emails))).all()
        }

        participants: List[Participant] = []
        for entry in valid:
            person = existing.get(entry.email)
            if person is None:
                person = Participant(name=entry.name, email=entry.email, is_active=True)
            else:
                person.name = entry.name
                person.is_active = True
            session.add(person)
            participants.append(person)

        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Roster replace failed")
        raise PersistenceError("Failed to save the roster") from e

    for person in participants:
        session.refresh(person)

    logger.info("Roster replaced: %d active participants", len(participants))
    return RosterResult(count=len(participants), participants=participants)


def active_participants(session: Session) -> List[Participant]:
    return list(
        session.exec(
            select(Participant).where(Participant.is_active == True).order_by(Participant.name)  # noqa: E712
        ).all()
    )
