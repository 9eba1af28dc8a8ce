"""Shared helpers for draw/roster tests."""
from __future__ import annotations

from collections import Counter
from typing import Dict, List, Optional, Sequence, TypeVar

from sqlalchemy.engine import Engine
from sqlalchemy.exc import OperationalError
from sqlmodel import Session, select

from secret_santa.config import settings
from secret_santa.models.assignment import Assignment
from secret_santa.models.participant import Participant
from secret_santa.services.draw_engine import find_participant
from secret_santa.services.notifications import AssignmentNotice
from secret_santa.services.roster import replace_roster

T = TypeVar("T")

TRIO = [
    {"name": "Alice", "email": "a@x.com"},
    {"name": "Bob", "email": "b@x.com"},
    {"name": "Carol", "email": "c@x.com"},
]


def roster_of(*names: str) -> List[Dict[str, str]]:
    return [{"name": n, "email": f"{n.lower()}@example.com"} for n in names]


def email_of(name: str) -> str:
    return f"{name.lower()}@example.com"


def seed(session: Session, rows: Sequence[Dict[str, str]]) -> List[Participant]:
    return replace_roster(session, rows).participants


def as_user(email: str) -> Dict[str, str]:
    return {settings.auth_email_header: email}


def all_assignments(session: Session) -> List[Assignment]:
    session.expire_all()
    return list(session.exec(select(Assignment)).all())


def assert_assignment_invariants(session: Session) -> None:
    rows = all_assignments(session)
    givers = Counter(a.giver_id for a in rows)
    receivers = Counter(a.receiver_id for a in rows)
    assert all(c == 1 for c in givers.values()), givers
    assert all(c == 1 for c in receivers.values()), receivers
    assert all(a.giver_id != a.receiver_id for a in rows)


class RecordingNotifier:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.notices: List[AssignmentNotice] = []

    def __call__(self, notice: AssignmentNotice) -> None:
        self.notices.append(notice)
        if self.fail:
            raise ConnectionRefusedError("smtp unavailable")


class PickByName:
    """Deterministic chooser: picks the named participant when present, else the first."""

    def __init__(self, *names: str) -> None:
        self.names = list(names)
        self.pools: List[List[str]] = []

    def choice(self, seq: Sequence[T]) -> T:
        self.pools.append([p.name for p in seq])  # type: ignore[attr-defined]
        wanted = self.names.pop(0) if self.names else None
        for p in seq:
            if p.name == wanted:  # type: ignore[attr-defined]
                return p
        return seq[0]


class RacingChooser:
    """
    Simulates a concurrent draw: before returning its pick, a rival giver
    commits an assignment from a separate session.

    rival_picks is a list of (rival_email, receiver_email or None); None means
    "steal whatever this chooser is about to pick".
    """

    def __init__(self, engine: Engine, rival_picks: List[tuple]) -> None:
        self.engine = engine
        self.rival_picks = list(rival_picks)
        self.calls = 0

    def choice(self, seq: Sequence[T]) -> T:
        self.calls += 1
        target = seq[0]
        if self.rival_picks:
            rival_email, receiver_email = self.rival_picks.pop(0)
            with Session(self.engine) as other:
                rival = find_participant(other, rival_email)
                if receiver_email is None:
                    receiver_id = target.id  # type: ignore[attr-defined]
                else:
                    receiver_id = find_participant(other, receiver_email).id
                other.add(Assignment(giver_id=rival.id, receiver_id=receiver_id))
                other.commit()
        return target


def receiver_of(session: Session, giver_email: str) -> Optional[str]:
    session.expire_all()
    giver = find_participant(session, giver_email)
    if giver is None:
        return None
    row = session.exec(select(Assignment).where(Assignment.giver_id == giver.id)).first()
    if row is None:
        return None
    return session.get(Participant, row.receiver_id).name


def failing_commit(*args, **kwargs) -> None:
    """Stand-in for Session.commit when the database goes away mid-request."""
    raise OperationalError("COMMIT", {}, Exception("disk I/O error"))
