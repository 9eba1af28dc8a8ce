from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Sequence

from sqlmodel import Session, select

from ..models.assignment import Assignment
from ..models.participant import Participant
from .roster import active_participants


@dataclass(frozen=True)
class ParticipationStats:
    total: int
    completed: int
    pending: int
    percentage: int
    pending_members: List[Participant] = field(default_factory=list)
    completed_members: List[Participant] = field(default_factory=list)

    def counts(self) -> Dict[str, int]:
        return {
            "total": self.total,
            "completed": self.completed,
            "pending": self.pending,
            "percentage": self.percentage,
        }


def completion_percentage(completed: int, total: int) -> int:
    if total <= 0:
        return 0
    # round-half-up, same as Math.round for non-negative values
    return int(100 * completed / total + 0.5)


def participation_stats(session: Session) -> ParticipationStats:
    """
    Split the active roster into members who have drawn and those who have not.
    Givers who have since been deactivated are not counted.
    """
    members = active_participants(session)
    givers = set(session.exec(select(Assignment.giver_id)).all())

    completed = [m for m in members if m.id in givers]
    pending = [m for m in members if m.id not in givers]

    return ParticipationStats(
        total=len(members),
        completed=len(completed),
        pending=len(pending),
        percentage=completion_percentage(len(completed), len(members)),
        pending_members=pending,
        completed_members=completed,
    )


def pending_members(session: Session, member_ids: Optional[Sequence[int]] = None) -> List[Participant]:
    """
    Reminder recipients: the given active members, or every active member who
    has not drawn yet when no ids are given.
    """
    if member_ids:
        q = select(Participant).where(
            Participant.id.in_(list(member_ids)),
            Participant.is_active == True,  # noqa: E712
        )
        return list(session.exec(q).all())

    return participation_stats(session).pending_members


def assignment_rows(session: Session) -> List[Dict[str, Any]]:
    """
    Admin listing of every assignment, newest first, with both parties' contact details.
    """
    assignments = session.exec(select(Assignment).order_by(Assignment.assigned_at.desc(), Assignment.id.desc())).all()

    ids = {a.giver_id for a in assignments} | {a.receiver_id for a in assignments}
    people: Dict[int, Participant] = {}
    if ids:
        people = {p.id: p for p in session.exec(select(Participant).where(Participant.id.in_(ids))).all()}

    rows: List[Dict[str, Any]] = []
    for a in assignments:
        giver = people.get(a.giver_id)
        receiver = people.get(a.receiver_id)
        rows.append(
            {
                "id": a.id,
                "giver": {"name": giver.name, "email": giver.email} if giver else None,
                "receiver": {"name": receiver.name, "email": receiver.email} if receiver else None,
                "assigned_at": a.assigned_at.isoformat(),
                "email_sent": bool(a.email_sent),
            }
        )
    return rows
