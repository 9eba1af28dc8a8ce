from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from typing import Iterable, List, Optional, Protocol, Sequence, Set, TypeVar

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlmodel import Session, select

from ..errors import NoCandidatesAvailable, NotAuthenticated, NotAuthorized, PersistenceError, ReceiverRaceConflict
from ..models.assignment import Assignment
from ..models.participant import Participant, normalize_email
from .notifications import AssignmentNotice, Notifier

logger = logging.getLogger(__name__)

T = TypeVar("T")

DEFAULT_MAX_ATTEMPTS = 3


class Chooser(Protocol):
    def choice(self, seq: Sequence[T]) -> T: ...


# Uniform over the pool; OS entropy so draws can't be predicted from earlier ones.
_system_rng = random.SystemRandom()


@dataclass(frozen=True)
class DrawResult:
    """
    What the giver learns: the receiver's display name only, never their email.
    """
    receiver_name: str
    already_assigned: bool = False


# -------------------------
# Lookups
# -------------------------

def find_participant(session: Session, email: Optional[str]) -> Optional[Participant]:
    key = normalize_email(email)
    if not key:
        return None
    return session.exec(select(Participant).where(Participant.email == key)).first()


def assignment_for_giver(session: Session, giver_id: int) -> Optional[Assignment]:
    return session.exec(select(Assignment).where(Assignment.giver_id == giver_id)).first()


def candidate_pool(session: Session, giver_id: int, exclude: Iterable[int] = ()) -> List[Participant]:
    """
    Active participants that are not the giver and not already anyone's receiver.

    Participants who have already drawn stay eligible: everyone receives
    exactly once, independent of when they give.
    """
    taken = select(Assignment.receiver_id)
    q = (
        select(Participant)
        .where(
            Participant.is_active == True,  # noqa: E712
            Participant.id != giver_id,
            Participant.id.not_in(taken),
        )
        .order_by(Participant.id)
    )
    skip = set(exclude)
    return [p for p in session.exec(q).all() if p.id not in skip]


def draw_pool(session: Session, giver_id: int, exclude: Iterable[int] = ()) -> List[Participant]:
    """
    candidate_pool(), narrowed so the round can always close.

    When only one other active participant has yet to draw and nobody has
    drawn them either, they must be picked now: otherwise they would be left
    as the only receiver for their own draw.
    """
    pool = candidate_pool(session, giver_id, exclude)

    drew = select(Assignment.giver_id)
    undrawn = session.exec(
        select(Participant.id).where(
            Participant.is_active == True,  # noqa: E712
            Participant.id != giver_id,
            Participant.id.not_in(drew),
        )
    ).all()

    if len(undrawn) == 1:
        forced = [p for p in pool if p.id == undrawn[0]]
        if forced:
            return forced

    return pool


def _resolve_giver(session: Session, email: str) -> Participant:
    giver = find_participant(session, email)
    if giver is None or not giver.is_active:
        raise NotAuthorized("You are not authorized to participate in Secret Santa")
    return giver


def _existing_result(session: Session, existing: Assignment) -> DrawResult:
    receiver = session.get(Participant, existing.receiver_id)
    if receiver is None:
        raise PersistenceError("Assignment references a missing participant")
    return DrawResult(receiver_name=receiver.name, already_assigned=True)


# -------------------------
# Draw
# -------------------------

def draw(
    session: Session,
    giver_email: Optional[str],
    *,
    notifier: Optional[Notifier] = None,
    rng: Optional[Chooser] = None,
    max_attempts: int = DEFAULT_MAX_ATTEMPTS,
) -> DrawResult:
    """
    Assign a receiver to the giver, or return the one they already have.

    The pick is uniform over draw_pool(). That equals the raw candidate pool
    except when exactly one other participant has yet to draw and is still
    unreceived: then that person is the only choice, otherwise the round
    could end with them left to draw themselves.

    The candidate pool is read before the insert, so a concurrent draw may
    claim the same receiver in between. The assignments table's unique
    constraints reject the loser; we roll back, drop that receiver and pick
    again, up to max_attempts times.

    Notification happens only after the assignment is committed and never
    fails the draw.
    """
    email = normalize_email(giver_email)
    if not email:
        raise NotAuthenticated()

    chooser = rng or _system_rng
    excluded: Set[int] = set()

    try:
        for attempt in range(1, max(1, max_attempts) + 1):
            giver = _resolve_giver(session, email)

            existing = assignment_for_giver(session, giver.id)
            if existing is not None:
                return _existing_result(session, existing)

            pool = draw_pool(session, giver.id, exclude=excluded)
            if not pool:
                raise NoCandidatesAvailable()

            receiver = chooser.choice(pool)

            # Plain values: the ORM objects expire on commit/rollback
            giver_id, receiver_id = int(giver.id), int(receiver.id)
            notice = AssignmentNotice(
                giver_name=giver.name,
                giver_email=giver.email,
                receiver_name=receiver.name,
            )

            assignment = Assignment(giver_id=giver_id, receiver_id=receiver_id)
            session.add(assignment)
            try:
                session.commit()
            except IntegrityError:
                session.rollback()
                excluded.add(receiver_id)
                logger.warning(
                    "Draw conflict for giver=%s receiver=%s (attempt %d/%d)",
                    giver_id,
                    receiver_id,
                    attempt,
                    max_attempts,
                )
                continue

            assignment_id = int(assignment.id)
            break
        else:
            raise ReceiverRaceConflict()
    except SQLAlchemyError as e:
        session.rollback()
        logger.exception("Draw failed for %s", email)
        raise PersistenceError() from e

    logger.info("Assignment created: giver=%s receiver=%s", giver_id, receiver_id)

    if notifier is not None:
        _notify(session, assignment_id, notice, notifier)

    return DrawResult(receiver_name=notice.receiver_name)


def _notify(session: Session, assignment_id: int, notice: AssignmentNotice, notifier: Notifier) -> bool:
    """
    Best-effort delivery. The assignment stands regardless; email_sent stays
    False on failure so undelivered notices can be found later.
    """
    try:
        notifier(notice)
    except Exception:
        logger.exception("Failed to send assignment email to %s", notice.giver_email)
        return False

    try:
        session.exec(update(Assignment).where(Assignment.id == assignment_id).values(email_sent=True))
        session.commit()
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Email sent but could not flag assignment %s", assignment_id)
        return False

    return True


# -------------------------
# Caller status
# -------------------------

@dataclass(frozen=True)
class MyStatus:
    is_participant: bool
    has_drawn: bool
    receiver_name: Optional[str] = None


def status_for(session: Session, email: Optional[str]) -> MyStatus:
    """
    Read-only view of where the caller stands; never creates an assignment.
    """
    person = find_participant(session, email)
    if person is None or not person.is_active:
        return MyStatus(is_participant=False, has_drawn=False)

    existing = assignment_for_giver(session, person.id)
    if existing is None:
        return MyStatus(is_participant=True, has_drawn=False)

    return MyStatus(is_participant=True, has_drawn=True, receiver_name=_existing_result(session, existing).receiver_name)
