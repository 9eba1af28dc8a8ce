from __future__ import annotations

import pytest
from sqlmodel import select

from secret_santa.database import session_scope
from secret_santa.errors import PersistenceError, ValidationError
from secret_santa.models.participant import Participant
from secret_santa.scripts import seed_roster
from secret_santa.services.roster import active_participants, replace_roster, validate_entries

from tests.utils import TRIO, failing_commit


def _active_emails(session) -> set:
    session.expire_all()
    return {p.email for p in active_participants(session)}


def test_replace_creates_active_participants(session) -> None:
    result = replace_roster(session, TRIO)

    assert result.count == 3
    assert {p.name for p in result.participants} == {"Alice", "Bob", "Carol"}
    assert all(p.is_active and p.id is not None for p in result.participants)
    assert _active_emails(session) == {"a@x.com", "b@x.com", "c@x.com"}


def test_replace_deactivates_members_missing_from_upload(session) -> None:
    replace_roster(session, TRIO)
    replace_roster(session, [{"name": "Bob", "email": "b@x.com"}, {"name": "Dan", "email": "d@x.com"}])

    assert _active_emails(session) == {"b@x.com", "d@x.com"}
    # Nobody is deleted
    assert len(session.exec(select(Participant)).all()) == 4


def test_identical_upload_keeps_ids(session) -> None:
    first = {p.email: p.id for p in replace_roster(session, TRIO).participants}
    second = {p.email: p.id for p in replace_roster(session, TRIO).participants}

    assert first == second
    assert len(session.exec(select(Participant)).all()) == 3


def test_upsert_matches_email_case_insensitively_and_updates_name(session) -> None:
    replace_roster(session, TRIO)
    result = replace_roster(session, [{"name": "Alice Smith", "email": "  A@X.COM "}])

    (alice,) = result.participants
    assert alice.email == "a@x.com"
    assert alice.name == "Alice Smith"
    assert len(session.exec(select(Participant)).all()) == 3


def test_deactivated_member_is_reactivated(session) -> None:
    replace_roster(session, TRIO)
    replace_roster(session, TRIO[:1])
    original = session.exec(select(Participant).where(Participant.email == "c@x.com")).one()
    original_id = original.id

    replace_roster(session, TRIO)

    session.expire_all()
    carol = session.exec(select(Participant).where(Participant.email == "c@x.com")).one()
    assert carol.id == original_id
    assert carol.is_active is True


def test_invalid_rows_are_skipped() -> None:
    rows = [
        {"name": "Alice", "email": "a@x.com"},
        {"name": "", "email": "blank@x.com"},
        {"name": "No At", "email": "nobody.x.com"},
        {"name": "Missing"},
        {"name": 42, "email": "num@x.com"},
        {"name": "Alice Again", "email": "A@x.com"},
    ]
    valid = validate_entries(rows)

    assert [(e.name, e.email) for e in valid] == [("Alice Again", "a@x.com")]


def test_upload_with_no_valid_rows_changes_nothing(session) -> None:
    replace_roster(session, TRIO)

    with pytest.raises(ValidationError):
        replace_roster(session, [{"name": "x", "email": "not-an-email"}, {"email": "y@x.com"}])

    with pytest.raises(ValidationError):
        replace_roster(session, [])

    assert _active_emails(session) == {"a@x.com", "b@x.com", "c@x.com"}


def test_seed_script_loads_sample_roster(engine, session, monkeypatch, capsys) -> None:
    monkeypatch.setattr(seed_roster, "init_db", lambda: None)
    monkeypatch.setattr(seed_roster, "session_scope", lambda: session_scope(bind=engine))

    seed_roster.main()

    assert len(_active_emails(session)) == len(seed_roster.SAMPLE_ROSTER)
    assert "Seeded roster: 5 active" in capsys.readouterr().out


def test_storage_failure_keeps_previous_roster(session, monkeypatch) -> None:
    replace_roster(session, TRIO)
    monkeypatch.setattr(session, "commit", failing_commit)

    with pytest.raises(PersistenceError):
        replace_roster(session, [{"name": "Dan", "email": "d@x.com"}])

    monkeypatch.undo()
    assert _active_emails(session) == {"a@x.com", "b@x.com", "c@x.com"}
    assert session.exec(select(Participant).where(Participant.email == "d@x.com")).first() is None
