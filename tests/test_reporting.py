from __future__ import annotations

from secret_santa.services.draw_engine import draw
from secret_santa.services.reporting import (
    assignment_rows,
    completion_percentage,
    participation_stats,
    pending_members,
)
from secret_santa.services.roster import replace_roster

from tests.utils import PickByName, email_of, roster_of, seed


def test_empty_roster_reports_zero_percent(session) -> None:
    stats = participation_stats(session)
    assert stats.counts() == {"total": 0, "completed": 0, "pending": 0, "percentage": 0}


def test_percentage_rounds() -> None:
    assert completion_percentage(1, 3) == 33
    assert completion_percentage(2, 3) == 67
    assert completion_percentage(1, 2) == 50
    assert completion_percentage(0, 0) == 0


def test_stats_split_drawn_and_pending(session) -> None:
    seed(session, roster_of("Ann", "Ben", "Cat"))
    draw(session, email_of("Ann"))

    stats = participation_stats(session)

    assert stats.counts() == {"total": 3, "completed": 1, "pending": 2, "percentage": 33}
    assert [m.name for m in stats.completed_members] == ["Ann"]
    assert sorted(m.name for m in stats.pending_members) == ["Ben", "Cat"]
    assert stats.completed + stats.pending == stats.total


def test_inactive_givers_are_not_counted(session) -> None:
    seed(session, roster_of("Ann", "Ben", "Cat", "Dan"))
    draw(session, email_of("Ann"))
    replace_roster(session, roster_of("Ben", "Cat", "Dan"))

    stats = participation_stats(session)
    assert stats.counts() == {"total": 3, "completed": 0, "pending": 3, "percentage": 0}


def test_pending_members_by_id_skips_inactive(session) -> None:
    people = {p.name: p.id for p in seed(session, roster_of("Ann", "Ben", "Cat"))}
    replace_roster(session, roster_of("Ann", "Ben"))

    picked = pending_members(session, [people["Ann"], people["Cat"]])
    assert [m.name for m in picked] == ["Ann"]

    assert sorted(m.name for m in pending_members(session)) == ["Ann", "Ben"]


def test_assignment_rows_include_both_parties(session) -> None:
    seed(session, roster_of("Ann", "Ben", "Cat"))
    draw(session, email_of("Ann"), rng=PickByName("Cat"))

    (row,) = assignment_rows(session)
    assert row["giver"] == {"name": "Ann", "email": "ann@example.com"}
    assert row["receiver"] == {"name": "Cat", "email": "cat@example.com"}
    assert row["email_sent"] is False
