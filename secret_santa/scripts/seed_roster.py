from __future__ import annotations

from typing import Dict, List

from sqlmodel import select

from secret_santa.database import init_db, session_scope
from secret_santa.models.participant import Participant
from secret_santa.services.roster import replace_roster

# Local demo roster; replaces whatever roster is currently active.
SAMPLE_ROSTER: List[Dict[str, str]] = [
    {"name": "Alice Example", "email": "alice@example.com"},
    {"name": "Bob Example", "email": "bob@example.com"},
    {"name": "Carol Example", "email": "carol@example.com"},
    {"name": "Dave Example", "email": "dave@example.com"},
    {"name": "Erin Example", "email": "erin@example.com"},
]


def main() -> None:
    # Ensure tables exist (local dev)
    init_db()

    with session_scope() as session:
        result = replace_roster(session, SAMPLE_ROSTER)
        total = session.exec(select(Participant)).all()

    print(f"Seeded roster: {result.count} active (participants on file: {len(total)})")


if __name__ == "__main__":
    main()
