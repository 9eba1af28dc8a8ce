from __future__ import annotations

from datetime import datetime
from typing import Optional

from sqlalchemy import CheckConstraint, UniqueConstraint
from sqlmodel import Field, SQLModel

from .participant import utcnow


class Assignment(SQLModel, table=True):
    """
    One directed giver -> receiver edge.

    The constraints below are the source of truth for draw correctness. The
    engine's candidate pool is a read followed by a later write, so two
    concurrent draws can pick the same receiver; the second insert fails here.
    """

    __tablename__ = "assignments"
    __table_args__ = (
        UniqueConstraint("giver_id", name="uq_assignment_giver"),
        UniqueConstraint("receiver_id", name="uq_assignment_receiver"),
        CheckConstraint("giver_id <> receiver_id", name="ck_assignment_not_self"),
    )

    id: Optional[int] = Field(default=None, primary_key=True)

    giver_id: int = Field(foreign_key="participants.id", index=True)
    receiver_id: int = Field(foreign_key="participants.id", index=True)

    assigned_at: datetime = Field(default_factory=utcnow, index=True)

    # Flipped after a successful best-effort notification; the only mutable field.
    email_sent: bool = Field(default=False, index=True)
