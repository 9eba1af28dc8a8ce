from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import event
from sqlmodel import Field, SQLModel


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def normalize_email(raw: Optional[str]) -> str:
    """
    Canonical form used as the participant natural key.
    Uniqueness is case-insensitive, so every write and lookup goes through this.
    """
    return ("" if raw is None else str(raw)).strip().lower()


class Participant(SQLModel, table=True):
    """
    A team member eligible to draw and be drawn.

    Notes:
    - email is the natural key (stored lowercased).
    - Rows are never deleted; a roster upload deactivates everyone first and
      then reactivates/creates exactly the uploaded rows.
    """

    __tablename__ = "participants"

    id: Optional[int] = Field(default=None, primary_key=True)

    name: str
    email: str = Field(index=True, unique=True, max_length=320)

    is_active: bool = Field(default=True, index=True)

    created_at: datetime = Field(default_factory=utcnow, index=True)
    updated_at: datetime = Field(default_factory=utcnow)

    def summary(self) -> dict:
        return {"id": self.id, "name": self.name, "email": self.email}


@event.listens_for(Participant, "before_insert")
def _participant_before_insert(mapper, connection, target: Participant) -> None:  # noqa: ANN001
    target.email = normalize_email(target.email)


@event.listens_for(Participant, "before_update")
def _participant_before_update(mapper, connection, target: Participant) -> None:  # noqa: ANN001
    target.email = normalize_email(target.email)
    target.updated_at = utcnow()
