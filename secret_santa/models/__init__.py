# secret_santa/models/__init__.py
# Central import surface for SQLModel table registration.

from .participant import Participant, normalize_email
from .assignment import Assignment
from .organization import SETTINGS_ID, OrganizationSettings

__all__ = [
    "Participant",
    "normalize_email",
    "Assignment",
    "SETTINGS_ID",
    "OrganizationSettings",
]
