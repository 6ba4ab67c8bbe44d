"""
Incident Model
The tracked record plus the enumerations it draws from.
"""
from datetime import datetime
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class IncidentStatus(str, Enum):
    OPEN = "OPEN"
    INVESTIGATING = "INVESTIGATING"
    RESOLVED = "RESOLVED"
    ARCHIVED = "ARCHIVED"


class IncidentCategory(str, Enum):
    IT = "IT"
    SAFETY = "SAFETY"
    FACILITIES = "FACILITIES"
    OTHER = "OTHER"


class IncidentSeverity(str, Enum):
    LOW = "LOW"
    MEDIUM = "MEDIUM"
    HIGH = "HIGH"


class Incident(BaseModel):
    """
    A single incident as held by the store.

    Instances are frozen: the store swaps in a new copy on every change,
    so a value handed to a caller never changes underneath them.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: str
    title: str
    description: str
    # Allowed values come from the injected rule set, not the enums above
    category: str
    severity: str
    status: IncidentStatus = IncidentStatus.OPEN
    reported_at: datetime = Field(alias="reportedAt")

    def with_status(self, status: IncidentStatus) -> "Incident":
        return self.model_copy(update={"status": status})
