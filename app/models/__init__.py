from app.models.incident import Incident, IncidentCategory, IncidentSeverity, IncidentStatus

__all__ = [
    "Incident",
    "IncidentCategory",
    "IncidentSeverity",
    "IncidentStatus",
]
