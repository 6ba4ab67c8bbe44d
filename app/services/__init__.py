from app.services.incident_service import IncidentService
from app.services.incident_store import IncidentStore

__all__ = [
    "IncidentService",
    "IncidentStore",
]
