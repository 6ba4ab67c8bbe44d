from fastapi import HTTPException, Request, status

from app.services.incident_service import IncidentService


def get_incident_service(request: Request) -> IncidentService:
    service = getattr(request.app.state, "incident_service", None)
    if service is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Incident store is not initialized",
        )
    return service
