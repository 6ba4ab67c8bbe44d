"""
Incident Routes

Endpoints:
  GET    /api/incidents                  – list incidents (?includeArchived=true|false)
  GET    /api/incidents/{id}             – get one incident
  POST   /api/incidents                  – create incident
  PATCH  /api/incidents/{id}/status      – generic status change
  POST   /api/incidents/{id}/archive     – archive (from OPEN or RESOLVED)
  POST   /api/incidents/{id}/reset       – reset an archived incident to OPEN
  POST   /api/incidents/bulk-upload      – bulk import from a CSV file

Rule failures are raised as IncidentError and rendered by the handlers
registered in app.main.
"""
import logging
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, Body, Depends, File, Query, UploadFile, status
from fastapi.concurrency import run_in_threadpool

from app.core.config import settings
from app.core.exceptions import IncidentNotFound, UploadRejected, UploadTooLarge
from app.dependencies import get_incident_service
from app.models.incident import Incident
from app.schemas.incident import ImportSummary, StatusUpdate
from app.services.bulk_import import iter_csv_rows
from app.services.incident_service import IncidentService

router = APIRouter(tags=["Incidents"])
logger = logging.getLogger(__name__)


def _not_found(incident_id: str, incident: Optional[Incident]) -> Incident:
    if incident is None:
        raise IncidentNotFound(incident_id)
    return incident


@router.get("", response_model=List[Incident])
def list_incidents(
    include_archived: Optional[bool] = Query(None, alias="includeArchived"),
    service: IncidentService = Depends(get_incident_service),
):
    """List incidents in the order they were reported."""
    if include_archived is None:
        include_archived = settings.SHOW_ARCHIVED_BY_DEFAULT
    return service.list_incidents(include_archived)


@router.post("/bulk-upload", response_model=ImportSummary)
async def bulk_upload(
    file: Optional[UploadFile] = File(None),
    service: IncidentService = Depends(get_incident_service),
):
    """
    Bulk import from a CSV file with columns
    title, description, category, severity.
    Invalid rows are skipped; only counts are returned.
    """
    if file is None:
        raise UploadRejected("No file uploaded")

    allowed = settings.BULK_UPLOAD_ALLOWED_MIME_TYPES
    if file.content_type and allowed and file.content_type not in allowed:
        raise UploadRejected(f"Unsupported file type '{file.content_type}'. Upload a CSV file.")

    content = await file.read(settings.BULK_UPLOAD_MAX_FILE_SIZE + 1)
    if len(content) > settings.BULK_UPLOAD_MAX_FILE_SIZE:
        raise UploadTooLarge(f"File exceeds {settings.BULK_UPLOAD_MAX_FILE_SIZE} bytes")

    logger.info(f"[INCIDENTS] Bulk upload '{file.filename}' ({len(content)} bytes)")
    rows = iter_csv_rows(content)
    # Each row create takes the store lock and fsyncs the data file
    return await run_in_threadpool(service.bulk_import, rows)


@router.get("/{incident_id}", response_model=Incident)
def get_incident(incident_id: str, service: IncidentService = Depends(get_incident_service)):
    return _not_found(incident_id, service.get_incident(incident_id))


@router.post("", response_model=Incident, status_code=status.HTTP_201_CREATED)
def create_incident(
    payload: Dict[str, Any] = Body(...),
    service: IncidentService = Depends(get_incident_service),
):
    """Create an incident. It starts OPEN with a generated id and timestamp."""
    return service.create_incident(payload)


@router.patch("/{incident_id}/status", response_model=Incident)
def update_incident_status(
    incident_id: str,
    payload: StatusUpdate,
    service: IncidentService = Depends(get_incident_service),
):
    """Move an incident along the workflow (OPEN -> INVESTIGATING -> RESOLVED)."""
    return _not_found(incident_id, service.change_status(incident_id, payload.status))


@router.post("/{incident_id}/archive", response_model=Incident)
def archive_incident(incident_id: str, service: IncidentService = Depends(get_incident_service)):
    return _not_found(incident_id, service.archive_incident(incident_id))


@router.post("/{incident_id}/reset", response_model=Incident)
def reset_incident(incident_id: str, service: IncidentService = Depends(get_incident_service)):
    return _not_found(incident_id, service.reset_incident(incident_id))
