"""
Incident Service
Inbound operation surface shared by the HTTP routes and any other caller.

Validation and workflow checks run under the store's writer lock, so the
status that was checked is the status the change is applied to.
Not-found comes back as None; rule failures are raised as IncidentError
subclasses.
"""
import logging
from typing import Any, Iterable, List, Mapping, Optional

from app.core.config import IncidentRules
from app.core.exceptions import ValidationFailed, WorkflowViolation
from app.models.incident import Incident
from app.schemas.incident import ImportSummary, TransitionResult
from app.services.bulk_import import BulkImporter
from app.services.incident_store import IncidentStore
from app.services.validation import (
    validate_archivable,
    validate_new_incident,
    validate_resettable,
    validate_transition,
)
from app.services.workflow import StatusWorkflow

logger = logging.getLogger(__name__)


class IncidentService:

    def __init__(self, store: IncidentStore, rules: IncidentRules):
        self.store = store
        self.rules = rules
        self.workflow = StatusWorkflow(rules)

    # ──────────────────────────── Queries ────────────────────────────

    def list_incidents(self, include_archived: bool = False) -> List[Incident]:
        return self.store.list_all(include_archived)

    def get_incident(self, incident_id: str) -> Optional[Incident]:
        return self.store.find_by_id(incident_id)

    # ──────────────────────────── Commands ────────────────────────────

    def create_incident(self, fields: Any) -> Incident:
        result = validate_new_incident(fields, self.rules)
        if not result.ok:
            raise ValidationFailed(result.errors)
        return self.store.create(result.value)

    def change_status(self, incident_id: str, requested_status: Any) -> Optional[Incident]:
        with self.store.exclusive() as store:
            incident = store.find_by_id(incident_id)
            if incident is None:
                return None
            check = validate_transition(incident.status, requested_status, self.workflow)
            self._raise_for(check, incident_id)
            return store.update_status(incident_id, check.next_status)

    def archive_incident(self, incident_id: str) -> Optional[Incident]:
        with self.store.exclusive() as store:
            incident = store.find_by_id(incident_id)
            if incident is None:
                return None
            self._raise_for(validate_archivable(incident.status, self.workflow), incident_id)
            return store.archive(incident_id)

    def reset_incident(self, incident_id: str) -> Optional[Incident]:
        with self.store.exclusive() as store:
            incident = store.find_by_id(incident_id)
            if incident is None:
                return None
            self._raise_for(validate_resettable(incident.status, self.workflow), incident_id)
            return store.reset_archived(incident_id)

    def bulk_import(self, rows: Iterable[Mapping[str, Any]]) -> ImportSummary:
        return BulkImporter(self.store, self.rules).run(rows)

    @staticmethod
    def _raise_for(check: TransitionResult, incident_id: str) -> None:
        if check.ok:
            return
        logger.info(f"[INCIDENTS] Refused change on {incident_id}: {check.error.message}")
        raise WorkflowViolation.from_violation(check.error)
