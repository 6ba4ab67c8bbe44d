"""
Incident Tracker Exceptions
Raised at the service boundary and rendered by the handlers in app.main.
"""
from typing import List, Optional

from app.schemas.incident import ErrorCode, RuleViolation


class IncidentError(Exception):
    """Base class for every error the incident service reports to callers."""

    code: ErrorCode = ErrorCode.INTERNAL_ERROR
    status_code: int = 500

    def __init__(self, message: str, code: Optional[ErrorCode] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class ValidationFailed(IncidentError):
    code = ErrorCode.VALIDATION_FAILED
    status_code = 400

    def __init__(self, errors: List[RuleViolation]):
        super().__init__("Validation failed")
        self.errors = errors


class WorkflowViolation(IncidentError):
    """A status change refused by the workflow guards."""

    status_code = 400

    @classmethod
    def from_violation(cls, violation: RuleViolation) -> "WorkflowViolation":
        exc_type = _WORKFLOW_ERRORS.get(violation.code, cls)
        return exc_type(violation.message, violation.code)


class InvalidTransition(WorkflowViolation):
    code = ErrorCode.INVALID_TRANSITION


class UnknownStatus(WorkflowViolation):
    code = ErrorCode.UNKNOWN_STATUS


class NotArchivable(WorkflowViolation):
    code = ErrorCode.NOT_ARCHIVABLE


class NotResettable(WorkflowViolation):
    code = ErrorCode.NOT_RESETTABLE


class IncidentNotFound(IncidentError):
    code = ErrorCode.NOT_FOUND
    status_code = 404

    def __init__(self, incident_id: str):
        super().__init__(f"Incident {incident_id} not found")
        self.incident_id = incident_id


class PersistenceFailure(IncidentError):
    """Reading or writing the incidents data file failed."""

    code = ErrorCode.PERSISTENCE_FAILURE
    status_code = 500


class CsvDecodeError(IncidentError):
    """The uploaded buffer could not be read as a CSV file."""

    code = ErrorCode.MALFORMED_CSV
    status_code = 400


class UploadRejected(IncidentError):
    """The upload request itself is unusable (no file, wrong content type)."""

    code = ErrorCode.INVALID_UPLOAD
    status_code = 400


class UploadTooLarge(UploadRejected):
    code = ErrorCode.UPLOAD_TOO_LARGE
    status_code = 413


_WORKFLOW_ERRORS = {
    ErrorCode.INVALID_TRANSITION: InvalidTransition,
    ErrorCode.UNKNOWN_STATUS: UnknownStatus,
    ErrorCode.NOT_ARCHIVABLE: NotArchivable,
    ErrorCode.NOT_RESETTABLE: NotResettable,
}
