"""
Incident Schemas
Pydantic models for request/response payloads and validation results.
"""
from enum import Enum
from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from app.models.incident import IncidentStatus


# ============================================
# ERRORS
# ============================================

class ErrorCode(str, Enum):
    VALIDATION_FAILED = "VALIDATION_FAILED"
    REQUIRED = "REQUIRED"
    INVALID_TYPE = "INVALID_TYPE"
    TOO_SHORT = "TOO_SHORT"
    TOO_LONG = "TOO_LONG"
    INVALID_CHOICE = "INVALID_CHOICE"
    INVALID_TRANSITION = "INVALID_TRANSITION"
    UNKNOWN_STATUS = "UNKNOWN_STATUS"
    NOT_ARCHIVABLE = "NOT_ARCHIVABLE"
    NOT_RESETTABLE = "NOT_RESETTABLE"
    NOT_FOUND = "NOT_FOUND"
    INVALID_UPLOAD = "INVALID_UPLOAD"
    UPLOAD_TOO_LARGE = "UPLOAD_TOO_LARGE"
    PERSISTENCE_FAILURE = "PERSISTENCE_FAILURE"
    MALFORMED_CSV = "MALFORMED_CSV"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class RuleViolation(BaseModel):
    """One broken rule; `field` is set for field-level errors."""

    model_config = ConfigDict(frozen=True)

    code: ErrorCode
    message: str
    field: Optional[str] = None


class ErrorResponse(BaseModel):
    success: bool = False
    detail: str
    code: ErrorCode
    errors: Optional[List[RuleViolation]] = None


# ============================================
# REQUEST SCHEMAS
# ============================================

class IncidentCreate(BaseModel):
    """Fields of a new incident that passed validation."""

    model_config = ConfigDict(frozen=True)

    title: str
    description: str
    category: str
    severity: str


class StatusUpdate(BaseModel):
    # Left loose so unknown values reach the workflow guard instead of a 422
    status: Optional[Any] = None


# ============================================
# RESULTS
# ============================================

class ValidationResult(BaseModel):
    value: Optional[IncidentCreate] = None
    errors: List[RuleViolation] = []

    @property
    def ok(self) -> bool:
        return not self.errors


class TransitionResult(BaseModel):
    next_status: Optional[IncidentStatus] = None
    error: Optional[RuleViolation] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class ImportSummary(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    total_rows: int = Field(0, alias="totalRows")
    created: int = 0
    skipped: int = 0
