"""
Validation Engine
Pure checks over caller-supplied shapes. Nothing here raises for a bad
input; failures come back as RuleViolation values.
"""
from typing import Any, List, Mapping, Optional, Sequence

from app.core.config import IncidentRules
from app.models.incident import IncidentStatus
from app.schemas.incident import (
    ErrorCode,
    IncidentCreate,
    RuleViolation,
    TransitionResult,
    ValidationResult,
)
from app.services.workflow import StatusWorkflow


def _check_text(
    candidate: Mapping[str, Any],
    field: str,
    min_length: int,
    max_length: int,
    errors: List[RuleViolation],
) -> Optional[str]:
    value = candidate.get(field)
    if value is None or (isinstance(value, str) and not value.strip()):
        errors.append(RuleViolation(field=field, code=ErrorCode.REQUIRED, message=f"{field} is required"))
        return None
    if not isinstance(value, str):
        errors.append(RuleViolation(field=field, code=ErrorCode.INVALID_TYPE, message=f"{field} must be text"))
        return None

    value = value.strip()
    if len(value) < min_length:
        errors.append(RuleViolation(
            field=field,
            code=ErrorCode.TOO_SHORT,
            message=f"{field} must be at least {min_length} characters",
        ))
        return None
    if len(value) > max_length:
        errors.append(RuleViolation(
            field=field,
            code=ErrorCode.TOO_LONG,
            message=f"{field} must be at most {max_length} characters",
        ))
        return None
    return value


def _check_choice(
    candidate: Mapping[str, Any],
    field: str,
    allowed: Sequence[str],
    errors: List[RuleViolation],
) -> Optional[str]:
    value = candidate.get(field)
    if isinstance(value, str):
        value = value.strip()
    if value is None or value == "":
        errors.append(RuleViolation(field=field, code=ErrorCode.REQUIRED, message=f"{field} is required"))
        return None
    if value not in allowed:
        errors.append(RuleViolation(
            field=field,
            code=ErrorCode.INVALID_CHOICE,
            message=f"{field} must be one of: {', '.join(allowed)}",
        ))
        return None
    return value


def validate_new_incident(candidate: Any, rules: IncidentRules) -> ValidationResult:
    """
    Check a proposed incident.

    Every field is checked even after one fails, so the caller gets the
    full list of problems in field order.
    """
    if not isinstance(candidate, Mapping):
        return ValidationResult(errors=[RuleViolation(
            code=ErrorCode.INVALID_TYPE,
            message="Incident must be an object with title, description, category and severity",
        )])

    errors: List[RuleViolation] = []
    title = _check_text(candidate, "title", rules.title_min_length, rules.title_max_length, errors)
    description = _check_text(
        candidate, "description", rules.description_min_length, rules.description_max_length, errors
    )
    category = _check_choice(candidate, "category", rules.categories, errors)
    severity = _check_choice(candidate, "severity", rules.severities, errors)

    if errors:
        return ValidationResult(errors=errors)
    return ValidationResult(value=IncidentCreate(
        title=title,
        description=description,
        category=category,
        severity=severity,
    ))


def validate_transition(
    current_status: IncidentStatus,
    requested_status: Any,
    workflow: StatusWorkflow,
) -> TransitionResult:
    """Check a plain status change against the generic-update table."""
    if not workflow.is_known(requested_status):
        return TransitionResult(error=RuleViolation(
            field="status",
            code=ErrorCode.UNKNOWN_STATUS,
            message=f"Unknown status: {requested_status!r}",
        ))

    target = IncidentStatus(requested_status)
    if not workflow.can_update(current_status, target):
        return TransitionResult(error=RuleViolation(
            field="status",
            code=ErrorCode.INVALID_TRANSITION,
            message=f"Invalid transition from {current_status.value} to {target.value}",
        ))
    return TransitionResult(next_status=target)


def validate_archivable(current_status: IncidentStatus, workflow: StatusWorkflow) -> TransitionResult:
    if not workflow.can_archive(current_status):
        return TransitionResult(error=RuleViolation(
            code=ErrorCode.NOT_ARCHIVABLE,
            message=f"Incident in status {current_status.value} cannot be archived",
        ))
    return TransitionResult(next_status=IncidentStatus.ARCHIVED)


def validate_resettable(current_status: IncidentStatus, workflow: StatusWorkflow) -> TransitionResult:
    if not workflow.can_reset(current_status):
        return TransitionResult(error=RuleViolation(
            code=ErrorCode.NOT_RESETTABLE,
            message=f"Incident in status {current_status.value} cannot be reset",
        ))
    return TransitionResult(next_status=IncidentStatus.OPEN)
