"""
Status Workflow
State machine for the incident lifecycle.

Two guard layers live here side by side:
  * the generic-update table, used by the plain status change
    (OPEN -> INVESTIGATING, INVESTIGATING -> RESOLVED by default)
  * the archive / reset source sets, used only by the dedicated
    archive and reset operations

Both must be backed by edges of the full transition table. The generic
table may neither enter nor leave ARCHIVED, so archiving and resetting
stay reachable only through their own operations.
"""
import logging
from typing import Any, Dict, FrozenSet, List

from app.core.config import IncidentRules
from app.models.incident import IncidentStatus

logger = logging.getLogger(__name__)


class StatusWorkflow:
    """Read-only view over the configured transition tables."""

    def __init__(self, rules: IncidentRules):
        self._edges: Dict[IncidentStatus, FrozenSet[IncidentStatus]] = {
            status: frozenset(rules.transitions.get(status, []))
            for status in IncidentStatus
        }
        self._generic: Dict[IncidentStatus, FrozenSet[IncidentStatus]] = {
            status: frozenset(rules.generic_transitions.get(status, []))
            for status in IncidentStatus
        }
        self._archivable = frozenset(rules.archivable_statuses)
        self._resettable = frozenset(rules.resettable_statuses)
        self._check_consistency()

    # ──────────────────────────── Queries ────────────────────────────

    @staticmethod
    def is_known(value: Any) -> bool:
        return isinstance(value, str) and value in {s.value for s in IncidentStatus}

    def allowed_targets(self, status: IncidentStatus) -> List[IncidentStatus]:
        """Targets of the full table, in declaration order of the enum."""
        return [s for s in IncidentStatus if s in self._edges[status]]

    def has_edge(self, source: IncidentStatus, target: IncidentStatus) -> bool:
        return target in self._edges[source]

    def can_update(self, source: IncidentStatus, target: IncidentStatus) -> bool:
        """Whether the plain status change may move source -> target."""
        return target in self._generic[source]

    def can_archive(self, status: IncidentStatus) -> bool:
        return status in self._archivable

    def can_reset(self, status: IncidentStatus) -> bool:
        return status in self._resettable

    # ──────────────────────── Consistency ────────────────────────

    def _check_consistency(self) -> None:
        for source, targets in self._generic.items():
            for target in targets:
                if not self.has_edge(source, target):
                    raise ValueError(
                        f"Generic transition {source.value} -> {target.value} "
                        f"is not in the status transition table"
                    )
                if IncidentStatus.ARCHIVED in (source, target):
                    raise ValueError(
                        f"Generic transition {source.value} -> {target.value} "
                        f"must go through the archive or reset operation"
                    )
        for source in self._archivable:
            if not self.has_edge(source, IncidentStatus.ARCHIVED):
                raise ValueError(f"{source.value} cannot be archived: no edge to ARCHIVED")
        for source in self._resettable:
            if not self.has_edge(source, IncidentStatus.OPEN):
                raise ValueError(f"{source.value} cannot be reset: no edge to OPEN")
        logger.debug(
            f"[WORKFLOW] Loaded {sum(len(t) for t in self._edges.values())} edges, "
            f"{sum(len(t) for t in self._generic.values())} open to generic updates"
        )
