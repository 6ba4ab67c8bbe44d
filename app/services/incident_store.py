"""
Incident Store
Owns the in-memory incident collection and its JSON file mirror.

Every mutation builds the next collection, writes it to disk and only
then publishes it in memory. If the write fails the published snapshot
is still the last durable one, so nothing needs undoing.

Writers are serialized by a re-entrant lock. Readers take no lock: they
read whichever immutable snapshot is currently published.
"""
import logging
import os
import tempfile
import threading
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Dict, Iterator, List, NamedTuple, Optional, Tuple, Union

from pydantic import TypeAdapter, ValidationError

from app.core.exceptions import PersistenceFailure
from app.models.incident import Incident, IncidentStatus
from app.schemas.incident import IncidentCreate

logger = logging.getLogger(__name__)

_incident_list = TypeAdapter(List[Incident])


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _new_id() -> str:
    return str(uuid.uuid4())


class _Snapshot(NamedTuple):
    records: Tuple[Incident, ...]
    index: Dict[str, int]

    @classmethod
    def of(cls, records: Tuple[Incident, ...]) -> "_Snapshot":
        return cls(records, {incident.id: pos for pos, incident in enumerate(records)})


def _atomic_write(path: Path, content: bytes) -> None:
    """Write file atomically via temp file + rename to prevent data loss on crash."""
    fd, tmp_path = tempfile.mkstemp(dir=path.parent, prefix=f".{path.name}.", suffix=".tmp")
    try:
        with os.fdopen(fd, "wb") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp_path, path)
    except BaseException:
        try:
            os.unlink(tmp_path)
        except OSError:
            pass
        raise
    _fsync_dir(path.parent)


def _fsync_dir(directory: Path) -> None:
    """Flush the directory entry so the rename survives a power loss."""
    try:
        dir_fd = os.open(directory, os.O_RDONLY)
    except OSError as exc:
        # Not supported on every platform; the file contents are already synced
        logger.warning(f"[STORE] Could not open {directory} for fsync: {exc}")
        return
    try:
        os.fsync(dir_fd)
    except OSError as exc:
        logger.warning(f"[STORE] Directory fsync failed for {directory}: {exc}")
    finally:
        os.close(dir_fd)


class IncidentStore:
    """Sole owner of the incident collection and the data file."""

    def __init__(
        self,
        file_path: Union[str, Path],
        clock: Callable[[], datetime] = _utcnow,
        id_factory: Callable[[], str] = _new_id,
    ):
        self.path = Path(file_path)
        self._clock = clock
        self._id_factory = id_factory
        self._lock = threading.RLock()
        self._snapshot = _Snapshot.of(())

    # ──────────────────────────── Lifecycle ────────────────────────────

    def initialize(self) -> None:
        """
        Load the data file into memory.

        A missing file means an empty collection; the file is created on
        the first write. A file that exists but cannot be parsed raises
        PersistenceFailure.
        """
        with self._lock:
            if not self.path.exists():
                logger.info(f"[STORE] No data file at {self.path}; starting empty")
                self._snapshot = _Snapshot.of(())
                return

            try:
                raw = self.path.read_bytes()
            except OSError as exc:
                logger.error(f"[STORE] Could not read {self.path}: {exc}")
                raise PersistenceFailure(f"Could not read incidents file {self.path}: {exc}") from exc

            if not raw.strip():
                records: List[Incident] = []
            else:
                try:
                    records = _incident_list.validate_json(raw)
                except ValidationError as exc:
                    logger.error(f"[STORE] {self.path} is not a valid incidents file: {exc}")
                    raise PersistenceFailure(f"Incidents file {self.path} is not parseable") from exc

            snapshot = _Snapshot.of(tuple(records))
            if len(snapshot.index) != len(snapshot.records):
                raise PersistenceFailure(f"Incidents file {self.path} contains duplicate ids")

            self._snapshot = snapshot
            logger.info(f"[STORE] Loaded {len(records)} incident(s) from {self.path}")

    @contextmanager
    def exclusive(self) -> Iterator["IncidentStore"]:
        """Hold the writer lock across a check-then-apply sequence."""
        with self._lock:
            yield self

    # ──────────────────────────── Reads ────────────────────────────

    def list_all(self, include_archived: bool = False) -> List[Incident]:
        records = self._snapshot.records
        if include_archived:
            return list(records)
        return [r for r in records if r.status != IncidentStatus.ARCHIVED]

    def find_by_id(self, incident_id: str) -> Optional[Incident]:
        snapshot = self._snapshot
        pos = snapshot.index.get(incident_id)
        return None if pos is None else snapshot.records[pos]

    def count(self) -> int:
        return len(self._snapshot.records)

    # ──────────────────────────── Writes ────────────────────────────

    def create(self, fields: IncidentCreate) -> Incident:
        with self._lock:
            incident_id = self._id_factory()
            while incident_id in self._snapshot.index:
                incident_id = self._id_factory()

            incident = Incident(
                id=incident_id,
                title=fields.title,
                description=fields.description,
                category=fields.category,
                severity=fields.severity,
                status=IncidentStatus.OPEN,
                reported_at=self._clock(),
            )
            self._commit(self._snapshot.records + (incident,))
            logger.info(f"[STORE] Created incident {incident.id} ({incident.category}/{incident.severity})")
            return incident

    def update_status(self, incident_id: str, next_status: IncidentStatus) -> Optional[Incident]:
        with self._lock:
            snapshot = self._snapshot
            pos = snapshot.index.get(incident_id)
            if pos is None:
                return None

            current = snapshot.records[pos]
            updated = current.with_status(next_status)
            records = snapshot.records[:pos] + (updated,) + snapshot.records[pos + 1:]
            self._commit(records)
            logger.info(
                f"[STORE] Incident {incident_id}: {current.status.value} -> {next_status.value}"
            )
            return updated

    def archive(self, incident_id: str) -> Optional[Incident]:
        return self.update_status(incident_id, IncidentStatus.ARCHIVED)

    def reset_archived(self, incident_id: str) -> Optional[Incident]:
        return self.update_status(incident_id, IncidentStatus.OPEN)

    # ──────────────────────── Persistence ────────────────────────

    def _commit(self, records: Tuple[Incident, ...]) -> None:
        """Persist the next collection, then publish it. Caller holds the lock."""
        content = _incident_list.dump_json(list(records), by_alias=True, indent=2)
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            _atomic_write(self.path, content)
        except OSError as exc:
            logger.error(f"[STORE] Failed to persist incidents to {self.path}: {exc}")
            raise PersistenceFailure(f"Failed to save incidents: {exc}") from exc
        self._snapshot = _Snapshot.of(records)
