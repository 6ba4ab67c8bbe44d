"""
Bulk Import Pipeline
Turns an uploaded CSV buffer into incidents, one row at a time.

Expected CSV format:
  title,description,category,severity
  "Server outage","Production server unresponsive","IT","HIGH"

Rows are independent: a row that fails validation is counted as skipped
and the batch carries on. Rows created before a failure stay created.
"""
import codecs
import csv
import io
import logging
from typing import Any, Dict, Iterable, Iterator, Mapping

from app.core.config import IncidentRules
from app.core.exceptions import CsvDecodeError
from app.schemas.incident import ImportSummary
from app.services.incident_store import IncidentStore
from app.services.validation import validate_new_incident

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = ("title", "description", "category", "severity")


# ── CSV Decoding ──────────────────────────────────────────────────────────────

def iter_csv_rows(data: bytes) -> Iterator[Dict[str, str]]:
    """
    Decode a CSV upload into row dicts keyed by header name.

    The whole buffer is tokenized before any row is produced, so a
    decoding problem anywhere raises a single CsvDecodeError and nothing
    gets imported.
    """
    try:
        text = codecs.decode(data, "utf-8-sig")
    except UnicodeDecodeError as exc:
        raise CsvDecodeError("Could not decode file. Ensure it is UTF-8 CSV.") from exc

    reader = csv.DictReader(io.StringIO(text, newline=""), strict=True)
    try:
        header = reader.fieldnames
    except csv.Error as exc:
        raise CsvDecodeError(f"Malformed CSV header: {exc}") from exc

    if not header:
        raise CsvDecodeError("CSV file is empty")
    columns = {name.strip() for name in header if name}
    missing = [c for c in REQUIRED_COLUMNS if c not in columns]
    if missing:
        raise CsvDecodeError(f"CSV header is missing column(s): {', '.join(missing)}")

    rows = []
    try:
        for row in reader:
            # Strip whitespace from keys; short rows leave missing columns as None
            rows.append({
                k.strip(): v.strip() if isinstance(v, str) else v
                for k, v in row.items()
                if k
            })
    except csv.Error as exc:
        raise CsvDecodeError(f"Malformed CSV at line {reader.line_num}: {exc}") from exc

    return iter(rows)


# ── Import ────────────────────────────────────────────────────────────────────

class BulkImporter:
    """Validates each row and hands the valid ones to the store."""

    def __init__(self, store: IncidentStore, rules: IncidentRules):
        self.store = store
        self.rules = rules

    def run(self, rows: Iterable[Mapping[str, Any]]) -> ImportSummary:
        summary = ImportSummary()

        for row_number, row in enumerate(rows, start=1):
            summary.total_rows += 1
            result = validate_new_incident(row, self.rules)
            if not result.ok:
                summary.skipped += 1
                logger.debug(
                    f"[IMPORT] Row {row_number} skipped: "
                    + "; ".join(e.message for e in result.errors)
                )
                continue

            self.store.create(result.value)
            summary.created += 1

        logger.info(
            f"[IMPORT] {summary.total_rows} row(s): "
            f"{summary.created} created, {summary.skipped} skipped"
        )
        return summary
