"""
Import and export of capsules.

Two formats are supported:
    - json: the same record layout as the capsule file
    - csv: one capsule per row under a header of the same record keys

Exports carry the raw message, not the locked placeholder, so a round trip
through either format reproduces every field. Nothing here encrypts.
"""

import csv
import json
import logging
from enum import Enum
from pathlib import Path
from typing import Any

from pydantic import TypeAdapter, ValidationError

from dearfuture.errors import TransferError, TransferFormatError
from dearfuture.schema import Capsule

logger = logging.getLogger(__name__)

CSV_FIELDS = (
    "id",
    "title",
    "message",
    "color",
    "unlockDate",
    "category",
    "dateCreated",
    "isOpened",
    "isDeleted",
    "deletedAt",
)

_CAPSULE_LIST = TypeAdapter(list[Capsule])


class ExportFormat(str, Enum):
    """Supported transfer formats."""

    JSON = "json"
    CSV = "csv"

    @classmethod
    def parse(cls, value: "str | ExportFormat") -> "ExportFormat":
        """Resolve a format name case-insensitively."""
        if isinstance(value, ExportFormat):
            return value
        try:
            return cls(value.strip().lower())
        except ValueError:
            raise TransferFormatError(format=value) from None


def export_capsules(capsules: list[Capsule], path: Path | str, fmt: "str | ExportFormat") -> int:
    """
    Write capsules to a file.

    Returns:
        Number of capsules written

    Raises:
        TransferFormatError: Unknown format
        TransferError: File could not be written
    """
    fmt = ExportFormat.parse(fmt)
    path = Path(path)
    records = [capsule.to_record() for capsule in capsules]

    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        if fmt is ExportFormat.JSON:
            path.write_text(
                json.dumps(records, ensure_ascii=False, indent=2) + "\n",
                encoding="utf-8",
            )
        else:
            with path.open("w", encoding="utf-8", newline="") as f:
                writer = csv.DictWriter(f, fieldnames=CSV_FIELDS)
                writer.writeheader()
                for record in records:
                    writer.writerow(_to_csv_row(record))
    except OSError as e:
        raise TransferError(path=str(path), format=fmt.value, underlying_error=str(e)) from e

    logger.info("Exported %d capsules to %s (%s)", len(records), path, fmt.value)
    return len(records)


def import_capsules(path: Path | str, fmt: "str | ExportFormat") -> list[Capsule]:
    """
    Read capsules from a file written by export_capsules.

    Raises:
        TransferFormatError: Unknown format
        TransferError: File missing, unreadable or not valid capsule data
    """
    fmt = ExportFormat.parse(fmt)
    path = Path(path)

    try:
        if fmt is ExportFormat.JSON:
            data: Any = json.loads(path.read_text(encoding="utf-8"))
        else:
            with path.open(encoding="utf-8", newline="") as f:
                data = [_from_csv_row(row) for row in csv.DictReader(f)]
        capsules = _CAPSULE_LIST.validate_python(data)
    except (OSError, ValueError, ValidationError) as e:
        raise TransferError(path=str(path), format=fmt.value, underlying_error=str(e)) from e

    logger.info("Read %d capsules from %s (%s)", len(capsules), path, fmt.value)
    return capsules


def _to_csv_row(record: dict[str, Any]) -> dict[str, str]:
    row = {}
    for key in CSV_FIELDS:
        value = record[key]
        if value is None:
            row[key] = ""
        elif isinstance(value, bool):
            row[key] = "true" if value else "false"
        else:
            row[key] = str(value)
    return row


def _from_csv_row(row: dict[str, str]) -> dict[str, Any]:
    record: dict[str, Any] = {key: row.get(key) for key in CSV_FIELDS}
    if not record["deletedAt"]:
        record["deletedAt"] = None
    return record
