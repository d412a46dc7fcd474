"""CSV export of audit records."""

from __future__ import annotations

import csv
import logging
import os
import tempfile
from pathlib import Path
from typing import Iterable

from adminops.audit.models import EXPORT_COLUMNS, AuditEventRecord
from adminops.errors import ExportWriteError

logger = logging.getLogger(__name__)


def write_csv(records: Iterable[AuditEventRecord], path: str | Path) -> int:
    """Write records to ``path``, replacing any previous export.

    Rows go to a temporary file next to the destination which is renamed
    into place only after every row is written, so a failed export never
    leaves a partial file behind. Returns the number of data rows.
    """
    path = Path(path).expanduser()
    directory = path.parent
    if not directory.is_dir():
        raise ExportWriteError(f"Export directory does not exist: {directory}")

    try:
        fd, tmp_name = tempfile.mkstemp(
            prefix=f".{path.name}.", suffix=".tmp", dir=directory,
        )
    except OSError as exc:
        raise ExportWriteError(f"Cannot write to {directory}: {exc}") from exc

    rows = 0
    try:
        with os.fdopen(fd, "w", newline="", encoding="utf-8") as f:
            writer = csv.DictWriter(f, fieldnames=list(EXPORT_COLUMNS))
            writer.writeheader()
            for record in records:
                writer.writerow(record.to_row())
                rows += 1
        os.replace(tmp_name, path)
    except OSError as exc:
        _discard(tmp_name)
        raise ExportWriteError(f"Failed to write export {path}: {exc}") from exc
    except BaseException:
        _discard(tmp_name)
        raise

    logger.info("Wrote %d audit records to %s", rows, path)
    return rows


def _discard(tmp_name: str) -> None:
    try:
        os.unlink(tmp_name)
    except FileNotFoundError:
        pass
