"""Inspection table ingestion from the Mattilsynet export or a local file."""

from __future__ import annotations

import csv
import io
import logging
from pathlib import Path

from smilefjes.common.constants import REQUIRED_SOURCE_COLUMNS
from smilefjes.common.errors import SourceTableError
from smilefjes.common.fs import read_text
from smilefjes.common.http import HttpClient, TimeoutConfig
from smilefjes.common.models import InspectionRecord

logger = logging.getLogger(__name__)


def _is_remote(source: str) -> bool:
    return source.startswith("http://") or source.startswith("https://")


def fetch_source_text(source: str, http_client: HttpClient | None = None) -> str:
    if not _is_remote(source):
        path = Path(source)
        if not path.exists():
            raise SourceTableError(f"Source file not found: {path}")
        return read_text(path)

    owns_client = http_client is None
    client = http_client or HttpClient()
    try:
        return client.get_text(source, timeout=TimeoutConfig(connect=20, read=180))
    finally:
        if owns_client:
            client.close()


def parse_inspection_table(text: str, *, delimiter: str = ";") -> list[InspectionRecord]:
    """Parse the delimited table into records.

    Rows missing an entity id, a date or a name are skipped here, before
    they can take part in the latest-per-entity reduction.
    """
    reader = csv.DictReader(io.StringIO(text.lstrip("\ufeff")), delimiter=delimiter)
    header = [name.strip() for name in (reader.fieldnames or [])]
    missing = [column for column in REQUIRED_SOURCE_COLUMNS if column not in header]
    if missing:
        raise SourceTableError(f"Source table is missing required columns: {', '.join(missing)}")
    reader.fieldnames = header

    records: list[InspectionRecord] = []
    skipped = 0
    for row in reader:
        record = InspectionRecord.from_row(row)
        if not (record.tilsynsobjektid and record.dato and record.navn):
            skipped += 1
            continue
        records.append(record)

    if skipped:
        logger.info("skipped %d rows without id, date or name", skipped)
    return records


def load_inspection_records(
    source: str,
    *,
    delimiter: str = ";",
    http_client: HttpClient | None = None,
) -> list[InspectionRecord]:
    return parse_inspection_table(fetch_source_text(source, http_client), delimiter=delimiter)
