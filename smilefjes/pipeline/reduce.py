"""Latest-inspection-per-establishment reduction."""

from __future__ import annotations

from typing import Iterable

from smilefjes.common.models import InspectionRecord
from smilefjes.common.time_utils import parse_inspection_date


def latest_per_entity(records: Iterable[InspectionRecord]) -> dict[str, InspectionRecord]:
    """Keep the record with the greatest inspection date for each entity id.

    Ties keep whichever record came first. The mapping preserves the order in
    which entity ids were first seen.
    """
    latest: dict[str, InspectionRecord] = {}
    latest_dates: dict[str, int] = {}
    for record in records:
        if not (record.tilsynsobjektid and record.dato and record.navn):
            continue
        key = record.tilsynsobjektid
        parsed = parse_inspection_date(record.dato)
        if key not in latest or parsed > latest_dates[key]:
            latest[key] = record
            latest_dates[key] = parsed
    return latest


def limit_entities(latest: dict[str, InspectionRecord], max_features: int) -> list[InspectionRecord]:
    rows = list(latest.values())
    if max_features <= 0:
        return rows
    return rows[:max_features]
