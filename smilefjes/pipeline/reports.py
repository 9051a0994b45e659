"""Run report aggregation."""

from __future__ import annotations

from collections import Counter
from pathlib import Path
from typing import Iterable

from smilefjes.common.fs import write_json
from smilefjes.common.models import OutputFeature


def rating_distribution(features: Iterable[OutputFeature]) -> dict[str, int]:
    counts = Counter(str(feature.smilefjes) for feature in features)
    return dict(sorted(counts.items()))


def write_run_summary(data_dir: Path, *, run_id: str, payload: dict) -> Path:
    summary_path = data_dir / "out" / "reports" / "run_summary.json"
    write_json(summary_path, {"run_id": run_id, **payload})
    return summary_path
