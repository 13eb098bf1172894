"""Schedule export to CSV and JSON."""
from __future__ import annotations

import csv
import io
import json
from typing import Iterable, Iterator

from berthboard.schemas.vessel import Vessel
from berthboard.utils.dates import hours_between, to_iso

EXPORT_COLUMNS = [
    "voyage_number", "vessel_name", "vessel_type", "operator", "route_info",
    "eta", "etd", "turnaround_hours", "loa", "draft",
    "terminal_id", "berth_id", "status",
]

EXPORT_FORMATS = ("csv", "json")


def _row(vessel: Vessel) -> list:
    return [
        vessel.voyage_number,
        vessel.vessel_name,
        vessel.vessel_type.value,
        vessel.operator,
        vessel.route_info,
        to_iso(vessel.eta),
        to_iso(vessel.etd),
        round(hours_between(vessel.eta, vessel.etd), 2),
        vessel.loa,
        vessel.draft,
        vessel.terminal_id,
        vessel.berth_id or "",
        vessel.status.value,
    ]


def iter_csv(vessels: Iterable[Vessel]) -> Iterator[str]:
    """Yield the CSV one line at a time (header first) for streaming."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow(EXPORT_COLUMNS)
    yield output.getvalue()
    output.seek(0)
    output.truncate(0)

    for vessel in vessels:
        writer.writerow(_row(vessel))
        yield output.getvalue()
        output.seek(0)
        output.truncate(0)


def vessels_to_csv(vessels: Iterable[Vessel]) -> str:
    return "".join(iter_csv(vessels))


def vessels_to_json(vessels: Iterable[Vessel]) -> str:
    return json.dumps([v.model_dump(mode="json") for v in vessels], indent=2)


def export_vessels(vessels: Iterable[Vessel], fmt: str = "csv") -> str:
    fmt = fmt.lower()
    if fmt == "csv":
        return vessels_to_csv(vessels)
    if fmt == "json":
        return vessels_to_json(vessels)
    raise ValueError(f"Unsupported export format: {fmt} (expected one of {', '.join(EXPORT_FORMATS)})")
