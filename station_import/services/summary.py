from __future__ import annotations

from collections.abc import Iterable

from ..models.import_summary import ImportFailure, ImportOutcome, ImportSuccess, ImportSummary
from ..models.station import RowRejection

"""Result aggregation and SUMMARY rendering.

``summarize`` is pure: same outcomes in, same summary out. Error order follows
outcome order, which the importer keeps equal to source order.
"""

__all__ = [
    "summarize",
    "render_summary_line",
    "render_error_table",
]


def summarize(
    outcomes: Iterable[ImportOutcome], rejected: Iterable[RowRejection] = ()
) -> ImportSummary:
    successful = 0
    errors: list[ImportFailure] = []
    station_ids = []
    for outcome in outcomes:
        if isinstance(outcome, ImportSuccess):
            successful += 1
            station_ids.append(outcome.station_id)
        else:
            errors.append(outcome)
    return ImportSummary(
        total=successful + len(errors),
        successful=successful,
        failed=len(errors),
        errors=errors,
        station_ids=station_ids,
        rejected=list(rejected),
    )


def render_summary_line(summary: ImportSummary) -> str:
    """Render the SUMMARY line.

    Format: ``SUMMARY total={t} successful={s} failed={f} rejected={r}``

    >>> render_summary_line(ImportSummary(total=2, successful=2, failed=0))
    'SUMMARY total=2 successful=2 failed=0 rejected=0'
    """
    return (
        f"SUMMARY total={summary.total} "
        f"successful={summary.successful} "
        f"failed={summary.failed} "
        f"rejected={len(summary.rejected)}"
    )


def render_error_table(summary: ImportSummary) -> list[str]:
    """One ``station | error`` line per failure, header first; empty when none failed."""
    if not summary.errors:
        return []
    width = max(len("station"), *(len(e.station) for e in summary.errors))
    lines = [f"{'station'.ljust(width)} | error"]
    lines.extend(f"{e.station.ljust(width)} | {e.error}" for e in summary.errors)
    return lines
