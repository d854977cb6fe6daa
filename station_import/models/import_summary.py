from __future__ import annotations

import statistics
from dataclasses import dataclass, field
from typing import Any, Union

from .station import RowRejection

"""Import outcome and summary models for the station importer.

ImportSuccess / ImportFailure are the per-record outcomes of the interactive
policy. ImportSummary aggregates them and is the only value the pipeline hands
back to its caller; ``to_dict`` yields the wire shape shown to operators.
"""

__all__ = [
    "ImportSuccess",
    "ImportFailure",
    "ImportOutcome",
    "ImportSummary",
    "BatchStatsAccumulator",
]


@dataclass(frozen=True)
class ImportSuccess:
    station_id: Any  # Identifier generated by the store


@dataclass(frozen=True)
class ImportFailure:
    """A record that reached the store and was refused.

    ``station`` is the display name, not a line number, so operators can find
    the entity in their source file.
    """
    station: str
    error: str

    def to_dict(self) -> dict[str, str]:
        return {"station": self.station, "error": self.error}


ImportOutcome = Union[ImportSuccess, ImportFailure]


@dataclass(frozen=True)
class ImportSummary:
    """Aggregated result of one pipeline run.

    Invariants: ``successful + failed == total`` and ``len(errors) == failed``.
    Rows the validator rejected never reach the store; they are kept in
    ``rejected`` for reporting but are not part of any count.
    """
    total: int  # Records that reached the store
    successful: int
    failed: int
    errors: list[ImportFailure] = field(default_factory=list)
    station_ids: list[Any] = field(default_factory=list)  # Generated ids, source order
    rejected: list[RowRejection] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        """Wire shape: ``{total, successful, failed, errors: [{station, error}]}``."""
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "errors": [e.to_dict() for e in self.errors],
        }


class BatchStatsAccumulator:
    """Collects per-batch upsert timings for the bulk policy's debug output."""

    def __init__(self) -> None:
        self.batch_times: list[float] = []

    def add_batch_time(self, elapsed_seconds: float) -> None:
        self.batch_times.append(elapsed_seconds)

    def get_stats(self) -> tuple[int, float, float]:
        """Return (total_batches, avg_batch_seconds, p95_batch_seconds)."""
        if not self.batch_times:
            return (0, 0.0, 0.0)

        total_batches = len(self.batch_times)
        avg_batch_seconds = statistics.mean(self.batch_times)

        if total_batches == 1:
            p95_batch_seconds = self.batch_times[0]
        else:
            # 19th of 20 cut points = 95th percentile
            p95_batch_seconds = statistics.quantiles(
                self.batch_times, n=20, method='inclusive'
            )[18]

        return (total_batches, avg_batch_seconds, p95_batch_seconds)
