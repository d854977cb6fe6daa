from __future__ import annotations

import sys
from typing import Any

from tqdm import tqdm
from tqdm.std import tqdm as TqdmType

"""Progress display with tqdm (TTY only).

One bar per pipeline run: records for the interactive policy, batches for the
bulk policy. Disabled when stdout is not a TTY so CI logs stay free of ANSI
control sequences.
"""

__all__ = [
    "ProgressTracker",
    "is_tty_enabled",
]


def is_tty_enabled() -> bool:
    return sys.stdout.isatty()


class ProgressTracker:
    """tqdm wrapper that becomes a no-op outside a TTY."""

    def __init__(self, total: int, *, description: str = "Importing", unit: str = "station") -> None:
        self.total = total
        self.description = description
        self.unit = unit
        self.done = 0

        self.enabled = is_tty_enabled()
        self.pbar: TqdmType[Any] | None
        if self.enabled:
            self.pbar = tqdm(
                total=total,
                desc=description,
                unit=unit,
                disable=False,
                leave=True,
                position=0,
                ncols=80,
                ascii=True,
            )
        else:
            self.pbar = None

    def advance(self, n: int = 1, **postfix: Any) -> None:
        """Mark ``n`` more units done and optionally refresh the postfix stats."""
        self.done += n
        if self.enabled and self.pbar is not None:
            self.pbar.update(n)
            if postfix:
                self.pbar.set_postfix(**postfix)

    def close(self) -> None:
        if self.enabled and self.pbar is not None:
            self.pbar.close()
            self.pbar = None

    def __enter__(self) -> ProgressTracker:
        return self

    def __exit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        self.close()
