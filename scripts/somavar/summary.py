"""
Filter tag statistics for one run.

One row per tag with the number of emitted records carrying it, preceded by
the run totals.
"""

from collections import Counter
from typing import Sequence

import pandas as pd

from .records import PASS, Record


class FilterSummary:
    """Counts of dropped, emitted and derived records and of each filter tag."""

    def __init__(self):
        self.input_records = 0
        self.dropped_low_quality = 0
        self.emitted = 0
        self.derived = 0
        self.tags: Counter = Counter()

    def add(self, record: Record, emitted: Sequence[Record]) -> None:
        """Account for one input record and the records emitted for it."""
        self.input_records += 1
        if not emitted:
            self.dropped_low_quality += 1
            return
        self.emitted += len(emitted)
        self.derived += len(emitted) - 1
        for rec in emitted:
            self.tags.update(rec.filters)

    @property
    def passed(self) -> int:
        return self.tags.get(PASS, 0)

    def to_frame(self) -> pd.DataFrame:
        """Tag counts as a DataFrame (columns: tag, count), most frequent first."""
        rows = sorted(self.tags.items(), key=lambda x: (-x[1], x[0]))
        return pd.DataFrame(rows, columns=["tag", "count"])

    def write(self, path: str) -> None:
        df = self.to_frame()
        totals = pd.DataFrame(
            [
                ("#input_records", self.input_records),
                ("#dropped_low_quality", self.dropped_low_quality),
                ("#emitted", self.emitted),
                ("#derived_postcall", self.derived),
            ],
            columns=["tag", "count"],
        )
        pd.concat([totals, df], ignore_index=True).to_csv(path, sep="\t", index=False)

    def log_line(self) -> str:
        return (
            f"{self.input_records} input, {self.dropped_low_quality} dropped (low quality), "
            f"{self.emitted} emitted ({self.derived} post-call), {self.passed} PASS"
        )
