from __future__ import annotations

from typing import Dict

import numpy as np

from .bounds import safe_size
from .constants import N_FIELDS_PER_OBS, N_FIELDS_PER_STRAND, Field, Strand


class ResultMatrix:
    """Flat count buffer indexed by (offset, strand, field).

    Layout is offset-major: for each offset a forward block of 12 fields followed by
    a reverse block of 12 fields. The buffer is zero-initialised and never resized;
    cells only ever increase during a scan.
    """

    def __init__(self, region_length: int) -> None:
        self.region_length = safe_size(
            region_length, lower=1, label="error in calculating cells needed for storing result"
        )
        self.counts = np.zeros(self.region_length * N_FIELDS_PER_OBS, dtype=np.int64)

    def __len__(self) -> int:
        return int(self.counts.shape[0])

    def __getitem__(self, idx: int) -> int:
        return int(self.counts[idx])

    def __setitem__(self, idx: int, value: int) -> None:
        self.counts[idx] = value

    def index(self, offset: int, strand: int) -> int:
        """Index of the first field of the strand block at ``offset``."""
        offset = safe_size(offset, upper=self.region_length - 1, label="matrix offset")
        return offset * N_FIELDS_PER_OBS + int(strand) * N_FIELDS_PER_STRAND

    def cell(self, offset: int, strand: int, field: int) -> int:
        return int(self.counts[self.index(offset, strand) + int(field)])

    def rows(self) -> np.ndarray:
        """Read-only ``(region_length, 24)`` view in output order."""
        view = self.counts.reshape(self.region_length, N_FIELDS_PER_OBS)
        view.flags.writeable = False
        return view

    def strand_block(self, strand: int) -> np.ndarray:
        """``(region_length, 12)`` copy of one strand's counters."""
        start = int(strand) * N_FIELDS_PER_STRAND
        return self.rows()[:, start : start + N_FIELDS_PER_STRAND].copy()

    def totals(self) -> Dict[str, Dict[str, int]]:
        out: Dict[str, Dict[str, int]] = {}
        for strand in Strand:
            sums = self.strand_block(strand).sum(axis=0)
            out[strand.name.lower()] = {f.name: int(sums[f]) for f in Field}
        return out
