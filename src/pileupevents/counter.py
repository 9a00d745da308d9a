from __future__ import annotations

import logging
from typing import Iterable, Sequence

from tqdm import tqdm

from .bounds import safe_size
from .constants import NT16_TO_FIELD, Field, Strand
from .flags import ClassifiedObservation, EventFlags, classify_observation
from .matrix import ResultMatrix
from .models import CountParams, PileupColumnView, PileupObservation, Region
from .overlap import collate, resolve

logger = logging.getLogger(__name__)


class UpstreamPileupError(RuntimeError):
    """Raised when the pileup source reports an invalid column."""


def base_field(base: int) -> Field:
    # any non-ACGT nt16 code (and UNDEFINED) is counted as N
    return NT16_TO_FIELD.get(base, Field.N)


class AlleleEventCounter:
    """Accumulates classified observations into a ``ResultMatrix``.

    One counter serves one scan; it is the matrix's only writer.
    """

    def __init__(self, params: CountParams, matrix: ResultMatrix) -> None:
        self.params = params
        self.matrix = matrix

    def score_single(self, obs: ClassifiedObservation, offset: int) -> None:
        flags = obs.flags
        strand = Strand.REVERSE if flags & EventFlags.REV else Strand.FORWARD
        block = self.matrix.index(offset, strand)
        counts = self.matrix.counts

        counts[block + Field.NOBS] += 1
        if flags & EventFlags.HEAD:
            counts[block + Field.HEAD] += 1
        if flags & EventFlags.TAIL:
            counts[block + Field.TAIL] += 1

        if flags & EventFlags.POS_FAIL:
            counts[block + Field.N] += 1
            return

        if flags & EventFlags.IS_DEL:
            counts[block + Field.IS_DEL] += 1
        else:
            if flags & EventFlags.QUAL_FAIL:
                counts[block + Field.N] += 1
            else:
                counts[block + base_field(obs.base)] += 1
            if flags & EventFlags.FDEL:
                counts[block + Field.FDEL] += 1
            if flags & EventFlags.FINS:
                counts[block + Field.FINS] += 1
        # raw sum; divide by NOBS for an average
        counts[block + Field.MAPQ_SUM] += obs.mapping_quality

    def count_column(self, observations: Sequence[PileupObservation], offset: int) -> None:
        """Classify and count every observation of one pileup column."""
        classified = (classify_observation(o, self.params) for o in observations)
        if not self.params.discard_overlaps:
            for obs in classified:
                self.score_single(obs, offset)
            return

        toggle = 0
        for slot in collate(classified).values():
            chosen, toggle = resolve(slot, toggle)
            for obs in chosen:
                self.score_single(obs, offset)

    def count_columns(
        self,
        columns: Iterable[PileupColumnView],
        region: Region,
        *,
        progress: bool = False,
    ) -> int:
        """Consume pileup columns for ``region``; return the number of columns counted.

        Columns outside ``[region.start, region.end)`` are skipped.
        """
        it: Iterable[PileupColumnView] = columns
        if progress:
            it = tqdm(it, unit="pos", total=region.length, desc="Counting pileup columns")

        n_counted = 0
        n_skipped = 0
        for col in it:
            if col.tid < 0 or col.pos < 0:
                raise UpstreamPileupError(
                    f"pileup failed: invalid column (tid={col.tid}, pos={col.pos})"
                )
            if not (region.start <= col.pos < region.end):
                n_skipped += 1
                continue
            offset = safe_size(
                col.pos - region.start,
                upper=region.length - 1,
                label="error translating pileup position into index for results array",
            )
            self.count_column(col.observations, offset)
            n_counted += 1

        logger.debug(
            "Counted %d pileup columns (%d outside region skipped)", n_counted, n_skipped
        )
        return n_counted


def count_columns(
    columns: Iterable[PileupColumnView],
    region: Region,
    params: CountParams,
    *,
    progress: bool = False,
) -> ResultMatrix:
    """Run one scan over ``columns`` and return a freshly populated matrix."""
    matrix = ResultMatrix(region.length)
    AlleleEventCounter(params, matrix).count_columns(columns, region, progress=progress)
    return matrix
