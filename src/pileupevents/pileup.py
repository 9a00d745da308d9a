"""pysam adapter: pileup columns for a region, and the end-to-end ``count_region`` scan.

Pileup construction (CIGAR walking, depth windowing) is left to htslib through
``pysam.AlignmentFile.pileup``. The "samtools" stepper applies the flag and MAPQ
filters as reads enter the pileup, before the depth cap. This module only
detaches each column into plain ``PileupObservation`` objects so the counting
engine never touches pysam objects.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Iterator, Optional, Tuple

import pysam

from .bounds import safe_size
from .constants import NT16_TABLE, UNDEFINED
from .counter import UpstreamPileupError, count_columns
from .matrix import ResultMatrix
from .models import CountParams, PileupColumnView, PileupObservation, Region
from .region import parse_region

logger = logging.getLogger(__name__)

_NT16_INDEX = {c: i for i, c in enumerate(NT16_TABLE)}


def nt16_code(base: str) -> int:
    """htslib 4-bit code for a sequence letter; unknown letters map to N (15)."""
    return _NT16_INDEX.get(base.upper(), _NT16_INDEX["N"])


def read_passes_filters(read: pysam.AlignedSegment, params: CountParams) -> bool:
    flag = int(read.flag)
    if flag & params.exclude_flag_mask:
        return False
    if (flag & params.include_flag_mask) != params.include_flag_mask:
        return False
    return int(read.mapping_quality) >= params.min_mapping_quality


def observation_from_pileup_read(pr: pysam.PileupRead) -> PileupObservation:
    """Detach one ``pysam.PileupRead`` into a ``PileupObservation``."""
    read = pr.alignment
    seq = read.query_sequence
    read_length = int(read.query_length)
    is_del = bool(pr.is_del) or bool(pr.is_refskip)

    qpos = safe_size(
        pr.query_position_or_next,
        upper=read_length - 1 if read_length > 0 else None,
        label="unexpected read position at pileup position",
    )

    if seq is None or not seq:
        base_code = UNDEFINED
    else:
        base_code = safe_size(
            nt16_code(seq[qpos]), upper=15, label="unexpected base at pileup position"
        )

    if is_del:
        base_quality = 0
    else:
        quals = read.query_qualities
        # missing qualities are stored as 0xff in BAM
        base_quality = int(quals[qpos]) if quals is not None else 255

    return PileupObservation(
        template_id=str(read.query_name),
        position_in_read=qpos,
        read_length=read_length,
        mapping_quality=int(read.mapping_quality),
        base_quality=base_quality,
        base_code=base_code,
        indel_length=int(pr.indel),
        is_reverse_strand=bool(read.is_reverse),
        is_segment_head=bool(pr.is_head),
        is_segment_tail=bool(pr.is_tail),
        is_deletion_site=is_del,
    )


def iter_pileup_columns(
    bam: pysam.AlignmentFile,
    region: Region,
    params: CountParams,
) -> Iterator[PileupColumnView]:
    """Yield detached pileup columns overlapping ``region``.

    Columns are not truncated to the region; reads overlapping the region may
    produce columns outside it, which the counter skips.
    """
    columns = bam.pileup(
        contig=region.contig,
        start=region.start,
        stop=region.end,
        stepper="samtools",
        compute_baq=False,
        flag_filter=params.exclude_flag_mask,
        flag_require=params.include_flag_mask,
        min_mapping_quality=params.min_mapping_quality,
        min_base_quality=0,
        ignore_overlaps=False,
        ignore_orphans=False,
        max_depth=params.max_depth,
        truncate=False,
    )
    for col in columns:
        tid = int(col.reference_id)
        pos = int(col.reference_pos)
        n_segments = int(col.nsegments)
        if n_segments < 0:
            raise UpstreamPileupError(
                f"pileup failed: negative observation count at tid={tid} pos={pos}"
            )
        observations = [
            observation_from_pileup_read(pr)
            for pr in col.pileups
            if read_passes_filters(pr.alignment, params)
        ]
        yield PileupColumnView(tid=tid, pos=pos, observations=observations)


def resolve_region(bam: pysam.AlignmentFile, region_str: str) -> Region:
    return parse_region(
        region_str,
        get_tid=bam.get_tid,
        get_length=bam.get_reference_length,
    )


def count_region(
    aln_path: str | Path,
    region_str: str,
    params: Optional[CountParams] = None,
    *,
    progress: bool = False,
) -> Tuple[ResultMatrix, Region]:
    """Open an indexed BAM/CRAM, scan ``region_str`` and return (matrix, region).

    Any error aborts the scan; no partially filled matrix is returned.
    """
    params = (params or CountParams()).validate()
    t0 = time.time()

    with pysam.AlignmentFile(str(aln_path), "r") as bam:
        region = resolve_region(bam, region_str)
        logger.info(
            "Counting %s (%d bp) in %s; min_baseq=%d min_mapq=%d clip=%d include=%d exclude=%d "
            "max_depth=%d discard_overlaps=%s",
            region.display(),
            region.length,
            aln_path,
            params.min_base_quality,
            params.min_mapping_quality,
            params.clip_margin,
            params.include_flag_mask,
            params.exclude_flag_mask,
            params.max_depth,
            params.discard_overlaps,
        )
        matrix = count_columns(
            iter_pileup_columns(bam, region, params), region, params, progress=progress
        )

    logger.info("Scan finished in %.2fs", time.time() - t0)
    return matrix, region
