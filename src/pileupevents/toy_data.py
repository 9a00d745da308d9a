from __future__ import annotations

import logging
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pysam

from .utils import ensure_outdir, write_json

logger = logging.getLogger(__name__)

TOY_CONTIG = "chr1"
TOY_REF_SEQ = ("ACGT" * 50)[:200]

# CIGAR operation codes
_M = 0
_D = 2


def _mutate_base(base: str) -> str:
    for alt in ["A", "C", "G", "T"]:
        if alt != base:
            return alt
    return "A"


def _make_read(
    name: str,
    start0: int,
    seq: str,
    *,
    flag: int = 0,
    mapq: int = 60,
    cigar: Optional[List[Tuple[int, int]]] = None,
    mate_start0: int = -1,
    tlen: int = 0,
) -> pysam.AlignedSegment:
    a = pysam.AlignedSegment()
    a.query_name = name
    a.query_sequence = seq
    a.flag = flag
    a.reference_id = 0
    a.reference_start = start0
    a.mapping_quality = mapq
    a.cigartuples = cigar if cigar is not None else [(_M, len(seq))]
    if mate_start0 >= 0:
        a.next_reference_id = 0
        a.next_reference_start = mate_start0
        a.template_length = tlen
    a.query_qualities = pysam.qualitystring_to_array("I" * len(seq))
    return a


def _pair(
    name: str,
    start1: int,
    start2: int,
    length: int,
    seq2: Optional[str] = None,
) -> List[pysam.AlignedSegment]:
    seq1 = TOY_REF_SEQ[start1 : start1 + length]
    if seq2 is None:
        seq2 = TOY_REF_SEQ[start2 : start2 + length]
    tlen = start2 + length - start1
    return [
        _make_read(name, start1, seq1, flag=99, mate_start0=start2, tlen=tlen),
        _make_read(name, start2, seq2, flag=147, mate_start0=start1, tlen=-tlen),
    ]


def make_toy_data(*, outdir: str | Path) -> Dict[str, str]:
    """Create a tiny indexed BAM suitable for quick demos/tests.

    Layout on ``chr1`` (200 bp of ``ACGT`` repeats), 0-based coordinates:

    - ``pair0``: mates at 10-39 (forward) and 20-49 (reverse), agreeing on 20-39;
    - ``pair1``: mates at 100-129 (forward) and 110-139 (reverse); the reverse
      mate carries a mismatch at 115 so the mates disagree there;
    - ``del0``: forward read at 50 with a 2 bp deletion at 60-61;
    - ``lowmapq0``: forward read at 150-169 with MAPQ 10;
    - ``dup0``: duplicate-flagged forward read at 150-169.

    Returns
    -------
    dict
        Paths to the generated files.
    """
    outdir_p = ensure_outdir(outdir)
    bam_path = outdir_p / "toy.bam"

    header = {
        "HD": {"VN": "1.6", "SO": "coordinate"},
        "SQ": [{"SN": TOY_CONTIG, "LN": len(TOY_REF_SEQ)}],
    }

    reads: List[pysam.AlignedSegment] = []
    reads.extend(_pair("pair0", 10, 20, 30))

    seq2 = list(TOY_REF_SEQ[110:140])
    seq2[115 - 110] = _mutate_base(seq2[115 - 110])
    reads.extend(_pair("pair1", 100, 110, 30, seq2="".join(seq2)))

    del_seq = TOY_REF_SEQ[50:60] + TOY_REF_SEQ[62:72]
    reads.append(_make_read("del0", 50, del_seq, cigar=[(_M, 10), (_D, 2), (_M, 10)]))

    reads.append(_make_read("lowmapq0", 150, TOY_REF_SEQ[150:170], mapq=10))
    reads.append(_make_read("dup0", 150, TOY_REF_SEQ[150:170], flag=1024))

    reads.sort(key=lambda r: r.reference_start)

    with pysam.AlignmentFile(str(bam_path), "wb", header=header) as bam:
        for r in reads:
            bam.write(r)

    pysam.index(str(bam_path))
    logger.info("Wrote toy BAM with %d reads: %s", len(reads), bam_path)

    summary = {
        "bam": str(bam_path),
        "contig": TOY_CONTIG,
        "outdir": str(outdir_p),
    }
    write_json(outdir_p / "toy_summary.json", summary)
    return summary
