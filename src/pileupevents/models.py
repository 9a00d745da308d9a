from __future__ import annotations

from dataclasses import dataclass, field
from typing import List

from .bounds import safe_size
from .constants import (
    DEFAULT_CLIP_MARGIN,
    DEFAULT_EXCLUDE_FLAG_MASK,
    DEFAULT_INCLUDE_FLAG_MASK,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MIN_BASE_QUALITY,
    DEFAULT_MIN_MAPPING_QUALITY,
)

_INT64_MAX = 2**63 - 1


@dataclass(frozen=True)
class PileupObservation:
    """One read's contribution at one pileup position.

    Attributes
    ----------
    template_id:
        Query name of the read; mates of a pair share it.
    position_in_read:
        0-based position of the base in the stored read sequence.
    read_length:
        Length of the stored read sequence (soft clips included).
    mapping_quality, base_quality:
        Phred values in [0, 255]. Deletion sites report a base quality of 0.
    base_code:
        htslib nt16 code in [0, 15], or ``UNDEFINED``.
    indel_length:
        Negative if the base is followed by a deletion, positive if followed by an
        insertion, zero otherwise.
    """

    template_id: str
    position_in_read: int
    read_length: int
    mapping_quality: int
    base_quality: int
    base_code: int
    indel_length: int = 0
    is_reverse_strand: bool = False
    is_segment_head: bool = False
    is_segment_tail: bool = False
    is_deletion_site: bool = False


@dataclass(frozen=True)
class PileupColumnView:
    """Observations at one genomic position, detached from the pysam iterator."""

    tid: int
    pos: int  # 0-based genomic position
    observations: List[PileupObservation] = field(default_factory=list)


@dataclass(frozen=True)
class CountParams:
    """Thresholds and read filters for one scan."""

    min_base_quality: int = DEFAULT_MIN_BASE_QUALITY
    min_mapping_quality: int = DEFAULT_MIN_MAPPING_QUALITY
    clip_margin: int = DEFAULT_CLIP_MARGIN
    include_flag_mask: int = DEFAULT_INCLUDE_FLAG_MASK
    exclude_flag_mask: int = DEFAULT_EXCLUDE_FLAG_MASK
    max_depth: int = DEFAULT_MAX_DEPTH
    discard_overlaps: bool = False

    def validate(self) -> "CountParams":
        if self.min_base_quality < 0:
            raise ValueError("min_base_quality must be >= 0")
        if self.min_mapping_quality < 0:
            raise ValueError("min_mapping_quality must be >= 0")
        if self.clip_margin < 0:
            raise ValueError("clip_margin must be >= 0")
        if self.include_flag_mask < 0 or self.exclude_flag_mask < 0:
            raise ValueError("SAM flag masks must be non-negative integers")
        if self.include_flag_mask & self.exclude_flag_mask:
            raise ValueError(
                "include and exclude flag masks overlap "
                f"({self.include_flag_mask} & {self.exclude_flag_mask}); no read could pass"
            )
        if self.max_depth <= 0:
            raise ValueError("max_depth must be > 0")
        return self


@dataclass(frozen=True)
class Region:
    """A 0-based, end-exclusive interval on one contig."""

    contig: str
    tid: int
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def display(self) -> str:
        """Render as a 1-based, end-inclusive region string."""
        contig = self.contig
        if ":" in contig:
            contig = "{" + contig + "}"
        return f"{contig}:{self.start + 1}-{self.end}"

    @classmethod
    def by_end(cls, contig: str, tid: int, start: int, end: int) -> "Region":
        if tid < 0 or start < 0 or end <= start:
            raise ValueError(
                f"Invalid region parameters: tid={tid} start={start} end={end}"
            )
        safe_size(end - start, label=f"region span too large {start} {end}")
        return cls(contig=contig, tid=tid, start=start, end=end)

    @classmethod
    def by_len(cls, contig: str, tid: int, start: int, length: int) -> "Region":
        if tid < 0 or start < 0 or length <= 0 or _INT64_MAX - length <= start:
            raise ValueError(
                f"Invalid region parameters: tid={tid} start={start} length={length}"
            )
        return cls(contig=contig, tid=tid, start=start, end=start + length)
