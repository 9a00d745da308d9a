"""Region string parsing.

Region strings are 1-based and end-inclusive, as reported in a VCF, and follow the
htslib conventions:

- ``chr1`` is the whole contig;
- ``chr1:100`` is the single base ``chr1:100-100``;
- ``chr1:-100`` is ``chr1:1-100`` and ``chr1:100-`` runs to the contig end;
- ``,`` thousands separators are allowed in coordinates;
- contig names containing colons are written in braces: ``{HLA-DRB1*12:17}:1-10``.

Internally regions are 0-based and end-exclusive (``Region``).
"""

from __future__ import annotations

import logging
from typing import Callable, Optional, Tuple

from .models import Region

logger = logging.getLogger(__name__)


def _parse_coord(text: str, region_str: str) -> int:
    cleaned = text.replace(",", "").strip()
    if not cleaned.isdigit():
        raise ValueError(
            f"parse failed for input region {region_str} - specified range could not be parsed"
        )
    return int(cleaned)


def split_region(region_str: str) -> Tuple[str, Optional[int], Optional[int]]:
    """Split a region string into (contig, 1-based start, 1-based end).

    Missing coordinates are returned as None.
    """
    s = region_str.strip()
    if not s:
        raise ValueError("region string appears to be empty")

    if s.startswith("{"):
        close = s.find("}")
        if close < 0:
            raise ValueError(f"parse failed for input region {region_str} - unbalanced braces")
        contig = s[1:close]
        rest = s[close + 1 :]
        if rest and not rest.startswith(":"):
            raise ValueError(
                f"parse failed for input region {region_str} - expected ':' after contig"
            )
        coords = rest[1:] if rest else ""
        has_coords = bool(rest)
    else:
        contig, sep, coords = s.rpartition(":")
        if not sep:
            return s, None, None
        has_coords = True

    if not contig:
        raise ValueError(f"parse failed for input region {region_str} - could not parse contig")
    if not has_coords or coords == "":
        return contig, None, None

    if "-" not in coords:
        pos = _parse_coord(coords, region_str)
        return contig, pos, pos

    start_txt, _, end_txt = coords.partition("-")
    start = _parse_coord(start_txt, region_str) if start_txt.strip() else None
    end = _parse_coord(end_txt, region_str) if end_txt.strip() else None
    return contig, start, end


def parse_region(
    region_str: str,
    *,
    get_tid: Callable[[str], int],
    get_length: Callable[[str], int],
) -> Region:
    """Resolve a region string against an alignment header.

    ``get_tid`` returns a negative value for unknown contigs (as
    ``pysam.AlignmentFile.get_tid`` does); ``get_length`` returns the contig length.
    """
    contig, start1, end1 = split_region(region_str)

    tid = get_tid(contig)
    if tid < 0 and region_str.strip().startswith(contig) and ":" in region_str:
        # a bare contig name that itself contains a colon
        whole = region_str.strip()
        if get_tid(whole) >= 0:
            contig, start1, end1 = whole, None, None
            tid = get_tid(whole)
    if tid < 0:
        raise ValueError(f"parse failed for input region {region_str} - could not parse contig")

    contig_len = int(get_length(contig))
    start0 = (start1 - 1) if start1 is not None else 0
    if start0 < 0:
        start0 = 0
    end0 = end1 if end1 is not None else contig_len
    if end0 > contig_len:
        logger.warning(
            "Region end %d exceeds length of %s (%d); clamping.", end0, contig, contig_len
        )
        end0 = contig_len
    if end0 <= start0:
        raise ValueError(
            f"parse failed for input region {region_str} - specified range could not be parsed"
        )
    return Region.by_end(contig, tid, start0, end0)
