"""pileup-events: per-position allele and alignment event counts from BAM/CRAM pileups.

Public API is intentionally small; most users should use the CLI:

    pileup-events count sample.bam chr1:100-200 --head --row

"""

from __future__ import annotations

__all__ = ["__version__"]

__version__ = "0.1.0"
