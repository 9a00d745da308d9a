from __future__ import annotations

from pathlib import Path


_INDEX_SUFFIXES = {
    ".bam": (".bai", ".csi"),
    ".cram": (".crai",),
}


def check_alignment_index(aln_path: str | Path) -> None:
    """Ensure a BAM/CRAM has an index next to it; raise ValueError with fix instructions."""
    aln = Path(aln_path)
    suffixes = _INDEX_SUFFIXES.get(aln.suffix.lower())
    if suffixes is None:
        raise ValueError(
            f"Unsupported alignment file type '{aln.suffix}'. Provide a sorted, indexed BAM or CRAM."
        )
    for idx_suffix in suffixes:
        if aln.with_suffix(aln.suffix + idx_suffix).exists():
            return
        if aln.with_suffix(idx_suffix).exists():
            return
    raise ValueError(
        "Alignment file is not indexed. Run: samtools index " + str(aln)
    )
