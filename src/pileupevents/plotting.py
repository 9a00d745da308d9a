from __future__ import annotations

import logging
from pathlib import Path

import matplotlib.pyplot as plt

from .constants import Field, Strand
from .matrix import ResultMatrix
from .models import Region

logger = logging.getLogger(__name__)


def plot_strand_depth(
    *,
    matrix: ResultMatrix,
    region: Region,
    out_png: str | Path,
    title: str = "Observations per position",
) -> None:
    out_png = Path(out_png)
    out_png.parent.mkdir(parents=True, exist_ok=True)

    positions = [region.start + i + 1 for i in range(region.length)]
    fwd = matrix.strand_block(Strand.FORWARD)[:, Field.NOBS]
    rev = matrix.strand_block(Strand.REVERSE)[:, Field.NOBS]

    plt.figure(figsize=(8, 3.5))
    plt.step(positions, fwd, where="mid", label="forward")
    plt.step(positions, -rev, where="mid", label="reverse")
    plt.axhline(0, color="black", linewidth=0.5)
    plt.xlabel(f"{region.contig} position (1-based)")
    plt.ylabel("Observations (reverse < 0)")
    plt.title(title)
    plt.legend(loc="upper right")
    plt.tight_layout()
    plt.savefig(out_png, dpi=160)
    plt.close()
    logger.debug("Wrote strand depth plot: %s", out_png)
