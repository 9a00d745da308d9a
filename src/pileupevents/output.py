from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator, List, TextIO

from .constants import HEADER, POSITION_COLUMN
from .matrix import ResultMatrix
from .models import Region
from .utils import open_textmaybe_gzip

logger = logging.getLogger(__name__)


def iter_csv_lines(
    matrix: ResultMatrix,
    region: Region,
    *,
    header: bool = False,
    row_positions: bool = False,
) -> Iterator[str]:
    """Render the matrix as CSV lines (without trailing newlines).

    Rows are in increasing position order, forward block first. With
    ``row_positions`` each row starts with its 1-based genomic position.
    """
    if header:
        cols: List[str] = list(HEADER)
        if row_positions:
            cols.insert(0, POSITION_COLUMN)
        yield ",".join(cols)

    for i, row in enumerate(matrix.rows()):
        values = ",".join(str(int(v)) for v in row)
        if row_positions:
            yield f"{region.start + i + 1},{values}"
        else:
            yield values


def write_csv(
    matrix: ResultMatrix,
    region: Region,
    fh: TextIO,
    *,
    header: bool = False,
    row_positions: bool = False,
) -> int:
    n = 0
    for line in iter_csv_lines(matrix, region, header=header, row_positions=row_positions):
        fh.write(line + "\n")
        n += 1
    return n


def write_csv_path(
    matrix: ResultMatrix,
    region: Region,
    path: str | Path,
    *,
    header: bool = False,
    row_positions: bool = False,
) -> Path:
    """Write the CSV to ``path`` (gzip-compressed when it ends in ``.gz``)."""
    p = Path(path)
    p.parent.mkdir(parents=True, exist_ok=True)
    with open_textmaybe_gzip(p, "wt") as fh:
        n = write_csv(matrix, region, fh, header=header, row_positions=row_positions)
    logger.info("Wrote %d lines to %s", n, p)
    return p
