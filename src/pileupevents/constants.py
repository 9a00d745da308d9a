from __future__ import annotations

from enum import IntEnum
from typing import Dict, Tuple

# htslib 4-bit nucleotide codes ("=ACMGRSVTWYHKDBN")
NT16_TABLE = "=ACMGRSVTWYHKDBN"
HTS_NT_A = 1
HTS_NT_C = 2
HTS_NT_G = 4
HTS_NT_T = 8

# Sentinel for squashed/ambiguous bases; outside the 4-bit range.
UNDEFINED = 255


class Field(IntEnum):
    """Counter fields within one strand block, in output order."""

    A = 0
    T = 1
    C = 2
    G = 3
    IS_DEL = 4
    N = 5
    FINS = 6
    FDEL = 7
    HEAD = 8
    TAIL = 9
    MAPQ_SUM = 10
    NOBS = 11


class Strand(IntEnum):
    FORWARD = 0
    REVERSE = 1


N_FIELDS_PER_STRAND = len(Field)
N_STRANDS = len(Strand)
N_FIELDS_PER_OBS = N_STRANDS * N_FIELDS_PER_STRAND

BASE_FIELDS: Tuple[Field, ...] = (Field.A, Field.T, Field.C, Field.G, Field.IS_DEL, Field.N)

NT16_TO_FIELD: Dict[int, Field] = {
    HTS_NT_A: Field.A,
    HTS_NT_C: Field.C,
    HTS_NT_G: Field.G,
    HTS_NT_T: Field.T,
}

HEADER: Tuple[str, ...] = (
    "A", "T", "C", "G", "-", "N", "INS", "DEL", "HEAD", "TAIL", "QUAL", "NREAD",
    "a", "t", "c", "g", "_", "n", "ins", "del", "head", "tail", "qual", "nread",
)
POSITION_COLUMN = "pos"

# Defaults for the configuration surface
DEFAULT_MIN_BASE_QUALITY = 30
DEFAULT_MIN_MAPPING_QUALITY = 25
DEFAULT_CLIP_MARGIN = 0
DEFAULT_INCLUDE_FLAG_MASK = 0
DEFAULT_EXCLUDE_FLAG_MASK = 3844  # UNMAP | SECONDARY | QCFAIL | DUP | SUPPLEMENTARY
DEFAULT_MAX_DEPTH = 1_000_000
