from __future__ import annotations

from typing import Optional


class RangeError(ValueError):
    """Raised when a signed value cannot be used as an index within the given bounds."""

    def __init__(self, label: str, reason: str, *, value: int) -> None:
        msg = f"{label}: {reason}" if label else reason
        super().__init__(msg)
        self.label = label
        self.reason = reason
        self.value = value


def safe_size(
    value: int,
    *,
    lower: int = 0,
    upper: Optional[int] = None,
    label: str = "",
) -> int:
    """Convert a signed integer into a non-negative index within [lower, upper].

    Parameters
    ----------
    value:
        Signed value, typically a coordinate or count coming from pysam/htslib.
    lower, upper:
        Inclusive bounds. ``upper=None`` means unbounded.
    label:
        Context prepended to the error message so the failing conversion can be
        identified.
    """
    v = int(value)
    if v < 0:
        raise RangeError(label, f"size would be negative ({v})", value=v)
    if v < lower:
        raise RangeError(label, f"size would be below lower bound {lower} ({v})", value=v)
    if upper is not None and v > upper:
        raise RangeError(label, f"size would exceed upper bound {upper} ({v})", value=v)
    return v
