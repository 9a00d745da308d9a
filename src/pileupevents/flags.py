"""Classification of a single pileup observation into event flags.

Every flag is computed independently and the results are OR-combined, so the
order of the checks below carries no meaning. Precedence between flags only
matters when counting (see ``counter.score_single``).
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import IntFlag
from typing import Dict, Tuple

from .constants import UNDEFINED
from .models import CountParams, PileupObservation


class EventFlags(IntFlag):
    UNSET = 0
    POS_FAIL = 1 << 0  # within clip margin of a read end
    QUAL_FAIL = 1 << 1  # base quality at or below threshold
    REV = 1 << 2
    FDEL = 1 << 3  # followed by a deletion
    FINS = 1 << 4  # followed by an insertion
    HEAD = 1 << 5
    TAIL = 1 << 6
    IS_DEL = 1 << 7  # deleted base


# (is_deletion_site, is_segment_head, is_segment_tail) -> structural flags
STRUCTURAL_FLAGS: Dict[Tuple[bool, bool, bool], EventFlags] = {
    (False, False, False): EventFlags.UNSET,
    (False, False, True): EventFlags.TAIL,
    (False, True, False): EventFlags.HEAD,
    (False, True, True): EventFlags.HEAD | EventFlags.TAIL,
    (True, False, False): EventFlags.IS_DEL,
    (True, False, True): EventFlags.IS_DEL | EventFlags.TAIL,
    (True, True, False): EventFlags.IS_DEL | EventFlags.HEAD,
    (True, True, True): EventFlags.IS_DEL | EventFlags.HEAD | EventFlags.TAIL,
}

FAIL_FLAGS = EventFlags.QUAL_FAIL | EventFlags.POS_FAIL


@dataclass(frozen=True)
class ClassifiedObservation:
    """An observation reduced to what the accumulator needs."""

    template_id: str
    flags: EventFlags
    base: int  # effective base: UNDEFINED when the observation failed
    base_quality: int
    mapping_quality: int


def _indel_flag(indel_length: int) -> EventFlags:
    if indel_length < 0:
        return EventFlags.FDEL
    if indel_length > 0:
        return EventFlags.FINS
    return EventFlags.UNSET


def _position_fails(obs: PileupObservation, clip_margin: int) -> bool:
    if obs.position_in_read < clip_margin:
        return True
    # deletion sites carry zero quality and are exempt from the tail test
    return obs.base_quality != 0 and obs.read_length - obs.position_in_read < clip_margin


def classify(obs: PileupObservation, params: CountParams) -> EventFlags:
    """Map one observation to its event flags under the given thresholds."""
    flags = STRUCTURAL_FLAGS[
        (bool(obs.is_deletion_site), bool(obs.is_segment_head), bool(obs.is_segment_tail))
    ]
    flags |= _indel_flag(obs.indel_length)
    if obs.is_reverse_strand:
        flags |= EventFlags.REV
    if obs.base_quality <= params.min_base_quality:
        flags |= EventFlags.QUAL_FAIL
    if _position_fails(obs, params.clip_margin):
        flags |= EventFlags.POS_FAIL
    return flags


def effective_base(obs: PileupObservation, flags: EventFlags) -> int:
    """Squash the base to ``UNDEFINED`` if the observation failed quality or position."""
    if flags & FAIL_FLAGS:
        return UNDEFINED
    return obs.base_code


def classify_observation(obs: PileupObservation, params: CountParams) -> ClassifiedObservation:
    flags = classify(obs, params)
    return ClassifiedObservation(
        template_id=obs.template_id,
        flags=flags,
        base=effective_base(obs, flags),
        base_quality=obs.base_quality,
        mapping_quality=obs.mapping_quality,
    )
