"""Collation of overlapping mates at one pileup position.

Used only when overlap suppression is enabled. Observations sharing a template id
are grouped into a ``PairSlot`` of at most two entries, in arrival order.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from .flags import ClassifiedObservation


class MalformedPairError(RuntimeError):
    """Raised when a template appears more than twice at the same position."""

    def __init__(self, template_id: str, reason: str) -> None:
        super().__init__(f"pair map malformed for template '{template_id}': {reason}")
        self.template_id = template_id


@dataclass
class PairSlot:
    first: Optional[ClassifiedObservation] = None
    second: Optional[ClassifiedObservation] = None

    @property
    def is_pair(self) -> bool:
        return self.second is not None

    def add(self, obs: ClassifiedObservation) -> None:
        if self.first is None:
            if self.second is not None:
                raise MalformedPairError(obs.template_id, "second slot filled before first")
            self.first = obs
            return
        if self.second is not None:
            raise MalformedPairError(obs.template_id, "template seen more than twice")
        self.second = obs


def collate(observations: Iterable[ClassifiedObservation]) -> Dict[str, PairSlot]:
    """Group observations by template id.

    The returned mapping keeps templates in order of first arrival.
    """
    slots: Dict[str, PairSlot] = {}
    for obs in observations:
        slot = slots.get(obs.template_id)
        if slot is None:
            slot = PairSlot()
            slots[obs.template_id] = slot
        slot.add(obs)
    return slots


def resolve(slot: PairSlot, toggle: int) -> Tuple[List[ClassifiedObservation], int]:
    """Choose which members of a slot are counted; return them with the updated toggle.

    - unpaired (or mate not covering this position): the single observation;
    - mates disagree on the effective base: both;
    - mates agree: one of them, slot 0 when ``toggle`` is 0 and slot 1 when it is 1,
      after which the toggle flips.
    """
    first = slot.first
    second = slot.second
    if first is None:
        raise MalformedPairError(
            second.template_id if second is not None else "<empty>", "slot has no first entry"
        )
    if second is None:
        return [first], toggle
    if first.base != second.base:
        return [first, second], toggle
    chosen = second if toggle else first
    return [chosen], 1 - toggle
