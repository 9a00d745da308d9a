import pytest

from pileupevents.flags import ClassifiedObservation, EventFlags
from pileupevents.overlap import MalformedPairError, PairSlot, collate, resolve


def cobs(tid: str, base: int = 1, flags: EventFlags = EventFlags.UNSET, mapq: int = 60):
    return ClassifiedObservation(
        template_id=tid, flags=flags, base=base, base_quality=40, mapping_quality=mapq
    )


def test_collate_fills_slots_in_arrival_order():
    a1, b1, a2 = cobs("a", mapq=1), cobs("b"), cobs("a", mapq=2)
    slots = collate([a1, b1, a2])
    assert list(slots) == ["a", "b"]
    assert slots["a"].first is a1
    assert slots["a"].second is a2
    assert slots["b"].first is b1
    assert not slots["b"].is_pair


def test_third_occurrence_is_fatal():
    with pytest.raises(MalformedPairError, match="more than twice") as exc:
        collate([cobs("x"), cobs("x"), cobs("x")])
    assert exc.value.template_id == "x"


def test_second_slot_before_first_is_fatal():
    slot = PairSlot(second=cobs("y"))
    with pytest.raises(MalformedPairError, match="before first"):
        slot.add(cobs("y"))


def test_resolve_unpaired_counts_single_and_keeps_toggle():
    only = cobs("a")
    chosen, toggle = resolve(PairSlot(first=only), 1)
    assert chosen == [only]
    assert toggle == 1


def test_resolve_disagreeing_mates_counts_both():
    m1, m2 = cobs("a", base=1), cobs("a", base=8)
    chosen, toggle = resolve(PairSlot(first=m1, second=m2), 0)
    assert chosen == [m1, m2]
    assert toggle == 0


def test_resolve_agreeing_mates_alternate_on_toggle():
    picks = []
    toggle = 0
    for i in range(6):
        m1 = cobs(f"t{i}", mapq=0)
        m2 = cobs(f"t{i}", mapq=1, flags=EventFlags.REV)
        chosen, toggle = resolve(PairSlot(first=m1, second=m2), toggle)
        assert len(chosen) == 1
        picks.append(chosen[0].mapping_quality)
    assert picks == [0, 1, 0, 1, 0, 1]
