from pathlib import Path

import pytest

from pileupevents.models import PileupObservation
from pileupevents.toy_data import make_toy_data


def make_obs(**kw) -> PileupObservation:
    """A clean forward-strand A observation; override fields via keywords."""
    fields = dict(
        template_id="t1",
        position_in_read=10,
        read_length=50,
        mapping_quality=60,
        base_quality=40,
        base_code=1,  # A
        indel_length=0,
        is_reverse_strand=False,
        is_segment_head=False,
        is_segment_tail=False,
        is_deletion_site=False,
    )
    fields.update(kw)
    return PileupObservation(**fields)


@pytest.fixture(scope="session")
def toy(tmp_path_factory) -> dict:
    return make_toy_data(outdir=tmp_path_factory.mktemp("toy"))


@pytest.fixture(scope="session")
def toy_bam(toy) -> Path:
    return Path(toy["bam"])
