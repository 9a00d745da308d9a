import pytest

from pileupevents.models import Region
from pileupevents.region import parse_region, split_region

CONTIGS = {"chr1": 1000, "chrM": 16569, "HLA-DRB1*12:17": 50}
NAMES = list(CONTIGS)


def _parse(s: str) -> Region:
    return parse_region(
        s,
        get_tid=lambda c: NAMES.index(c) if c in CONTIGS else -1,
        get_length=lambda c: CONTIGS[c],
    )


@pytest.mark.parametrize(
    "text, expected",
    [
        ("chr1:100-200", ("chr1", 100, 200)),
        ("chr1:100", ("chr1", 100, 100)),
        ("chr1:-100", ("chr1", None, 100)),
        ("chr1:100-", ("chr1", 100, None)),
        ("chr1:1,000-2,000", ("chr1", 1000, 2000)),
        ("chr1", ("chr1", None, None)),
        ("{HLA-DRB1*12:17}:5-10", ("HLA-DRB1*12:17", 5, 10)),
        ("{HLA-DRB1*12:17}", ("HLA-DRB1*12:17", None, None)),
    ],
)
def test_split_region(text, expected):
    assert split_region(text) == expected


def test_one_based_inclusive_becomes_zero_based_half_open():
    r = _parse("chr1:100-200")
    assert (r.contig, r.tid, r.start, r.end, r.length) == ("chr1", 0, 99, 200, 101)
    assert r.display() == "chr1:100-200"


def test_single_base_and_open_ended_regions():
    assert _parse("chr1:100").length == 1
    r = _parse("chr1:-100")
    assert (r.start, r.end) == (0, 100)
    r = _parse("chr1:900-")
    assert (r.start, r.end) == (899, 1000)
    r = _parse("chrM")
    assert (r.tid, r.start, r.end) == (1, 0, 16569)


def test_braced_contig_with_colon():
    r = _parse("{HLA-DRB1*12:17}:5-10")
    assert (r.contig, r.tid, r.start, r.end) == ("HLA-DRB1*12:17", 2, 4, 10)
    assert r.display() == "{HLA-DRB1*12:17}:5-10"


def test_end_is_clamped_to_contig_length():
    r = _parse("chr1:990-5000")
    assert r.end == 1000


@pytest.mark.parametrize("text", ["", "chr9:1-10", "chr1:abc", "chr1:200-100", "{chr1:1-5"])
def test_invalid_regions_raise(text):
    with pytest.raises(ValueError):
        _parse(text)


def test_region_constructors_validate():
    with pytest.raises(ValueError):
        Region.by_end("chr1", -1, 0, 10)
    with pytest.raises(ValueError):
        Region.by_end("chr1", 0, 10, 10)
    with pytest.raises(ValueError):
        Region.by_len("chr1", 0, 2**63 - 5, 10)
    assert Region.by_len("chr1", 0, 5, 10).end == 15
