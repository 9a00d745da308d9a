import pysam
import pytest

from pileupevents.constants import Field, Strand
from pileupevents.models import CountParams
from pileupevents.pileup import count_region, nt16_code, observation_from_pileup_read


def _nobs_total(m, offset=0):
    return m.cell(offset, Strand.FORWARD, Field.NOBS) + m.cell(offset, Strand.REVERSE, Field.NOBS)


def test_nt16_codes():
    assert [nt16_code(b) for b in "ACGTN"] == [1, 2, 4, 8, 15]
    assert nt16_code("a") == 1
    assert nt16_code("?") == 15


def test_overlapping_mates_counted_on_both_strands(toy_bam):
    m, region = count_region(toy_bam, "chr1:21-21")
    assert (region.start, region.end) == (20, 21)
    assert m.cell(0, Strand.FORWARD, Field.A) == 1
    assert m.cell(0, Strand.REVERSE, Field.A) == 1
    assert m.cell(0, Strand.FORWARD, Field.MAPQ_SUM) == 60
    # the reverse mate starts here
    assert m.cell(0, Strand.REVERSE, Field.HEAD) == 1
    assert _nobs_total(m) == 2


def test_discard_overlaps_counts_agreeing_mates_once(toy_bam):
    m, _ = count_region(toy_bam, "chr1:21-21", CountParams(discard_overlaps=True))
    assert _nobs_total(m) == 1
    assert m.cell(0, Strand.FORWARD, Field.A) + m.cell(0, Strand.REVERSE, Field.A) == 1


def test_discard_overlaps_keeps_disagreeing_mates(toy_bam):
    m, _ = count_region(toy_bam, "chr1:116", CountParams(discard_overlaps=True))
    assert m.cell(0, Strand.FORWARD, Field.T) == 1
    assert m.cell(0, Strand.REVERSE, Field.A) == 1
    assert _nobs_total(m) == 2


def test_deletion_and_followed_by_deletion(toy_bam):
    m, _ = count_region(toy_bam, "chr1:60-62")
    # 0-based 59: last base before the deletion
    assert m.cell(0, Strand.FORWARD, Field.T) == 1
    assert m.cell(0, Strand.FORWARD, Field.FDEL) == 1
    for offset in (1, 2):
        assert m.cell(offset, Strand.FORWARD, Field.IS_DEL) == 1
        assert m.cell(offset, Strand.FORWARD, Field.NOBS) == 1
        assert m.cell(offset, Strand.FORWARD, Field.N) == 0


def test_read_ends_and_clip_margin(toy_bam):
    m, _ = count_region(toy_bam, "chr1:11-11")
    assert m.cell(0, Strand.FORWARD, Field.HEAD) == 1
    assert m.cell(0, Strand.FORWARD, Field.G) == 1  # ref[10] is G

    m, _ = count_region(toy_bam, "chr1:11-11", CountParams(clip_margin=5))
    assert m.cell(0, Strand.FORWARD, Field.N) == 1
    assert m.cell(0, Strand.FORWARD, Field.G) == 0

    m, _ = count_region(toy_bam, "chr1:40-40")
    assert m.cell(0, Strand.FORWARD, Field.TAIL) == 1


def test_mapq_and_flag_filters(toy_bam):
    m, _ = count_region(toy_bam, "chr1:151-170")
    assert not m.counts.any()

    m, _ = count_region(toy_bam, "chr1:151-151", CountParams(min_mapping_quality=0))
    # the low-MAPQ read passes; the duplicate stays excluded
    assert _nobs_total(m) == 1

    # only reads with the "first in pair" bit
    m, _ = count_region(toy_bam, "chr1:21-21", CountParams(include_flag_mask=64))
    assert m.cell(0, Strand.FORWARD, Field.NOBS) == 1
    assert m.cell(0, Strand.REVERSE, Field.NOBS) == 0


def test_whole_contig_totals(toy_bam):
    m, region = count_region(toy_bam, "chr1")
    assert region.length == 200
    totals = m.totals()
    assert totals["forward"]["NOBS"] + totals["reverse"]["NOBS"] == 142
    for strand in ("forward", "reverse"):
        t = totals[strand]
        assert sum(t[f] for f in ("A", "T", "C", "G", "IS_DEL", "N")) == t["NOBS"]

    m, _ = count_region(toy_bam, "chr1", CountParams(discard_overlaps=True))
    totals = m.totals()
    assert totals["forward"]["NOBS"] + totals["reverse"]["NOBS"] == 142 - 39


def test_unknown_contig_raises(toy_bam):
    with pytest.raises(ValueError, match="could not parse contig"):
        count_region(toy_bam, "chrX:1-10")


def test_observation_from_pileup_read(toy_bam):
    with pysam.AlignmentFile(str(toy_bam)) as bam:
        for col in bam.pileup("chr1", 60, 61, truncate=True, stepper="nofilter", min_base_quality=0):
            reads = [observation_from_pileup_read(pr) for pr in col.pileups]
            assert len(reads) == 1
            obs = reads[0]
            assert obs.template_id == "del0"
            assert obs.is_deletion_site
            assert obs.base_quality == 0
            assert obs.read_length == 20


def _write_stacked_bam(path, reads):
    header = {"HD": {"VN": "1.6", "SO": "coordinate"}, "SQ": [{"SN": "chr1", "LN": 100}]}
    with pysam.AlignmentFile(str(path), "wb", header=header) as bam:
        for name, mapq, flag in reads:
            a = pysam.AlignedSegment()
            a.query_name = name
            a.query_sequence = "ACGT" * 5
            a.flag = flag
            a.reference_id = 0
            a.reference_start = 0
            a.mapping_quality = mapq
            a.cigartuples = [(0, 20)]
            a.query_qualities = pysam.qualitystring_to_array("I" * 20)
            bam.write(a)
    pysam.index(str(path))
    return path


def test_depth_cap_applies_after_mapq_filter(tmp_path):
    reads = [(f"low{i}", 5, 0) for i in range(3)] + [(f"hi{i}", 60, 0) for i in range(2)]
    bam = _write_stacked_bam(tmp_path / "stacked.bam", reads)
    m, _ = count_region(bam, "chr1:5-5", CountParams(max_depth=2))
    assert m.cell(0, Strand.FORWARD, Field.NOBS) == 2
    assert m.cell(0, Strand.FORWARD, Field.MAPQ_SUM) == 120


def test_depth_cap_applies_after_flag_filter(tmp_path):
    reads = [(f"dup{i}", 60, 1024) for i in range(3)] + [(f"ok{i}", 60, 0) for i in range(2)]
    bam = _write_stacked_bam(tmp_path / "stacked.bam", reads)
    m, _ = count_region(bam, "chr1:5-5", CountParams(max_depth=2))
    assert m.cell(0, Strand.FORWARD, Field.NOBS) == 2


def test_depth_cap_limits_observations(tmp_path):
    reads = [(f"r{i}", 60, 0) for i in range(5)]
    bam = _write_stacked_bam(tmp_path / "stacked.bam", reads)
    m, _ = count_region(bam, "chr1:5-5", CountParams(max_depth=3))
    assert m.cell(0, Strand.FORWARD, Field.NOBS) == 3
