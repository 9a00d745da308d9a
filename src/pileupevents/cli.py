from __future__ import annotations

import argparse
import json
import logging
import sys
import time
from pathlib import Path
from typing import Optional

from . import __version__
from .constants import (
    DEFAULT_CLIP_MARGIN,
    DEFAULT_EXCLUDE_FLAG_MASK,
    DEFAULT_INCLUDE_FLAG_MASK,
    DEFAULT_MAX_DEPTH,
    DEFAULT_MIN_BASE_QUALITY,
    DEFAULT_MIN_MAPPING_QUALITY,
)
from .models import CountParams
from .output import write_csv, write_csv_path
from .pileup import count_region
from .plotting import plot_strand_depth
from .report import render_report, summarize_scan
from .toy_data import make_toy_data
from .utils import ensure_outdir, write_json
from .validation import check_alignment_index


def _setup_logging(verbosity: int, *, logfile: Optional[Path] = None) -> None:
    level = logging.WARNING
    if verbosity == 1:
        level = logging.INFO
    elif verbosity >= 2:
        level = logging.DEBUG

    log_fmt = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"
    logging.basicConfig(level=level, format=log_fmt, stream=sys.stderr)

    if logfile is not None:
        logfile.parent.mkdir(parents=True, exist_ok=True)
        fh = logging.FileHandler(logfile)
        fh.setLevel(level)
        fh.setFormatter(logging.Formatter(log_fmt))
        logging.getLogger().addHandler(fh)


def _path_exists(p: str) -> str:
    if not Path(p).exists():
        raise argparse.ArgumentTypeError(f"Path does not exist: {p}")
    return p


def _handle_error(err: Exception, *, log_path: Optional[Path] = None) -> int:
    msg = f"{err.__class__.__name__}: {err}"
    sys.stderr.write(msg + "\n")
    if log_path is not None:
        sys.stderr.write(f"See log: {log_path}\n")
    return 2


_DESCRIPTION = """\
pileup-events: count alleles and alignment events per position for a genomic region.

A result matrix with one row per position and 24 columns of event counters
(see --head) is printed as CSV. The first 12 columns count events on the forward
strand, the next 12 on the reverse strand.

Region coordinates are 1-based and end-inclusive, as reported in a VCF.
chr1:100 is the single base chr1:100-100, chr1:-100 is shorthand for chr1:1-100
and chr1:100- runs to the contig end. Where contig names contain colons, surround
them in curly braces: {HLA-DRB1*12:17}:<start>-<end>.
"""


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="pileup-events",
        description="pileup-events: per-position allele and alignment event counts from BAM/CRAM.",
    )
    p.add_argument("--version", action="version", version=f"pileup-events {__version__}")

    sub = p.add_subparsers(dest="cmd", required=True)

    # -----------------
    # quickstart
    # -----------------
    sub.add_parser(
        "quickstart",
        help="Print ready-to-run recipes for common scenarios.",
    )

    # -----------------
    # make-toy-data
    # -----------------
    t = sub.add_parser(
        "make-toy-data",
        help="Generate a tiny indexed paired-end BAM for demos/tests.",
    )
    t.add_argument("--outdir", required=True, help="Output directory for toy data.")
    t.add_argument("--dry-run", action="store_true", help="Validate paths without writing files.")

    # -----------------
    # count
    # -----------------
    c = sub.add_parser(
        "count",
        help="Count alleles and alignment events per position for a region.",
        description=_DESCRIPTION,
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    c.add_argument("aln", type=_path_exists, help="Input BAM/CRAM (sorted, indexed).")
    c.add_argument("region", help="Region chr:start-end (1-based, end-inclusive).")

    c.add_argument(
        "-b",
        "--baseq",
        type=int,
        default=DEFAULT_MIN_BASE_QUALITY,
        help="Bases with quality at or below this are ambiguous (N). (default %(default)s)",
    )
    c.add_argument(
        "-m",
        "--mapq",
        type=int,
        default=DEFAULT_MIN_MAPPING_QUALITY,
        help="Minimum mapping quality to include read. (default %(default)s)",
    )
    c.add_argument(
        "-c",
        "--clip",
        type=int,
        default=DEFAULT_CLIP_MARGIN,
        help="Treat bases within <clip> bases of read edges as ambiguous. (default %(default)s)",
    )
    c.add_argument(
        "-i",
        "--include",
        type=int,
        default=DEFAULT_INCLUDE_FLAG_MASK,
        help="Include only reads with all bits set in SAM flag, as integer. (default %(default)s)",
    )
    c.add_argument(
        "-e",
        "--exclude",
        type=int,
        default=DEFAULT_EXCLUDE_FLAG_MASK,
        help="Exclude reads with any bits set in SAM flag, as integer. (default %(default)s)",
    )
    c.add_argument(
        "-d",
        "--depth",
        type=int,
        default=DEFAULT_MAX_DEPTH,
        help="Maximum read depth per position. (default %(default)s)",
    )
    c.add_argument(
        "--discard-overlaps",
        action="store_true",
        help="Avoid double counting of bases from the same template.",
    )

    # Outputs
    c.add_argument("--head", action="store_true", help="Print header row.")
    c.add_argument("--row", action="store_true", help="Print 1-based genomic position for each row.")
    c.add_argument(
        "-o",
        "--output",
        default=None,
        help="Write CSV to this path instead of stdout (.gz compresses).",
    )
    c.add_argument(
        "--report-dir",
        default=None,
        help="Also write summary.json, a strand depth plot and report.html into this directory.",
    )
    c.add_argument("--progress", action="store_true", help="Show a progress bar on stderr.")
    c.add_argument("--log-file", default=None, help="Also write log messages to this file.")
    c.add_argument("-v", "--verbose", action="count", default=0, help="Increase verbosity (-v/-vv).")

    return p


# -----------------
# Command handlers
# -----------------

def cmd_quickstart() -> int:
    lines = [
        "pileup-events quickstart (copy/paste):",
        "",
        "1) Counts for a region, with header and positions:",
        "   pileup-events count sample.bam chr1:1000-2000 --head --row > counts.csv",
        "",
        "2) Paired-end data, counting each overlapping base once:",
        "   pileup-events count sample.bam chr1:1000-2000 --discard-overlaps --head",
        "",
        "3) Stricter filters plus an HTML report:",
        "   pileup-events count sample.bam chr17:7661779-7687538 \\",
        "     -b 20 -m 40 -c 5 \\",
        "     -o tp53.csv.gz --report-dir tp53_report/",
        "",
        "Tip: try it on generated data first: pileup-events make-toy-data --outdir toy/",
    ]
    print("\n".join(lines))
    return 0


def cmd_make_toy_data(args: argparse.Namespace) -> int:
    outdir = Path(args.outdir).expanduser().resolve()
    if args.dry_run:
        print(f"Would write toy data into: {outdir}")
        return 0

    try:
        summary = make_toy_data(outdir=outdir)
    except Exception as e:
        return _handle_error(e)
    print(json.dumps(summary, indent=2))
    return 0


def _params_from_args(args: argparse.Namespace) -> CountParams:
    return CountParams(
        min_base_quality=int(args.baseq),
        min_mapping_quality=int(args.mapq),
        clip_margin=int(args.clip),
        include_flag_mask=int(args.include),
        exclude_flag_mask=int(args.exclude),
        max_depth=int(args.depth),
        discard_overlaps=bool(args.discard_overlaps),
    ).validate()


def cmd_count(args: argparse.Namespace) -> int:
    log_path = Path(args.log_file).expanduser().resolve() if args.log_file else None
    _setup_logging(args.verbose, logfile=log_path)

    logger = logging.getLogger("pileupevents")
    logger.info("pileup-events %s", __version__)

    try:
        params = _params_from_args(args)
        check_alignment_index(args.aln)

        t0 = time.time()
        matrix, region = count_region(args.aln, args.region, params, progress=bool(args.progress))
        runtime = time.time() - t0

        # output only after a complete scan
        if args.output:
            write_csv_path(matrix, region, args.output, header=args.head, row_positions=args.row)
        else:
            write_csv(matrix, region, sys.stdout, header=args.head, row_positions=args.row)

        if args.report_dir:
            report_dir = ensure_outdir(Path(args.report_dir).expanduser().resolve())
            summary = summarize_scan(
                matrix=matrix,
                region=region,
                params=params,
                aln_path=args.aln,
                runtime_seconds=runtime,
            )
            write_json(report_dir / "summary.json", summary)

            plot_png = report_dir / "plots" / "strand_depth.png"
            plot_strand_depth(matrix=matrix, region=region, out_png=plot_png)
            render_report(
                outdir=report_dir,
                version=__version__,
                summary=summary,
                plot=str(Path("plots") / plot_png.name),
            )
        return 0
    except Exception as e:
        return _handle_error(e, log_path=log_path)


def main(argv: Optional[list[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    if args.cmd == "quickstart":
        return cmd_quickstart()
    if args.cmd == "make-toy-data":
        return cmd_make_toy_data(args)
    if args.cmd == "count":
        return cmd_count(args)

    parser.error(f"Unknown command: {args.cmd}")
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
