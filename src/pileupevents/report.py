from __future__ import annotations

import datetime as _dt
import logging
from dataclasses import asdict
from pathlib import Path
from typing import Any, Dict

import numpy as np
from jinja2 import Template

from .constants import Field
from .matrix import ResultMatrix
from .models import CountParams, Region

logger = logging.getLogger(__name__)


_REPORT_TEMPLATE = Template(
    """<!doctype html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <title>pileup-events report</title>
  <style>
    body { font-family: Arial, Helvetica, sans-serif; margin: 24px; }
    code, pre { background: #f6f8fa; padding: 2px 4px; border-radius: 4px; }
    h1, h2, h3 { margin-top: 1.2em; }
    table { border-collapse: collapse; margin-top: 0.6em; }
    th, td { border: 1px solid #ddd; padding: 6px 8px; }
    th { background: #f2f2f2; text-align: left; }
    td.num { text-align: right; }
    .small { color: #666; font-size: 0.9em; }
    img { max-width: 100%; height: auto; border: 1px solid #eee; border-radius: 6px; }
  </style>
</head>
<body>

<h1>pileup-events report</h1>
<p class="small">Generated: {{ generated_at }}</p>

<h2>Scan</h2>
<table>
  <tr><th>Alignment file</th><td><code>{{ summary.aln_path }}</code></td></tr>
  <tr><th>Region</th><td><code>{{ summary.region.display }}</code> ({{ summary.region.length }} bp)</td></tr>
  <tr><th>Positions with observations</th><td>{{ summary.positions_covered }}</td></tr>
  <tr><th>Runtime (s)</th><td>{{ "%.2f"|format(summary.runtime_seconds) }}</td></tr>
</table>

<h2>Parameters</h2>
<table>
  {% for key, value in summary.params.items() %}
  <tr><th>{{ key }}</th><td>{{ value }}</td></tr>
  {% endfor %}
</table>

<h2>Totals per strand</h2>
<table>
  <tr><th>Field</th><th>Forward</th><th>Reverse</th></tr>
  {% for name in fields %}
  <tr><th>{{ name }}</th><td class="num">{{ summary.totals.forward[name] }}</td><td class="num">{{ summary.totals.reverse[name] }}</td></tr>
  {% endfor %}
</table>

{% if plot %}
<h2>Observations per position</h2>
<img src="{{ plot }}" alt="strand depth">
{% endif %}

<hr>
<p class="small">pileup-events {{ version }}</p>
</body>
</html>"""
)


def summarize_scan(
    *,
    matrix: ResultMatrix,
    region: Region,
    params: CountParams,
    aln_path: str,
    runtime_seconds: float,
) -> Dict[str, Any]:
    """Machine-readable summary of one completed scan."""
    rows = matrix.rows()
    nobs = rows[:, Field.NOBS] + rows[:, len(Field) + Field.NOBS]
    return {
        "aln_path": str(aln_path),
        "region": {
            "display": region.display(),
            "contig": region.contig,
            "start0": region.start,
            "end0": region.end,
            "length": region.length,
        },
        "params": asdict(params),
        "totals": matrix.totals(),
        "positions_covered": int(np.count_nonzero(nobs)),
        "runtime_seconds": float(runtime_seconds),
    }


def render_report(
    *,
    outdir: str | Path,
    version: str,
    summary: Dict[str, Any],
    plot: str = "",
) -> Path:
    outdir = Path(outdir)
    outdir.mkdir(parents=True, exist_ok=True)

    html = _REPORT_TEMPLATE.render(
        generated_at=_dt.datetime.now().isoformat(timespec="seconds"),
        version=version,
        summary=summary,
        fields=[f.name for f in Field],
        plot=plot,
    )

    out_path = outdir / "report.html"
    out_path.write_text(html, encoding="utf-8")
    logger.info("Report written: %s", out_path)
    return out_path
