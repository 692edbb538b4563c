"""Summarize command - re-aggregates an existing raw results table."""

import sys
from pathlib import Path

import click

from llmsweep.runner.results import OutputFormat, SweepReport, read_raw_csv, write_summary_csv
from llmsweep.stats import HIGH_VARIANCE_CV_PCT, summarize


def run_summarize(
    raw_csv: str,
    output: str | None = None,
    fmt: str = "text",
    threshold: float = HIGH_VARIANCE_CV_PCT,
) -> None:
    """Recompute summary statistics from ``results_raw.csv``.

    Args:
        raw_csv: Raw results table written by a sweep.
        output: Optional path for a summary CSV.
        fmt: Report format printed to stdout (text, json, yaml).
        threshold: CV percentage above which a group is flagged.
    """
    try:
        records = read_raw_csv(raw_csv)
    except (OSError, ValueError) as e:
        raise click.ClickException(f"Cannot read {raw_csv}: {e}") from e

    summary = summarize(records, threshold_pct=threshold)
    if output:
        write_summary_csv(summary, output)
        click.echo(f"✓ Summary saved to: {output}", err=True)

    report = SweepReport(records, summary, {"source": str(Path(raw_csv))})
    report.emit(sys.stdout, OutputFormat(fmt.lower()))
