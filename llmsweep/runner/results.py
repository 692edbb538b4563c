"""Session results: the record collection, CSV tables and report emission.

Usage:
    from llmsweep.runner.results import SweepReport, OutputFormat, write_raw_csv

    write_raw_csv(records, "out/results_raw.csv")
    records = read_raw_csv("out/results_raw.csv")

    report = SweepReport(records, summarize(records))
    report.emit("report.json", OutputFormat.JSON)
    report.emit(sys.stdout, OutputFormat.TEXT)
"""

import csv
import json
import sys
from collections.abc import Iterable, Iterator, Sequence
from datetime import UTC, datetime
from enum import Enum
from io import StringIO
from pathlib import Path
from typing import Any, TextIO

import yaml

from llmsweep.models.run_models import RAW_COLUMNS, STAT_NAMES, RunRecord, SummaryRow
from llmsweep.stats.aggregate import FINE_GROUP_KEYS, PRIMARY_FIELD, SUMMARY_FIELDS


class OutputFormat(Enum):
    """Supported output formats for a sweep report."""

    JSON = "json"
    YAML = "yaml"
    TEXT = "text"  # Human-readable text for stdout


class RunResults:
    """Append-only collection of the RunRecords produced by one session.

    Records are only ever added, in execution order; the aggregator reads
    the finished collection.
    """

    def __init__(self) -> None:
        self._records: list[RunRecord] = []

    def append(self, record: RunRecord) -> None:
        self._records.append(record)

    @property
    def records(self) -> tuple[RunRecord, ...]:
        return tuple(self._records)

    @property
    def executed(self) -> int:
        """Number of records measured in this session."""
        return sum(1 for r in self._records if r.ran_this_time)

    @property
    def skipped(self) -> int:
        """Number of records reused from an earlier session."""
        return sum(1 for r in self._records if not r.ran_this_time)

    def __iter__(self) -> Iterator[RunRecord]:
        return iter(self._records)

    def __len__(self) -> int:
        return len(self._records)


# -----------------------------------------------------------------------------
# CSV tables
# -----------------------------------------------------------------------------


def _format_cell(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, float):
        return repr(round(value, 6))
    return str(value)


def summary_columns(fields: Iterable[str] | None = None) -> list[str]:
    """Column order of the summary table."""
    labels = list(SUMMARY_FIELDS if fields is None else fields)
    columns = [*FINE_GROUP_KEYS, "runs"]
    for label in labels:
        columns.extend(f"{label}_{stat}" for stat in STAT_NAMES)
    columns.append("high_variance")
    return columns


def _write_table(path: str | Path, columns: Sequence[str], rows: Iterable[dict[str, Any]]) -> Path:
    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=list(columns), extrasaction="ignore")
        writer.writeheader()
        for row in rows:
            writer.writerow({k: _format_cell(v) for k, v in row.items()})
    return path


def write_raw_csv(records: Iterable[RunRecord], path: str | Path) -> Path:
    """Write one row per RunRecord, skipped cells included."""
    return _write_table(path, RAW_COLUMNS, (r.to_row() for r in records))


def write_summary_csv(rows: Sequence[SummaryRow], path: str | Path) -> Path:
    """Write the fine-grained and rollup summary rows."""
    fields = rows[0].stats.keys() if rows else None
    return _write_table(path, summary_columns(fields), (r.to_row() for r in rows))


def read_raw_csv(path: str | Path) -> list[RunRecord]:
    """Load a raw results table written by write_raw_csv().

    Raises:
        FileNotFoundError: If the table does not exist.
        ValueError: If a row has an unparseable numeric cell.
    """
    with open(path, newline="", encoding="utf-8") as f:
        return [RunRecord.from_row(row) for row in csv.DictReader(f)]


# -----------------------------------------------------------------------------
# Report
# -----------------------------------------------------------------------------


class SweepReport:
    """Raw records plus summary rows of a session, emittable in several formats.

    Example:
        >>> report = SweepReport(records, summarize(records))
        >>> report.emit("report.yaml", OutputFormat.YAML)
        >>> report.emit(sys.stdout, OutputFormat.TEXT)
    """

    def __init__(
        self,
        records: Sequence[RunRecord],
        summary: Sequence[SummaryRow],
        metadata: dict[str, Any] | None = None,
    ) -> None:
        self.records = list(records)
        self.summary = list(summary)
        self._metadata: dict[str, Any] = {
            "generated_at": datetime.now(UTC).isoformat(),
            "llmsweep_version": self._get_version(),
        }
        self._metadata.update(metadata or {})

    def _get_version(self) -> str:
        from llmsweep import __version__

        return str(__version__)

    def to_dict(self) -> dict[str, Any]:
        """Convert the report to a dictionary for serialization."""
        return {
            "metadata": self._metadata,
            "totals": {
                "runs": len(self.records),
                "executed": sum(1 for r in self.records if r.ran_this_time),
                "skipped": sum(1 for r in self.records if not r.ran_this_time),
                "with_warnings": sum(1 for r in self.records if r.parse_warnings),
                "high_variance_groups": sum(1 for s in self.summary if s.high_variance),
            },
            "summary": [row.to_row() for row in self.summary],
            "runs": [record.to_row() for record in self.records],
        }

    # -------------------------------------------------------------------------
    # Emission Methods
    # -------------------------------------------------------------------------

    def emit(
        self,
        output: str | Path | TextIO,
        format: OutputFormat = OutputFormat.JSON,
        indent: int = 2,
    ) -> None:
        """Emit the report to a file or stream.

        Args:
            output: File path or file-like object (e.g., sys.stdout).
            format: Output format (JSON, YAML, TEXT).
            indent: Indentation level for JSON/YAML.
        """
        if format == OutputFormat.JSON:
            content = json.dumps(self.to_dict(), indent=indent, default=str)
        elif format == OutputFormat.YAML:
            content = yaml.safe_dump(
                self.to_dict(), indent=indent, default_flow_style=False, sort_keys=False
            )
        elif format == OutputFormat.TEXT:
            content = self._to_text()
        else:
            raise ValueError(f"Unknown format: {format}")

        self._write_output(output, content)

    def _to_text(self) -> str:
        output = StringIO()
        totals = self.to_dict()["totals"]

        output.write("\n" + "=" * 78 + "\n")
        output.write("  LLMSWEEP RESULTS\n")
        output.write("=" * 78 + "\n\n")
        output.write(f"Generated: {self._metadata['generated_at']}\n")
        output.write(f"Version:   {self._metadata['llmsweep_version']}\n\n")

        output.write("-" * 40 + "\n")
        output.write(f"Runs:          {totals['runs']}\n")
        output.write(f"Executed:      {totals['executed']}\n")
        output.write(f"Resumed:       {totals['skipped']}\n")
        output.write(f"With warnings: {totals['with_warnings']}\n")
        output.write("-" * 40 + "\n\n")

        header = f"{'model':<24} {'prompt':<16} {'mode':<7} {'runs':>4} {'tok/s':>9} {'stddev':>8} {'cv%':>6}"
        output.write(header + "\n")
        output.write("-" * len(header) + "\n")
        for row in self.summary:
            stats = row.stats.get(PRIMARY_FIELD)
            output.write(
                f"{row.group.get('model', ''):<24} "
                f"{row.group.get('prompt_id', ''):<16} "
                f"{row.group.get('mode', ''):<7} "
                f"{row.runs:>4} "
                f"{_fmt(stats.mean if stats else None):>9} "
                f"{_fmt(stats.stddev if stats else None):>8} "
                f"{_fmt(stats.cv_pct if stats else None):>6}"
                f"{'  HIGH VARIANCE' if row.high_variance else ''}\n"
            )

        warned = [r for r in self.records if r.parse_warnings]
        if warned:
            output.write("\nWARNINGS\n")
            output.write("-" * 40 + "\n")
            for record in warned:
                output.write(
                    f"  {record.model}/{record.prompt_id}/run{record.repeat_index:02d}: "
                    f"{', '.join(sorted(record.parse_warnings))}\n"
                )

        output.write("=" * 78 + "\n")
        return output.getvalue()

    def _write_output(self, output: str | Path | TextIO, content: str) -> None:
        if isinstance(output, str | Path):
            Path(output).write_text(content, encoding="utf-8")
        else:
            output.write(content)
            if output is not sys.stdout and output is not sys.stderr:
                output.flush()


def _fmt(value: float | None) -> str:
    return "-" if value is None else f"{value:.2f}"
