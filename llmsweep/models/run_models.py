"""Data models for parsed transcripts, telemetry and per-run records."""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from typing import Any

# Column order of the raw results table.
METRIC_COLUMNS: tuple[str, ...] = (
    "total_duration_s",
    "load_duration_s",
    "prompt_eval_count",
    "prompt_eval_duration_s",
    "prompt_eval_rate_tps",
    "eval_count",
    "eval_duration_s",
    "eval_rate_tps",
)

WINDOW_COLUMNS: tuple[str, ...] = (
    "gpu_mem_max_mib",
    "gpu_mem_min_mib",
    "gpu_util_max_pct",
    "gpu_util_mean_pct",
    "gpu_power_max_w",
    "gpu_power_mean_w",
    "gpu_temp_max_c",
    "gpu_sample_count",
)

RAW_COLUMNS: tuple[str, ...] = (
    "model",
    "prompt_id",
    "repeat_index",
    "mode",
    "run_start",
    "run_end",
    "wall_time_s",
    *METRIC_COLUMNS,
    *WINDOW_COLUMNS,
    "exit_code",
    "ran_this_time",
    "parse_warnings",
    "transcript_path",
)

_INT_COLUMNS = {"repeat_index", "prompt_eval_count", "eval_count", "gpu_sample_count", "exit_code"}
_STR_COLUMNS = {"model", "prompt_id", "mode", "transcript_path"}


@dataclass(frozen=True)
class MetricRecord:
    """Metrics extracted from one engine transcript.

    Every field is independently optional; None means the transcript did
    not contain a recognizable value for it.

    Attributes
    ----------
    total_duration_s, load_duration_s, prompt_eval_duration_s, eval_duration_s : float | None
        Phase durations in seconds.
    prompt_eval_count, eval_count : int | None
        Token counts for the prompt and generation phases.
    prompt_eval_rate_tps, eval_rate_tps : float | None
        Throughput in tokens per second.
    """

    total_duration_s: float | None = None
    load_duration_s: float | None = None
    prompt_eval_count: int | None = None
    prompt_eval_duration_s: float | None = None
    prompt_eval_rate_tps: float | None = None
    eval_count: int | None = None
    eval_duration_s: float | None = None
    eval_rate_tps: float | None = None

    def is_empty(self) -> bool:
        """True when no metric at all was recognized."""
        return all(getattr(self, f.name) is None for f in fields(self))

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class TelemetrySample:
    """One timestamped GPU snapshot.

    ``timestamp`` is Unix time in seconds. Memory is in MiB, utilization in
    percent, power in watts and temperature in degrees Celsius. Any reading
    the monitoring tool reported as unavailable is None.
    """

    timestamp: float
    memory_used: float | None
    memory_total: float | None
    utilization_pct: float | None
    power_draw: float | None
    temperature: float | None

    def to_dict(self) -> dict[str, Any]:
        """Convert to JSON-serializable dictionary."""
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass(frozen=True)
class GPUSnapshot:
    """A GPU reading before it is stamped with a sample timestamp."""

    memory_used: float | None
    memory_total: float | None
    utilization_pct: float | None
    power_draw: float | None
    temperature: float | None

    def at(self, timestamp: float) -> TelemetrySample:
        """Return the snapshot as a TelemetrySample taken at ``timestamp``."""
        return TelemetrySample(
            timestamp=timestamp,
            memory_used=self.memory_used,
            memory_total=self.memory_total,
            utilization_pct=self.utilization_pct,
            power_draw=self.power_draw,
            temperature=self.temperature,
        )


@dataclass(frozen=True)
class WindowStats:
    """Telemetry reduced over one run's [start, end] window.

    Means are rounded to one decimal place; max/min are exact. A window with
    no samples has ``sample_count == 0`` and every statistic None.
    """

    mem_max: float | None = None
    mem_min: float | None = None
    util_max: float | None = None
    util_mean: float | None = None
    power_max: float | None = None
    power_mean: float | None = None
    temp_max: float | None = None
    sample_count: int = 0

    def to_columns(self) -> dict[str, Any]:
        """Map onto the raw-table GPU columns."""
        return dict(
            zip(
                WINDOW_COLUMNS,
                (
                    self.mem_max,
                    self.mem_min,
                    self.util_max,
                    self.util_mean,
                    self.power_max,
                    self.power_mean,
                    self.temp_max,
                    self.sample_count,
                ),
                strict=True,
            )
        )


@dataclass(frozen=True)
class RunRecord:
    """One matrix cell and repeat, as measured (or resumed) in a session.

    ``run_start``/``run_end`` are Unix timestamps taken around the engine
    invocation only. Both are None for a cell skipped because its artifact
    already existed from a previous session.
    """

    model: str
    prompt_id: str
    repeat_index: int
    mode: str
    run_start: float | None = None
    run_end: float | None = None
    metrics: MetricRecord = field(default_factory=MetricRecord)
    window: WindowStats = field(default_factory=WindowStats)
    exit_code: int | None = None
    ran_this_time: bool = True
    parse_warnings: frozenset[str] = frozenset()
    transcript_path: str = ""

    def __post_init__(self) -> None:
        if (
            self.run_start is not None
            and self.run_end is not None
            and self.run_end < self.run_start
        ):
            raise ValueError(
                f"run_end ({self.run_end}) precedes run_start ({self.run_start})"
            )

    @property
    def wall_time_s(self) -> float | None:
        """Wall-clock duration of the invocation, if it ran this session."""
        if self.run_start is None or self.run_end is None:
            return None
        return self.run_end - self.run_start

    def to_row(self) -> dict[str, Any]:
        """Flatten into one raw-table row keyed by RAW_COLUMNS."""
        row: dict[str, Any] = {
            "model": self.model,
            "prompt_id": self.prompt_id,
            "repeat_index": self.repeat_index,
            "mode": self.mode,
            "run_start": self.run_start,
            "run_end": self.run_end,
            "wall_time_s": self.wall_time_s,
        }
        row.update(self.metrics.to_dict())
        row.update(self.window.to_columns())
        row["exit_code"] = self.exit_code
        row["ran_this_time"] = self.ran_this_time
        row["parse_warnings"] = ";".join(sorted(self.parse_warnings))
        row["transcript_path"] = self.transcript_path
        return row

    def get(self, column: str) -> Any:
        """Return the value of one raw-table column (None if unknown)."""
        if column in METRIC_COLUMNS:
            return getattr(self.metrics, column)
        if column in WINDOW_COLUMNS:
            return self.window.to_columns()[column]
        if column == "parse_warnings":
            return ";".join(sorted(self.parse_warnings))
        return getattr(self, column, None)

    @classmethod
    def from_row(cls, row: dict[str, str]) -> RunRecord:
        """Rebuild a record from a raw-table row read back as strings.

        Empty cells become None. Unknown columns are ignored.
        """
        values = {name: _parse_cell(name, row.get(name, "")) for name in RAW_COLUMNS}
        window_values = [values[c] for c in WINDOW_COLUMNS]
        return cls(
            model=values["model"] or "",
            prompt_id=values["prompt_id"] or "",
            repeat_index=values["repeat_index"] or 0,
            mode=values["mode"] or "",
            run_start=values["run_start"],
            run_end=values["run_end"],
            metrics=MetricRecord(**{c: values[c] for c in METRIC_COLUMNS}),
            window=WindowStats(
                *window_values[:-1], sample_count=window_values[-1] or 0
            ),
            exit_code=values["exit_code"],
            ran_this_time=values["ran_this_time"],
            parse_warnings=values["parse_warnings"],
            transcript_path=values["transcript_path"] or "",
        )


def _parse_cell(name: str, text: str | None) -> Any:
    text = (text or "").strip()
    if name == "ran_this_time":
        return text.lower() in ("true", "1", "yes")
    if name == "parse_warnings":
        return frozenset(w for w in text.split(";") if w)
    if name in _STR_COLUMNS:
        return text
    if text == "":
        return None
    if name in _INT_COLUMNS:
        return int(float(text))
    return float(text)


@dataclass(frozen=True)
class FieldStats:
    """Descriptive statistics over the non-null values of one field."""

    count: int
    mean: float | None = None
    stddev: float | None = None
    min: float | None = None
    max: float | None = None
    median: float | None = None
    cv_pct: float | None = None


STAT_NAMES: tuple[str, ...] = ("count", "mean", "stddev", "min", "max", "median", "cv_pct")


@dataclass(frozen=True)
class SummaryRow:
    """Statistics for one group of RunRecords.

    ``group`` maps each grouping key (e.g. model, prompt_id, mode) to its
    value for this row; a coarse rollup uses a sentinel such as ``ALL``.
    """

    group: dict[str, str]
    runs: int
    stats: dict[str, FieldStats]
    high_variance: bool

    def to_row(self) -> dict[str, Any]:
        """Flatten into ``<field>_<stat>`` columns."""
        row: dict[str, Any] = dict(self.group)
        row["runs"] = self.runs
        for name, field_stats in self.stats.items():
            for stat in STAT_NAMES:
                row[f"{name}_{stat}"] = getattr(field_stats, stat)
        row["high_variance"] = self.high_variance
        return row
