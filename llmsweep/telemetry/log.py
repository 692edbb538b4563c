"""Append-only telemetry log stored as plain text lines.

One line per sample::

    1718000000.250000,10240,24564,97,287.41,71

Fields are timestamp (Unix seconds), memory used and total (MiB),
utilization (%), power draw (W) and temperature (C). An empty field means the
reading was unavailable. Lines starting with ``#`` are comments.

The sampler thread is the only writer. Each sample is written with a single
``write()`` on a file opened in append mode, so readers never see two samples
interleaved; a trailing line without a newline is a write in progress and is
ignored until it is complete.
"""

from __future__ import annotations

from collections.abc import Iterator
from pathlib import Path

from llmsweep.models.run_models import TelemetrySample

HEADER = (
    "# timestamp,memory_used_mib,memory_total_mib,utilization_pct,"
    "power_draw_w,temperature_c\n"
)
_FIELD_COUNT = 6


def _format_reading(value: float | None) -> str:
    if value is None:
        return ""
    return str(int(value)) if float(value).is_integer() else f"{value:.2f}"


def format_sample(sample: TelemetrySample) -> str:
    """Render one sample as a newline-terminated log line."""
    readings = (
        sample.memory_used,
        sample.memory_total,
        sample.utilization_pct,
        sample.power_draw,
        sample.temperature,
    )
    return f"{sample.timestamp:.6f}," + ",".join(map(_format_reading, readings)) + "\n"


def parse_sample_line(line: str) -> TelemetrySample | None:
    """Parse one log line; None for comments, blanks and malformed lines."""
    line = line.strip()
    if not line or line.startswith("#"):
        return None

    parts = [part.strip() for part in line.split(",")]
    if len(parts) != _FIELD_COUNT:
        return None

    try:
        timestamp = float(parts[0])
        readings = [float(part) if part else None for part in parts[1:]]
    except ValueError:
        return None

    return TelemetrySample(timestamp, *readings)


class TelemetryLog:
    """File-backed, append-only sequence of TelemetrySamples.

    Parameters
    ----------
    path : str | Path
        Log file location. Parent directories are created on demand.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def create(self, truncate: bool = False) -> None:
        """Ensure the log exists; start it fresh when ``truncate`` is set.

        An existing log is kept by default so resumed sessions add to it.
        """
        self.path.parent.mkdir(parents=True, exist_ok=True)
        if truncate or not self.path.exists():
            self.path.write_text(HEADER, encoding="utf-8")

    def append(self, sample: TelemetrySample) -> None:
        """Append one sample in a single write."""
        with open(self.path, "a", encoding="utf-8") as f:
            f.write(format_sample(sample))

    def read_samples(self) -> list[TelemetrySample]:
        """Return every complete sample present at call time.

        Never waits for more data. A missing log reads as empty.
        """
        try:
            content = self.path.read_text(encoding="utf-8", errors="replace")
        except FileNotFoundError:
            return []

        lines = content.split("\n")
        # The last element is either "" or a line still being written.
        complete_lines = lines[:-1]
        samples = []
        for line in complete_lines:
            sample = parse_sample_line(line)
            if sample is not None:
                samples.append(sample)
        return samples

    def __iter__(self) -> Iterator[TelemetrySample]:
        return iter(self.read_samples())

    def __len__(self) -> int:
        return len(self.read_samples())
