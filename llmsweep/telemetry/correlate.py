"""Correlate telemetry samples with a single run's time window."""

from __future__ import annotations

from collections.abc import Iterable

from llmsweep.models.run_models import TelemetrySample, WindowStats
from llmsweep.telemetry.log import TelemetryLog

MEAN_PRECISION = 1


def select_window(
    samples: Iterable[TelemetrySample], start: float, end: float
) -> list[TelemetrySample]:
    """Return samples with ``start <= timestamp <= end``, in input order.

    Input order is not assumed to be sorted; clock steps can reorder
    timestamps and every sample is checked individually.
    """
    return [s for s in samples if start <= s.timestamp <= end]


def _present(values: Iterable[float | None]) -> list[float]:
    return [v for v in values if v is not None]


def _max(values: list[float]) -> float | None:
    return max(values) if values else None


def _min(values: list[float]) -> float | None:
    return min(values) if values else None


def _mean(values: list[float]) -> float | None:
    if not values:
        return None
    return round(sum(values) / len(values), MEAN_PRECISION)


def reduce_window(samples: list[TelemetrySample]) -> WindowStats:
    """Reduce already-selected samples to WindowStats.

    Readings that were unavailable in a sample are skipped per metric, so a
    board without power telemetry still yields memory and utilization.
    """
    if not samples:
        return WindowStats()

    memory = _present(s.memory_used for s in samples)
    util = _present(s.utilization_pct for s in samples)
    power = _present(s.power_draw for s in samples)
    temperature = _present(s.temperature for s in samples)

    return WindowStats(
        mem_max=_max(memory),
        mem_min=_min(memory),
        util_max=_max(util),
        util_mean=_mean(util),
        power_max=_max(power),
        power_mean=_mean(power),
        temp_max=_max(temperature),
        sample_count=len(samples),
    )


def correlate(
    telemetry: TelemetryLog | Iterable[TelemetrySample],
    start: float | None,
    end: float | None,
) -> WindowStats:
    """Summarize the telemetry recorded during ``[start, end]``.

    Args:
        telemetry: A TelemetryLog (read as it exists right now) or any
            iterable of samples. Samples are only read.
        start: Window start (Unix seconds), or None for a run that did not
            execute this session.
        end: Window end (Unix seconds).

    Returns:
        WindowStats; ``sample_count == 0`` with all-None statistics when no
        sample falls inside the window.
    """
    if start is None or end is None or end < start:
        return WindowStats()

    samples = telemetry.read_samples() if isinstance(telemetry, TelemetryLog) else telemetry
    return reduce_window(select_window(samples, start, end))
