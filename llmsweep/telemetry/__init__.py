"""GPU telemetry: query sources, background sampler, log and correlation."""

from llmsweep.telemetry.correlate import correlate, reduce_window, select_window
from llmsweep.telemetry.log import TelemetryLog, format_sample, parse_sample_line
from llmsweep.telemetry.sampler import TelemetrySampler
from llmsweep.telemetry.sources import (
    GPUQuery,
    NvidiaSmiQuery,
    NvmlQuery,
    TelemetryQueryError,
    create_gpu_query,
    parse_query_line,
)

__all__ = [
    "GPUQuery",
    "NvidiaSmiQuery",
    "NvmlQuery",
    "TelemetryLog",
    "TelemetryQueryError",
    "TelemetrySampler",
    "correlate",
    "create_gpu_query",
    "format_sample",
    "parse_query_line",
    "parse_sample_line",
    "reduce_window",
    "select_window",
]
