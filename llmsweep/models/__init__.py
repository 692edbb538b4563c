"""Data models for llmsweep."""

from llmsweep.models.run_models import (
    METRIC_COLUMNS,
    RAW_COLUMNS,
    STAT_NAMES,
    WINDOW_COLUMNS,
    FieldStats,
    GPUSnapshot,
    MetricRecord,
    RunRecord,
    SummaryRow,
    TelemetrySample,
    WindowStats,
)
from llmsweep.models.sweep_models import EngineConfig, PromptConfig, SweepConfig

__all__ = [
    "METRIC_COLUMNS",
    "RAW_COLUMNS",
    "STAT_NAMES",
    "WINDOW_COLUMNS",
    "EngineConfig",
    "FieldStats",
    "GPUSnapshot",
    "MetricRecord",
    "PromptConfig",
    "RunRecord",
    "SummaryRow",
    "SweepConfig",
    "TelemetrySample",
    "WindowStats",
]
