"""Transcript and duration parsing."""

from llmsweep.parsing.duration import format_duration, parse_duration
from llmsweep.parsing.transcript import (
    COLLISION_WARNING,
    GRAMMAR,
    NO_METRICS_WARNING,
    MetricPattern,
    ValueKind,
    clean_transcript,
    detect_collision,
    extract_file,
    extract_metrics,
    is_complete_artifact,
    metric_warnings,
    read_transcript,
)

__all__ = [
    "COLLISION_WARNING",
    "GRAMMAR",
    "NO_METRICS_WARNING",
    "MetricPattern",
    "ValueKind",
    "clean_transcript",
    "detect_collision",
    "extract_file",
    "extract_metrics",
    "format_duration",
    "is_complete_artifact",
    "metric_warnings",
    "parse_duration",
    "read_transcript",
]
