"""Benchmark session orchestration."""

from llmsweep.runner.environment import collect_environment
from llmsweep.runner.matrix import (
    ArtifactLayout,
    ConfigurationError,
    MatrixCell,
    Prompt,
    build_matrix,
    load_prompts,
    safe_name,
)
from llmsweep.runner.orchestrator import (
    CellState,
    SessionResult,
    SweepOrchestrator,
)
from llmsweep.runner.results import (
    OutputFormat,
    RunResults,
    SweepReport,
    read_raw_csv,
    write_raw_csv,
    write_summary_csv,
)
from llmsweep.runner.session_log import SessionLog

__all__ = [
    "ArtifactLayout",
    "CellState",
    "ConfigurationError",
    "MatrixCell",
    "OutputFormat",
    "Prompt",
    "RunResults",
    "SessionLog",
    "SessionResult",
    "SweepOrchestrator",
    "SweepReport",
    "build_matrix",
    "collect_environment",
    "load_prompts",
    "read_raw_csv",
    "safe_name",
    "write_raw_csv",
    "write_summary_csv",
]
