"""Sweep orchestrator: drives the engine across the benchmark matrix.

Usage:
    orchestrator = SweepOrchestrator(config, OllamaEngine(), create_gpu_query())
    session = orchestrator.run()
    session.report().emit(sys.stdout, OutputFormat.TEXT)

Each model gets its warmup runs, then every (prompt, repeat) cell in order.
Only the engine invocation itself is timed; unload calls and parsing happen
outside the [run_start, run_end] window that telemetry is correlated against.
"""

from __future__ import annotations

import contextlib
import itertools
import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import Enum
from typing import Any

from llmsweep.engine.base import EngineError, EngineResult, InferenceEngine
from llmsweep.models.run_models import RunRecord, SummaryRow, WindowStats
from llmsweep.models.sweep_models import SweepConfig
from llmsweep.parsing.transcript import extract_file, is_complete_artifact, metric_warnings
from llmsweep.runner.environment import collect_environment
from llmsweep.runner.matrix import ArtifactLayout, MatrixCell, Prompt, build_matrix
from llmsweep.runner.results import RunResults, SweepReport, write_raw_csv, write_summary_csv
from llmsweep.runner.session_log import SessionLog
from llmsweep.stats.aggregate import summarize
from llmsweep.telemetry.correlate import correlate
from llmsweep.telemetry.log import TelemetryLog
from llmsweep.telemetry.sampler import TelemetrySampler
from llmsweep.telemetry.sources import GPUQuery
from llmsweep.utils.logger import Logger

MISSING_TRANSCRIPT_WARNING = "missing_transcript"
ENGINE_TIMEOUT_WARNING = "engine_timeout"
ENGINE_UNAVAILABLE_WARNING = "engine_unavailable"
NO_GPU_SAMPLES_WARNING = "no_gpu_samples"


def exit_warning(exit_code: int) -> str:
    """Warning string for a non-zero engine exit code."""
    return f"engine_exit_{exit_code}"


class CellState(Enum):
    """Lifecycle of one matrix cell within a session."""

    PENDING = "pending"
    SKIPPED = "skipped"  # complete artifact from an earlier session
    RUNNING = "running"
    COMPLETED = "completed"


@dataclass(frozen=True)
class SessionResult:
    """Everything a finished session produced."""

    records: tuple[RunRecord, ...]
    summary: list[SummaryRow]
    layout: ArtifactLayout
    executed: int
    skipped: int

    def report(self, metadata: dict[str, Any] | None = None) -> SweepReport:
        return SweepReport(self.records, self.summary, metadata)


class SweepOrchestrator:
    """Run a SweepConfig end to end.

    Example:
        >>> orchestrator = SweepOrchestrator(config, engine, gpu_query=None)
        >>> session = orchestrator.run()
        >>> len(session.records) == len(config.models) * prompts * config.repeats
        True
    """

    def __init__(
        self,
        config: SweepConfig,
        engine: InferenceEngine,
        gpu_query: GPUQuery | None = None,
        clock: Callable[[], float] = time.time,
        environment: Callable[[InferenceEngine], dict[str, Any]] = collect_environment,
    ) -> None:
        """Prepare a session (nothing runs until run()).

        Args:
            config: Validated sweep configuration.
            engine: Inference engine to drive.
            gpu_query: GPU monitoring source, or None to run without
                telemetry (window statistics stay empty).
            clock: Wall clock shared by run windows and telemetry samples.
            environment: Probe producing the run-log environment snapshot.
        """
        self.config = config
        self.engine = engine
        self.gpu_query = gpu_query
        self.layout = ArtifactLayout(config.output_dir)
        self.states: dict[MatrixCell, CellState] = {}
        self._clock = clock
        self._environment = environment
        self._logger = Logger.get("runner.orchestrator")

    def run(self) -> SessionResult:
        """Execute the whole matrix and write the results tables.

        Raises:
            ConfigurationError: Before any side effect, when the matrix
                cannot be built.
        """
        cells = build_matrix(self.config)
        self.states = {cell: CellState.PENDING for cell in cells}

        self.layout.output_dir.mkdir(parents=True, exist_ok=True)
        telemetry = TelemetryLog(self.layout.telemetry_log)
        telemetry.create(truncate=not self.config.resume)

        sampler = None
        if self.gpu_query is not None:
            sampler = TelemetrySampler(
                self.gpu_query,
                telemetry,
                interval_seconds=self.config.sample_interval_s,
                clock=self._clock,
            )
        else:
            self._logger.info("Running without GPU telemetry")

        results = RunResults()
        status = "interrupted"
        with SessionLog(self.layout.run_log) as session:
            session.started(self.config.resume, len(cells), self._environment(self.engine))
            try:
                with sampler if sampler is not None else contextlib.nullcontext():
                    for model, model_cells in itertools.groupby(cells, key=lambda c: c.model):
                        self._run_model(
                            model, list(model_cells), results, telemetry, session,
                            sampling=sampler is not None,
                        )
                status = "completed"
            finally:
                summary = summarize(results.records)
                write_raw_csv(results, self.layout.raw_results)
                write_summary_csv(summary, self.layout.summary_results)
                session.finished(status, results.executed, results.skipped)

        self._logger.info(
            f"Results written to {self.layout.raw_results} and "
            f"{self.layout.summary_results}"
        )
        return SessionResult(
            records=results.records,
            summary=summary,
            layout=self.layout,
            executed=results.executed,
            skipped=results.skipped,
        )

    # -------------------------------------------------------------------------
    # Per-model flow
    # -------------------------------------------------------------------------

    def _run_model(
        self,
        model: str,
        cells: Sequence[MatrixCell],
        results: RunResults,
        telemetry: TelemetryLog,
        session: SessionLog,
        sampling: bool,
    ) -> None:
        plan = [
            (cell, self.config.resume and is_complete_artifact(self.layout.transcript_path(cell)))
            for cell in cells
        ]
        pending = [cell for cell, skip in plan if not skip]

        if pending:
            self._warmup(model, pending[0].prompt)
        else:
            self._logger.info(f"{model}: all {len(cells)} cells already complete")

        for cell, skip in plan:
            if skip:
                record = self._resume_cell(cell)
                self.states[cell] = CellState.SKIPPED
            else:
                self.states[cell] = CellState.RUNNING
                record = self._execute_cell(cell, telemetry, sampling)
                self.states[cell] = CellState.COMPLETED
            results.append(record)
            session.cell(record)

        if pending and self.config.unload_between_models:
            self._unload(model)

    def _warmup(self, model: str, prompt: Prompt) -> None:
        total = self.config.warmup_runs
        for index in range(1, total + 1):
            path = self.layout.warmup_path(model, index)
            try:
                self.engine.invoke(
                    model, prompt.text, path, timeout=self.config.invocation_timeout_s
                )
            except EngineError as e:
                self._logger.warning(f"{model}: warmup aborted: {e}")
                return
            rate = extract_file(path).eval_rate_tps
            shown = "no eval rate" if rate is None else f"{rate:.2f} tokens/s"
            self._logger.info(f"{model}: warmup {index}/{total}: {shown}")

    def _unload(self, model: str) -> None:
        if not self.engine.unload(model):
            self._logger.warning(f"{model}: unload not confirmed by engine")

    # -------------------------------------------------------------------------
    # Cells
    # -------------------------------------------------------------------------

    def _execute_cell(
        self, cell: MatrixCell, telemetry: TelemetryLog, sampling: bool
    ) -> RunRecord:
        path = self.layout.transcript_path(cell)
        warnings: set[str] = set()

        if cell.mode == "fresh":
            self._unload(cell.model)

        self._logger.info(f"{cell.label}: running")
        result: EngineResult | None
        run_start = self._clock()
        try:
            result = self.engine.invoke(
                cell.model,
                cell.prompt.text,
                path,
                timeout=self.config.invocation_timeout_s,
            )
        except EngineError as e:
            result = None
            self._logger.error(f"{cell.label}: {e}")
            warnings.add(ENGINE_UNAVAILABLE_WARNING)
        # Wall clock may step backwards (NTP); never record a negative window.
        run_end = max(self._clock(), run_start)

        exit_code = None
        if result is not None:
            exit_code = result.exit_code
            if result.timed_out:
                warnings.add(ENGINE_TIMEOUT_WARNING)
            elif exit_code:
                warnings.add(exit_warning(exit_code))

        if not path.exists():
            warnings.add(MISSING_TRANSCRIPT_WARNING)
        metrics = extract_file(path)
        warnings |= metric_warnings(metrics)

        window = WindowStats()
        if sampling:
            window = correlate(telemetry, run_start, run_end)
            if window.sample_count == 0:
                warnings.add(NO_GPU_SAMPLES_WARNING)

        rate = metrics.eval_rate_tps
        self._logger.info(
            f"{cell.label}: {'-' if rate is None else f'{rate:.2f}'} tokens/s "
            f"in {run_end - run_start:.2f}s"
            + (f" [{', '.join(sorted(warnings))}]" if warnings else "")
        )
        return RunRecord(
            model=cell.model,
            prompt_id=cell.prompt.id,
            repeat_index=cell.repeat_index,
            mode=cell.mode,
            run_start=run_start,
            run_end=run_end,
            metrics=metrics,
            window=window,
            exit_code=exit_code,
            ran_this_time=True,
            parse_warnings=frozenset(warnings),
            transcript_path=str(path),
        )

    def _resume_cell(self, cell: MatrixCell) -> RunRecord:
        path = self.layout.transcript_path(cell)
        metrics = extract_file(path)
        self._logger.info(f"{cell.label}: complete artifact found, skipping")
        return RunRecord(
            model=cell.model,
            prompt_id=cell.prompt.id,
            repeat_index=cell.repeat_index,
            mode=cell.mode,
            metrics=metrics,
            ran_this_time=False,
            parse_warnings=frozenset(metric_warnings(metrics)),
            transcript_path=str(path),
        )
