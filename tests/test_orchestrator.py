"""End-to-end tests for the sweep orchestrator with a fake engine and GPU."""

import pytest
from conftest import TRANSCRIPT, FakeEngine, FakeGPUQuery

from llmsweep.models.sweep_models import PromptConfig, SweepConfig
from llmsweep.runner.matrix import ConfigurationError
from llmsweep.runner.orchestrator import CellState, SweepOrchestrator
from llmsweep.runner.results import read_raw_csv
from llmsweep.stats.aggregate import ROLLUP_SENTINEL


def _config(tmp_path, **kwargs):
    defaults = {
        "models": ["m1", "m2"],
        "prompts": [PromptConfig(id="p1", text="first"), PromptConfig(id="p2", text="second")],
        "repeats": 3,
        "warmup_runs": 1,
        "output_dir": str(tmp_path / "out"),
        "sample_interval_s": 0.01,
    }
    defaults.update(kwargs)
    return SweepConfig(**defaults)


def _orchestrator(config, engine, gpu_query=None, **kwargs):
    return SweepOrchestrator(
        config, engine, gpu_query=gpu_query, environment=lambda engine: {"host": "test"}, **kwargs
    )


def test_end_to_end_two_models_two_prompts(tmp_path, fake_engine):
    """Test 2 models x 2 prompts x 3 repeats with a constant transcript."""
    session = _orchestrator(_config(tmp_path), fake_engine).run()

    assert len(session.records) == 12
    assert session.executed == 12
    assert session.skipped == 0
    assert all(r.metrics.eval_rate_tps == 100.0 for r in session.records)
    assert all(r.ran_this_time for r in session.records)
    assert all(r.run_end >= r.run_start for r in session.records)
    assert all(r.parse_warnings == frozenset() for r in session.records)

    fine = [r for r in session.summary if r.group["prompt_id"] != ROLLUP_SENTINEL]
    coarse = [r for r in session.summary if r.group["prompt_id"] == ROLLUP_SENTINEL]
    assert len(fine) == 4
    for row in fine:
        assert row.runs == 3
        assert row.stats["eval_rate"].mean == 100.0
        assert row.stats["eval_rate"].stddev == 0
        assert row.high_variance is False
    assert [r.group["model"] for r in coarse] == ["m1", "m2"]
    assert all(r.runs == 6 for r in coarse)


def test_artifacts_written(tmp_path, fake_engine):
    """Test the raw table, summary table and run log are produced."""
    session = _orchestrator(_config(tmp_path), fake_engine).run()
    layout = session.layout

    raw = read_raw_csv(layout.raw_results)
    assert len(raw) == 12
    assert raw[0].model == "m1"
    assert raw[0].metrics.eval_rate_tps == 100.0

    assert layout.summary_results.read_text(encoding="utf-8").startswith(
        "model,prompt_id,mode,runs,"
    )
    run_log = layout.run_log.read_text(encoding="utf-8")
    assert "Session started: 12 cells" in run_log
    assert "host: test" in run_log
    assert "COMPLETED m1/p1/run01" in run_log
    assert "Session completed: 12 executed, 0 resumed" in run_log
    assert (layout.output_dir / "transcripts" / "m2" / "p2" / "steady_run03.txt").exists()


def test_warmup_is_not_recorded(tmp_path, fake_engine):
    """Test warmup runs invoke the engine but produce no RunRecords."""
    session = _orchestrator(_config(tmp_path, warmup_runs=2), fake_engine).run()

    warmups = [call for call in fake_engine.calls if "warmup" in call[2].parts]
    assert len(warmups) == 4
    assert len(fake_engine.calls) == 12 + 4
    assert len(session.records) == 12


def test_steady_mode_unloads_between_models(tmp_path, fake_engine):
    """Test each model is unloaded once after its last repeat."""
    _orchestrator(_config(tmp_path), fake_engine).run()
    assert fake_engine.unloads == ["m1", "m2"]


def test_fresh_mode_unloads_before_every_repeat(tmp_path, fake_engine):
    """Test fresh mode forces an unload before each measured repeat."""
    config = _config(
        tmp_path,
        models=["m1"],
        prompts=[PromptConfig(id="p1", text="first")],
        repeats=3,
        warmup_runs=0,
        mode="fresh",
        unload_between_models=False,
    )
    session = _orchestrator(config, fake_engine).run()

    assert fake_engine.unloads == ["m1", "m1", "m1"]
    assert all(r.mode == "fresh" for r in session.records)
    assert session.summary[0].group["mode"] == "fresh"


def test_resume_skips_complete_cells(tmp_path, fake_engine):
    """Test that resume re-uses complete artifacts without invoking the engine."""
    _orchestrator(_config(tmp_path), fake_engine).run()

    second = FakeEngine()
    orchestrator = _orchestrator(_config(tmp_path, resume=True), second)
    session = orchestrator.run()

    assert second.calls == []
    assert second.unloads == []
    assert session.skipped == 12
    assert all(not r.ran_this_time for r in session.records)
    assert all(r.run_start is None and r.run_end is None for r in session.records)
    assert all(r.metrics.eval_rate_tps == 100.0 for r in session.records)
    assert set(orchestrator.states.values()) == {CellState.SKIPPED}
    assert "Session resumed" in session.layout.run_log.read_text(encoding="utf-8")


def test_resume_reruns_incomplete_cells(tmp_path, fake_engine):
    """Test that a truncated or missing artifact is re-run under resume."""
    config = _config(tmp_path, models=["m1"], warmup_runs=1)
    first = _orchestrator(config, fake_engine).run()

    truncated = first.layout.output_dir / "transcripts" / "m1" / "p1" / "steady_run02.txt"
    truncated.write_text("total duration: 1.5s\n", encoding="utf-8")
    missing = first.layout.output_dir / "transcripts" / "m1" / "p2" / "steady_run03.txt"
    missing.unlink()

    second = FakeEngine()
    session = _orchestrator(_config(tmp_path, models=["m1"], resume=True), second).run()

    measured = [call[2] for call in second.calls if "warmup" not in call[2].parts]
    assert sorted(measured) == sorted([truncated, missing])
    assert session.executed == 2
    assert session.skipped == 4
    reran = {(r.prompt_id, r.repeat_index) for r in session.records if r.ran_this_time}
    assert reran == {("p1", 2), ("p2", 3)}


def test_resume_does_not_cross_modes(tmp_path, fake_engine):
    """Test that steady-state artifacts never satisfy a fresh-mode resume."""
    _orchestrator(_config(tmp_path, models=["m1"]), fake_engine).run()

    second = FakeEngine()
    session = _orchestrator(
        _config(tmp_path, models=["m1"], mode="fresh", resume=True), second
    ).run()

    assert session.executed == 6
    assert session.skipped == 0


def test_engine_failures_become_warnings(tmp_path):
    """Test engine problems are recorded on completed cells, not raised."""
    def config(name):
        return _config(
            tmp_path,
            models=["m1"],
            prompts=[PromptConfig(id="p", text="x")],
            repeats=1,
            output_dir=str(tmp_path / name),
        )

    unavailable = _orchestrator(config("unavailable"), FakeEngine(fail=True)).run()
    record = unavailable.records[0]
    assert {"engine_unavailable", "no_metrics"} <= record.parse_warnings
    assert record.metrics.is_empty()
    assert record.ran_this_time

    failing = _orchestrator(
        config("failing"), FakeEngine(transcript="error: model not found\n", exit_code=1)
    ).run()
    assert failing.records[0].parse_warnings == {"engine_exit_1", "no_metrics"}
    assert failing.records[0].exit_code == 1

    silent = _orchestrator(config("silent"), FakeEngine(transcript=None)).run()
    assert "missing_transcript" in silent.records[0].parse_warnings


def test_configuration_error_before_sampler(tmp_path, fake_gpu):
    """Test that missing matrix input aborts before telemetry starts."""
    config = _config(tmp_path, models=[])

    with pytest.raises(ConfigurationError):
        _orchestrator(config, FakeEngine(), gpu_query=fake_gpu).run()

    assert fake_gpu.queries == 0
    assert not (tmp_path / "out").exists()


def test_sampler_runs_for_session(tmp_path):
    """Test telemetry is sampled during the session and stopped afterwards."""
    gpu = FakeGPUQuery()
    config = _config(tmp_path, models=["m1"], prompts=[PromptConfig(id="p", text="x")], repeats=1)
    session = _orchestrator(config, FakeEngine(), gpu_query=gpu).run()

    assert gpu.queries >= 1
    assert gpu.closed
    log_lines = session.layout.telemetry_log.read_text(encoding="utf-8").splitlines()
    assert len(log_lines) >= 2


def test_window_without_samples_is_flagged(tmp_path):
    """Test a run with no telemetry in its window gets empty GPU stats and a warning."""
    ticks = iter(float(t) for t in range(1000, 2000))
    gpu = FakeGPUQuery(fail=True)
    config = _config(tmp_path, models=["m1"], prompts=[PromptConfig(id="p", text="x")], repeats=1, warmup_runs=0)
    session = _orchestrator(config, FakeEngine(), gpu_query=gpu, clock=lambda: next(ticks)).run()

    record = session.records[0]
    assert record.run_end >= record.run_start
    assert record.window.sample_count == 0
    assert "no_gpu_samples" in record.parse_warnings


def test_clock_stepping_backwards(tmp_path, fake_engine):
    """Test a clock that steps backwards still yields a valid window."""
    ticks = iter([500.0, 499.0])
    config = _config(tmp_path, models=["m1"], prompts=[PromptConfig(id="p", text="x")], repeats=1, warmup_runs=0)
    session = _orchestrator(config, fake_engine, clock=lambda: next(ticks)).run()

    record = session.records[0]
    assert record.run_start == record.run_end == 500.0
    assert record.wall_time_s == 0.0


def test_sampler_stopped_when_orchestrator_fails(tmp_path):
    """Test teardown on an unexpected failure: sampler stopped, partial results kept."""
    gpu = FakeGPUQuery()
    engine = FakeEngine(error=RuntimeError("boom"))
    config = _config(tmp_path, models=["m1"], warmup_runs=0)
    orchestrator = _orchestrator(config, engine, gpu_query=gpu)

    with pytest.raises(RuntimeError, match="boom"):
        orchestrator.run()

    assert gpu.closed
    assert orchestrator.layout.raw_results.exists()
    assert "Session interrupted" in orchestrator.layout.run_log.read_text(encoding="utf-8")


def test_states_after_run(tmp_path, fake_engine):
    """Test every executed cell ends COMPLETED."""
    orchestrator = _orchestrator(_config(tmp_path, models=["m1"]), fake_engine)
    orchestrator.run()
    assert set(orchestrator.states.values()) == {CellState.COMPLETED}


def test_prompt_text_reaches_engine(tmp_path, fake_engine):
    """Test the engine receives the prompt with the context prepended."""
    context = tmp_path / "ctx.txt"
    context.write_text("CONTEXT", encoding="utf-8")
    config = _config(
        tmp_path,
        models=["m1"],
        prompts=[PromptConfig(id="p", text="question")],
        repeats=1,
        warmup_runs=0,
        context_file=str(context),
    )
    _orchestrator(config, fake_engine).run()

    assert fake_engine.calls[0][:2] == ("m1", "CONTEXT\n\nquestion")
    assert TRANSCRIPT in fake_engine.calls[0][2].read_text(encoding="utf-8")


def test_clashing_prompt_ids_never_share_a_transcript(tmp_path, fake_engine):
    """Test prompts whose ids map to one directory abort before any run."""
    config = _config(
        tmp_path,
        models=["m1"],
        prompts=[PromptConfig(id="a b", text="one"), PromptConfig(id="a_b", text="two")],
        repeats=1,
    )

    with pytest.raises(ConfigurationError):
        _orchestrator(config, fake_engine).run()

    assert fake_engine.calls == []
    assert not (tmp_path / "out").exists()
