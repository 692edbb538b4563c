"""Run command - executes a benchmark sweep.

CLI Examples:
    llmsweep run --config sweep.yaml
    llmsweep run -m llama3:8b -m mistral:7b --prompt-dir prompts/
    llmsweep run --config sweep.yaml --fresh --repeats 5
    llmsweep run --config sweep.yaml --resume          # continue a session
    llmsweep run --config sweep.yaml -o report.json    # also emit a report
"""

import json
import sys
from pathlib import Path
from typing import Any

import click
import yaml
from pydantic import ValidationError

from llmsweep.engine import OllamaEngine
from llmsweep.models.sweep_models import SweepConfig
from llmsweep.runner import ConfigurationError, OutputFormat, SweepOrchestrator
from llmsweep.telemetry import create_gpu_query
from llmsweep.utils.env import get_env


def load_config(config_path: str | None) -> dict[str, Any]:
    """Load a sweep configuration from a YAML or JSON file.

    Config format:
        models: [llama3:8b, mistral:7b]
        prompts:
          - id: summarize
            text: Summarize the following document.
        prompt_dir: prompts/
        context_file: docs/context.md
        repeats: 3
        warmup_runs: 1
        mode: steady

    Raises:
        click.ClickException: If the file is missing or unparseable.
    """
    if not config_path:
        return {}

    path = Path(config_path)
    if not path.exists():
        raise click.ClickException(f"Config file not found: {config_path}")

    try:
        content = path.read_text(encoding="utf-8")
        if path.suffix.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(content)
        else:
            data = json.loads(content)
    except (yaml.YAMLError, json.JSONDecodeError) as e:
        raise click.ClickException(f"Error parsing config {config_path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise click.ClickException(f"Config file {config_path} must be a dictionary")
    return data


def build_config(config_data: dict[str, Any], overrides: dict[str, Any]) -> SweepConfig:
    """Merge CLI overrides (None means "not given") into file values."""
    merged = dict(config_data)
    merged.update({k: v for k, v in overrides.items() if v is not None})

    engine_command = get_env("LLMSWEEP_ENGINE", default=None)
    if engine_command:
        merged["engine"] = {**merged.get("engine", {}), "command": engine_command}

    try:
        return SweepConfig.model_validate(merged)
    except ValidationError as e:
        raise click.ClickException(f"Invalid sweep configuration:\n{e}") from e


def get_output_format(output: str) -> OutputFormat:
    """Determine report format from the output file name."""
    suffix = Path(output).suffix.lower()
    if suffix == ".json":
        return OutputFormat.JSON
    if suffix in (".yaml", ".yml"):
        return OutputFormat.YAML
    return OutputFormat.TEXT


def run_sweep(
    config_path: str | None,
    models: tuple[str, ...],
    prompt_dir: str | None,
    context_file: str | None,
    repeats: int | None,
    warmup: int | None,
    fresh: bool,
    resume: bool,
    output_dir: str | None,
    interval: float | None,
    timeout: float | None,
    gpu_index: int | None,
    outputs: tuple[str, ...],
) -> None:
    """Run a sweep based on CLI arguments."""
    config = build_config(
        load_config(config_path),
        {
            "models": list(models) or None,
            "prompt_dir": prompt_dir,
            "context_file": context_file,
            "repeats": repeats,
            "warmup_runs": warmup,
            "mode": "fresh" if fresh else None,
            "resume": True if resume else None,
            "output_dir": output_dir,
            "sample_interval_s": interval,
            "invocation_timeout_s": timeout,
            "gpu_index": gpu_index,
        },
    )

    engine = OllamaEngine(
        command=config.engine.command, extra_args=config.engine.extra_args
    )

    click.echo("\n" + "=" * 60)
    click.echo("  LLMSWEEP")
    click.echo("=" * 60)
    if config_path:
        click.echo(f"\nConfig:     {config_path}")
    click.echo(f"Models:     {', '.join(config.models) or '-'}")
    click.echo(f"Repeats:    {config.repeats} (+{config.warmup_runs} warmup per model)")
    click.echo(f"Mode:       {config.mode}{' (resume)' if config.resume else ''}")
    click.echo(f"Output dir: {config.output_dir}")
    click.echo("\n" + "-" * 60 + "\n")

    gpu_query = create_gpu_query(config.gpu_index)
    orchestrator = SweepOrchestrator(config, engine, gpu_query=gpu_query)
    try:
        session = orchestrator.run()
    except ConfigurationError as e:
        # Raised before a sampler took ownership of the source.
        if gpu_query is not None:
            gpu_query.close()
        raise click.ClickException(str(e)) from e

    report = session.report({"config": config.model_dump()})
    for out_path in outputs:
        report.emit(out_path, get_output_format(out_path))
        click.echo(f"✓ Report saved to: {out_path}")

    report.emit(sys.stdout, OutputFormat.TEXT)
    click.echo(
        f"\n✓ Completed: {session.executed} executed, {session.skipped} resumed"
    )
    click.echo(f"  Raw results: {session.layout.raw_results}")
    click.echo(f"  Summary:     {session.layout.summary_results}")
