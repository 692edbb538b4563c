#!/usr/bin/env python3
"""llmsweep CLI - benchmark local LLM inference across models and prompts."""

import click

from llmsweep.stats import HIGH_VARIANCE_CV_PCT
from llmsweep.utils.env import get_env
from llmsweep.utils.logger import Logger


@click.group()
def llmsweep():
    """Benchmark local LLM inference with GPU telemetry."""
    # Configure logger at startup if not already configured
    if not Logger.is_configured():
        Logger.configure(
            level=get_env("LLMSWEEP_LOG_LEVEL", default="INFO"), timestamps=True
        )


@llmsweep.command()
@click.option(
    "--config",
    "-c",
    "config_path",
    type=click.Path(dir_okay=False),
    help="Sweep configuration file (YAML or JSON)",
)
@click.option("--model", "-m", "models", multiple=True, help="Model to benchmark (repeatable)")
@click.option("--prompt-dir", help="Directory of *.txt / *.md prompt files")
@click.option("--context-file", help="Document prepended to every prompt")
@click.option("--repeats", "-r", type=click.IntRange(min=1), help="Measured repeats per cell")
@click.option("--warmup", "-w", type=click.IntRange(min=0), help="Warmup runs per model")
@click.option("--fresh", is_flag=True, help="Unload the model before every repeat")
@click.option("--resume", is_flag=True, help="Skip cells with a complete transcript")
@click.option("--output-dir", "-d", help="Session output directory")
@click.option("--interval", type=float, help="Telemetry sampling interval in seconds")
@click.option("--timeout", type=float, help="Kill an invocation after this many seconds")
@click.option("--gpu-index", type=click.IntRange(min=0), help="GPU to sample")
@click.option(
    "--output",
    "-o",
    "outputs",
    multiple=True,
    help="Also write a report (.json, .yaml or .txt); repeatable",
)
@click.option("--verbose", "-v", is_flag=True, help="Debug logging")
def run(
    config_path,
    models,
    prompt_dir,
    context_file,
    repeats,
    warmup,
    fresh,
    resume,
    output_dir,
    interval,
    timeout,
    gpu_index,
    outputs,
    verbose,
):
    r"""Run a benchmark sweep.

    \b
    Examples:
      llmsweep run -c sweep.yaml
      llmsweep run -m llama3:8b -m mistral:7b --prompt-dir prompts/
      llmsweep run -c sweep.yaml --fresh --repeats 5
      llmsweep run -c sweep.yaml --resume
    """
    from llmsweep.commands.run_cmd import run_sweep

    if verbose:
        Logger.set_level("DEBUG")

    run_sweep(
        config_path=config_path,
        models=models,
        prompt_dir=prompt_dir,
        context_file=context_file,
        repeats=repeats,
        warmup=warmup,
        fresh=fresh,
        resume=resume,
        output_dir=output_dir,
        interval=interval,
        timeout=timeout,
        gpu_index=gpu_index,
        outputs=outputs,
    )


@llmsweep.command()
@click.argument("raw_csv", type=click.Path(dir_okay=False))
@click.option("--output", "-o", help="Write the summary table to this CSV file")
@click.option(
    "--format",
    "-f",
    "fmt",
    type=click.Choice(["text", "json", "yaml"], case_sensitive=False),
    default="text",
    help="Report format on stdout",
)
@click.option(
    "--threshold",
    type=float,
    default=HIGH_VARIANCE_CV_PCT,
    show_default=True,
    help="Flag groups whose eval-rate CV%% exceeds this",
)
def summarize(raw_csv, output, fmt, threshold):
    """Re-aggregate an existing results_raw.csv."""
    from llmsweep.commands.summarize_cmd import run_summarize

    run_summarize(raw_csv, output=output, fmt=fmt, threshold=threshold)


@llmsweep.command()
@click.argument("transcript", type=click.Path(dir_okay=False))
@click.option("--json", "as_json", is_flag=True, help="Print JSON")
def parse(transcript, as_json):
    """Show the metrics extracted from one transcript."""
    from llmsweep.commands.parse_cmd import run_parse

    run_parse(transcript, as_json=as_json)


@llmsweep.command()
@click.option("--verbose", "-v", is_flag=True, help="Show detailed version information")
def version(verbose):
    """Display llmsweep version information."""
    from llmsweep.commands.version_cmd import run_version

    if verbose:
        Logger.set_level("DEBUG")

    run_version(verbose=verbose)


if __name__ == "__main__":
    llmsweep()
