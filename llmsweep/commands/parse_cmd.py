"""Parse command - shows what the extractor finds in one transcript."""

import json

import click

from llmsweep.parsing import extract_file, is_complete_artifact, metric_warnings, read_transcript


def run_parse(transcript: str, as_json: bool = False) -> None:
    """Print the metrics and warnings extracted from a transcript file."""
    if read_transcript(transcript) is None:
        raise click.ClickException(f"Cannot read transcript: {transcript}")

    record = extract_file(transcript)
    warnings = sorted(metric_warnings(record))

    if as_json:
        payload = {
            "metrics": record.to_dict(),
            "warnings": warnings,
            "complete": is_complete_artifact(transcript),
        }
        click.echo(json.dumps(payload, indent=2))
        return

    click.echo(f"\n{transcript}\n" + "-" * 40)
    for name, value in record.to_dict().items():
        click.echo(f"  {name:<24} {'-' if value is None else value}")
    click.echo("-" * 40)
    click.echo(f"  complete: {'yes' if is_complete_artifact(transcript) else 'no'}")
    if warnings:
        click.echo(f"  warnings: {', '.join(warnings)}")
