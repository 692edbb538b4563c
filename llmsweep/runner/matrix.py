"""Benchmark matrix: prompts, cells and on-disk artifact layout."""

from __future__ import annotations

import re
from dataclasses import dataclass
from pathlib import Path

from llmsweep.models.sweep_models import SweepConfig
from llmsweep.stats.aggregate import ROLLUP_SENTINEL

PROMPT_SUFFIXES = (".txt", ".md")

_UNSAFE_CHARS = re.compile(r"[^A-Za-z0-9._-]+")


class ConfigurationError(Exception):
    """Raised when the sweep cannot be built from its configuration."""

    pass


@dataclass(frozen=True)
class Prompt:
    """A prompt ready to send: ``text`` already includes any context document."""

    id: str
    text: str


@dataclass(frozen=True)
class MatrixCell:
    """One (model, prompt, repeat) combination under a benchmarking mode."""

    model: str
    prompt: Prompt
    repeat_index: int
    mode: str

    @property
    def label(self) -> str:
        """Short identifier for logs, e.g. ``llama3:8b/summarize/run02``."""
        return f"{self.model}/{self.prompt.id}/run{self.repeat_index:02d}"


def safe_name(value: str) -> str:
    """Make a model or prompt id usable as a single path component."""
    cleaned = _UNSAFE_CHARS.sub("_", value).strip("._")
    return cleaned or "_"


def _check_path_names(ids: list[str], what: str) -> None:
    # Distinct ids must never share an artifact directory.
    by_name: dict[str, str] = {}
    for value in ids:
        name = safe_name(value)
        other = by_name.setdefault(name, value)
        if other != value:
            raise ConfigurationError(
                f"{what} ids '{other}' and '{value}' both map to artifact name '{name}'"
            )


def _read_text(path: Path, what: str) -> str:
    try:
        return path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigurationError(f"Cannot read {what} {path}: {e}") from e


def load_prompts(config: SweepConfig) -> list[Prompt]:
    """Collect inline prompts, then prompt files, and prepend the context.

    Prompt files come from ``prompt_dir`` in name order; the file stem is
    the prompt id.

    Raises:
        ConfigurationError: On unreadable files, duplicate prompt ids or a
            prompt id that collides with the summary rollup label.
    """
    raw: list[tuple[str, str]] = [(p.id, p.text) for p in config.prompts]

    if config.prompt_dir:
        prompt_dir = Path(config.prompt_dir)
        if not prompt_dir.is_dir():
            raise ConfigurationError(f"Prompt directory not found: {prompt_dir}")
        for path in sorted(prompt_dir.iterdir()):
            if path.is_file() and path.suffix.lower() in PROMPT_SUFFIXES:
                raw.append((path.stem, _read_text(path, "prompt file").strip()))

    seen: set[str] = set()
    for prompt_id, _ in raw:
        if prompt_id == ROLLUP_SENTINEL:
            raise ConfigurationError(
                f"Prompt id '{ROLLUP_SENTINEL}' is reserved for per-model summary rows"
            )
        if prompt_id in seen:
            raise ConfigurationError(f"Duplicate prompt id: {prompt_id}")
        seen.add(prompt_id)

    context = ""
    if config.context_file:
        context = _read_text(Path(config.context_file), "context file").strip()

    return [
        Prompt(id=prompt_id, text=f"{context}\n\n{text}" if context else text)
        for prompt_id, text in raw
    ]


def build_matrix(config: SweepConfig) -> list[MatrixCell]:
    """Enumerate cells model-major, then prompt, then repeat.

    Raises:
        ConfigurationError: If there are no models or no prompts, or a
            model is listed twice, or two ids map to the same
            artifact name.
    """
    if not config.models:
        raise ConfigurationError("No models configured")
    if len(set(config.models)) != len(config.models):
        raise ConfigurationError(f"Duplicate model in {config.models}")

    prompts = load_prompts(config)
    if not prompts:
        raise ConfigurationError(
            "No prompts configured (use 'prompts' or 'prompt_dir')"
        )
    _check_path_names(config.models, "Model")
    _check_path_names([p.id for p in prompts], "Prompt")

    return [
        MatrixCell(model=model, prompt=prompt, repeat_index=repeat, mode=config.mode)
        for model in config.models
        for prompt in prompts
        for repeat in range(1, config.repeats + 1)
    ]


class ArtifactLayout:
    """Where a session keeps its files under ``output_dir``."""

    def __init__(self, output_dir: str | Path) -> None:
        self.output_dir = Path(output_dir)

    def transcript_path(self, cell: MatrixCell) -> Path:
        """Transcript for one cell; the mode is part of the name so
        steady-state and fresh artifacts never satisfy each other's resume."""
        return (
            self.output_dir
            / "transcripts"
            / safe_name(cell.model)
            / safe_name(cell.prompt.id)
            / f"{cell.mode}_run{cell.repeat_index:02d}.txt"
        )

    def warmup_path(self, model: str, index: int) -> Path:
        return self.output_dir / "warmup" / safe_name(model) / f"warmup_{index:02d}.txt"

    @property
    def telemetry_log(self) -> Path:
        return self.output_dir / "gpu_telemetry.log"

    @property
    def raw_results(self) -> Path:
        return self.output_dir / "results_raw.csv"

    @property
    def summary_results(self) -> Path:
        return self.output_dir / "results_summary.csv"

    @property
    def run_log(self) -> Path:
        return self.output_dir / "run_log.txt"
