"""Extract performance counters from engine transcripts.

The engine appends a block like this to its output when run verbosely::

    total duration:       3.0231245s
    load duration:        1.2ms
    prompt eval count:    26 token(s)
    prompt eval duration: 120.5ms
    prompt eval rate:     215.77 tokens/s
    eval count:           290 token(s)
    eval duration:        2.8s
    eval rate:            103.56 tokens/s

Extraction is driven by the declarative GRAMMAR table below. Each label is
anchored at the start of a line (after optional indentation), so ``eval
count`` can never match inside a ``prompt eval count`` line. Missing or
malformed fields become None; extraction never raises.
"""

import re
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from llmsweep.models.run_models import MetricRecord
from llmsweep.parsing.duration import parse_duration

COLLISION_WARNING = "possible_parse_collision"
NO_METRICS_WARNING = "no_metrics"

_ANSI_RE = re.compile(r"\x1b\[[0-?]*[ -/]*[@-~]|\x1b\][^\x07]*\x07")


class ValueKind(Enum):
    """Value grammar that follows a label."""

    DURATION = "duration"  # 1m2.5s, 120.5ms, ...
    COUNT = "count"  # 26 or 26 token(s)
    RATE = "rate"  # 103.56 tokens/s


_VALUE_RE: dict[ValueKind, str] = {
    ValueKind.DURATION: r"(?P<value>\S+)",
    ValueKind.COUNT: r"(?P<value>\d+)(?![\d.])",
    ValueKind.RATE: r"(?P<value>\d+(?:\.\d+)?)[ \t]*tokens?/s",
}


@dataclass(frozen=True)
class MetricPattern:
    """One row of the extraction grammar: label -> MetricRecord field."""

    field: str
    label: str
    kind: ValueKind

    def label_regex(self) -> str:
        """Regex source for the anchored ``<label>:`` prefix."""
        words = r"[ \t]+".join(re.escape(word) for word in self.label.split())
        return rf"^[ \t]*{words}[ \t]*:[ \t]*"

    def compile(self) -> re.Pattern[str]:
        """Compile the full ``<label>: <value>`` line pattern."""
        return re.compile(
            self.label_regex() + _VALUE_RE[self.kind], re.IGNORECASE | re.MULTILINE
        )

    def convert(self, raw: str) -> float | int | None:
        """Convert the captured value text; None if it does not parse."""
        if self.kind is ValueKind.DURATION:
            return parse_duration(raw)
        if self.kind is ValueKind.COUNT:
            return int(raw)
        return float(raw)


GRAMMAR: tuple[MetricPattern, ...] = (
    MetricPattern("total_duration_s", "total duration", ValueKind.DURATION),
    MetricPattern("load_duration_s", "load duration", ValueKind.DURATION),
    MetricPattern("prompt_eval_count", "prompt eval count", ValueKind.COUNT),
    MetricPattern("prompt_eval_duration_s", "prompt eval duration", ValueKind.DURATION),
    MetricPattern("prompt_eval_rate_tps", "prompt eval rate", ValueKind.RATE),
    MetricPattern("eval_count", "eval count", ValueKind.COUNT),
    MetricPattern("eval_duration_s", "eval duration", ValueKind.DURATION),
    MetricPattern("eval_rate_tps", "eval rate", ValueKind.RATE),
)

_COMPILED: tuple[tuple[MetricPattern, re.Pattern[str]], ...] = tuple(
    (pattern, pattern.compile()) for pattern in GRAMMAR
)
_BY_FIELD = {pattern.field: pattern for pattern in GRAMMAR}

# Markers for the cheap completeness check: label present, value not parsed.
_COMPLETION_MARKERS = tuple(
    re.compile(_BY_FIELD[name].label_regex(), re.IGNORECASE | re.MULTILINE)
    for name in ("total_duration_s", "eval_rate_tps")
)


def clean_transcript(raw_text: str) -> str:
    """Strip terminal escape sequences and normalize line endings."""
    text = _ANSI_RE.sub("", raw_text)
    return text.replace("\r\n", "\n").replace("\r", "\n")


def extract_metrics(raw_text: str | None) -> MetricRecord:
    """Extract every GRAMMAR field from one transcript.

    Args:
        raw_text: Full transcript text. None or empty text is allowed.

    Returns:
        MetricRecord with None for every field that was not found.
    """
    if not raw_text or not isinstance(raw_text, str):
        return MetricRecord()

    text = clean_transcript(raw_text)
    values: dict[str, float | int | None] = {}
    for pattern, regex in _COMPILED:
        match = regex.search(text)
        values[pattern.field] = pattern.convert(match.group("value")) if match else None
    return MetricRecord(**values)


def read_transcript(path: str | Path) -> str | None:
    """Read a transcript artifact, or None if it is missing or unreadable."""
    try:
        return Path(path).read_text(encoding="utf-8", errors="replace")
    except OSError:
        return None


def extract_file(path: str | Path) -> MetricRecord:
    """Extract metrics from a transcript file; a missing file is all-null."""
    return extract_metrics(read_transcript(path))


def detect_collision(record: MetricRecord) -> bool:
    """Flag prompt/generation phases that look like the same matched line.

    Identical, nonzero count *and* rate across both phases almost always
    means a labeling ambiguity in the transcript rather than a real
    coincidence. The record is not altered.
    """
    pairs = (
        (record.prompt_eval_count, record.eval_count),
        (record.prompt_eval_rate_tps, record.eval_rate_tps),
    )
    return all(a is not None and a == b and a != 0 for a, b in pairs)


def metric_warnings(record: MetricRecord) -> set[str]:
    """Diagnostic warning strings for a parsed record."""
    warnings: set[str] = set()
    if record.is_empty():
        warnings.add(NO_METRICS_WARNING)
    if detect_collision(record):
        warnings.add(COLLISION_WARNING)
    return warnings


def is_complete_artifact(path: str | Path) -> bool:
    """Decide whether a transcript from an earlier session can be reused.

    Complete means the file exists, is non-empty, and carries both the
    total-duration and eval-rate labels. Values are not parsed.
    """
    path = Path(path)
    try:
        if not path.is_file() or path.stat().st_size == 0:
            return False
    except OSError:
        return False

    text = read_transcript(path)
    if not text:
        return False
    text = clean_transcript(text)
    return all(marker.search(text) for marker in _COMPLETION_MARKERS)
