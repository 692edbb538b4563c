"""Tests for transcript metric extraction."""

from conftest import TRANSCRIPT

from llmsweep.models.run_models import MetricRecord
from llmsweep.parsing.transcript import (
    COLLISION_WARNING,
    GRAMMAR,
    NO_METRICS_WARNING,
    detect_collision,
    extract_file,
    extract_metrics,
    is_complete_artifact,
    metric_warnings,
)


def test_extract_full_transcript():
    """Test that every metric is extracted from a verbose transcript."""
    record = extract_metrics(TRANSCRIPT)

    assert record.total_duration_s == 1.5
    assert record.load_duration_s == 0.0102
    assert record.prompt_eval_count == 20
    assert record.prompt_eval_duration_s == 0.1
    assert record.prompt_eval_rate_tps == 200.0
    assert record.eval_count == 100
    assert record.eval_duration_s == 1.0
    assert record.eval_rate_tps == 100.0
    assert metric_warnings(record) == set()


def test_extract_empty_input():
    """Test that empty or missing text yields an all-null record."""
    assert extract_metrics("") == MetricRecord()
    assert extract_metrics(None) == MetricRecord()
    assert extract_metrics("no counters here\n").is_empty()


def test_eval_labels_do_not_match_prompt_lines():
    """Test that 'eval count' never matches inside 'prompt eval count'."""
    text = (
        "prompt eval count:    26 token(s)\n"
        "prompt eval duration: 120.5ms\n"
        "prompt eval rate:     215.77 tokens/s\n"
    )
    record = extract_metrics(text)

    assert record.prompt_eval_count == 26
    assert record.prompt_eval_rate_tps == 215.77
    assert record.eval_count is None
    assert record.eval_duration_s is None
    assert record.eval_rate_tps is None


def test_extract_is_case_insensitive_and_indented():
    """Test label matching tolerates case and leading whitespace."""
    record = extract_metrics("   EVAL RATE:  42.5 tokens/s\n  Total Duration: 2m1s\n")

    assert record.eval_rate_tps == 42.5
    assert record.total_duration_s == 121.0


def test_first_match_wins():
    """Test that the first occurrence of a label is used."""
    record = extract_metrics("eval rate: 10.00 tokens/s\neval rate: 99.00 tokens/s\n")
    assert record.eval_rate_tps == 10.0


def test_malformed_values_become_null():
    """Test that unparseable values are null, not errors."""
    record = extract_metrics(
        "total duration: soon\neval count: lots\neval rate: fast tokens/s\n"
    )
    assert record.is_empty()
    assert metric_warnings(record) == {NO_METRICS_WARNING}


def test_ansi_sequences_are_stripped():
    """Test that spinner escape codes captured with the output are ignored."""
    text = "\x1b[?25l\x1b[2K\r\x1b[1Geval rate:            55.10 tokens/s\x1b[?25h\n"
    assert extract_metrics(text).eval_rate_tps == 55.1


def test_collision_is_flagged_not_corrected():
    """Test identical nonzero prompt/eval counts and rates raise a warning."""
    record = MetricRecord(
        prompt_eval_count=50,
        prompt_eval_rate_tps=80.0,
        eval_count=50,
        eval_rate_tps=80.0,
    )
    assert detect_collision(record)
    assert COLLISION_WARNING in metric_warnings(record)
    assert record.eval_count == 50

    assert not detect_collision(MetricRecord(prompt_eval_count=0, eval_count=0,
                                             prompt_eval_rate_tps=0.0, eval_rate_tps=0.0))
    assert not detect_collision(MetricRecord(prompt_eval_count=50, eval_count=50,
                                             prompt_eval_rate_tps=80.0, eval_rate_tps=81.0))


def test_grammar_covers_every_metric_field():
    """Test that the grammar table maps onto MetricRecord exactly once per field."""
    fields = [pattern.field for pattern in GRAMMAR]
    assert sorted(fields) == sorted(MetricRecord().to_dict())


def test_extract_file(tmp_path):
    """Test reading a transcript from disk, including a missing file."""
    path = tmp_path / "run01.txt"
    path.write_text(TRANSCRIPT, encoding="utf-8")

    assert extract_file(path).eval_rate_tps == 100.0
    assert extract_file(tmp_path / "missing.txt") == MetricRecord()


def test_is_complete_artifact(tmp_path):
    """Test the resumability pre-check."""
    complete = tmp_path / "complete.txt"
    complete.write_text(TRANSCRIPT, encoding="utf-8")
    assert is_complete_artifact(complete)

    empty = tmp_path / "empty.txt"
    empty.write_text("", encoding="utf-8")
    assert not is_complete_artifact(empty)

    truncated = tmp_path / "truncated.txt"
    truncated.write_text("total duration: 1.5s\neval count: 100\n", encoding="utf-8")
    assert not is_complete_artifact(truncated)

    prompt_only = tmp_path / "prompt_only.txt"
    prompt_only.write_text(
        "total duration: 1.5s\nprompt eval rate: 10 tokens/s\n", encoding="utf-8"
    )
    assert not is_complete_artifact(prompt_only)

    assert not is_complete_artifact(tmp_path / "missing.txt")
    assert not is_complete_artifact(tmp_path)
