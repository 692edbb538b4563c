"""Tests for the statistics aggregator."""

import math

import pytest

from llmsweep.models.run_models import MetricRecord, RunRecord
from llmsweep.stats.aggregate import (
    ROLLUP_SENTINEL,
    aggregate,
    describe,
    is_high_variance,
    summarize,
)


def _record(model, prompt, repeat, rate, mode="steady", eval_count=100):
    return RunRecord(
        model=model,
        prompt_id=prompt,
        repeat_index=repeat,
        mode=mode,
        run_start=100.0,
        run_end=101.0,
        metrics=MetricRecord(eval_rate_tps=rate, eval_count=eval_count),
    )


def test_describe_basic():
    """Test mean, sample stddev, median and CV."""
    stats = describe([90.0, 100.0, 110.0])

    assert stats.count == 3
    assert stats.mean == 100.0
    assert stats.stddev == pytest.approx(10.0)
    assert stats.min == 90.0
    assert stats.max == 110.0
    assert stats.median == 100.0
    assert stats.cv_pct == pytest.approx(10.0)


def test_describe_even_count_median():
    """Test the median averages the two middle values."""
    assert describe([4.0, 1.0, 3.0, 2.0]).median == 2.5


def test_describe_singleton():
    """Test that one value has zero deviation, never NaN."""
    stats = describe([42.0])
    assert stats.stddev == 0
    assert stats.cv_pct == 0
    assert stats.min == stats.median == stats.max == 42.0


def test_describe_zero_mean():
    """Test CV is None when the mean is zero."""
    stats = describe([0.0, 0.0])
    assert stats.mean == 0
    assert stats.cv_pct is None


def test_describe_empty():
    """Test an empty value set has count 0 and null statistics."""
    stats = describe([])
    assert stats.count == 0
    assert stats.mean is None
    assert stats.stddev is None


@pytest.mark.parametrize(
    "values",
    [[1.0], [5.0, 1.0], [3.0, 3.0, 3.0], [0.5, 100.0, 7.25, 7.25, -2.0]],
)
def test_describe_ordering_properties(values):
    """Test min <= median <= max and stddev >= 0."""
    stats = describe(values)
    assert stats.min <= stats.median <= stats.max
    assert stats.stddev >= 0
    assert not math.isnan(stats.stddev)


def test_high_variance_threshold_is_strict():
    """Test that CV exactly at 10% is not flagged but just above is."""
    at_threshold = aggregate(
        [_record("m", "p", i, rate) for i, rate in enumerate([90.0, 100.0, 110.0], 1)],
        ("model", "prompt_id", "mode"),
    )
    assert at_threshold[0].stats["eval_rate"].cv_pct == pytest.approx(10.0)
    assert at_threshold[0].high_variance is False

    above = aggregate(
        [_record("m", "p", i, rate) for i, rate in enumerate([89.0, 100.0, 111.0], 1)],
        ("model", "prompt_id", "mode"),
    )
    assert above[0].high_variance is True


def test_is_high_variance_without_primary():
    """Test a group without primary values is never flagged."""
    assert is_high_variance({}) is False
    assert is_high_variance({"eval_rate": describe([])}) is False


def test_nulls_are_excluded_not_zero():
    """Test that null metrics reduce the count instead of counting as zero."""
    records = [
        _record("m", "p", 1, 100.0),
        _record("m", "p", 2, None),
        _record("m", "p", 3, 110.0),
    ]
    row = aggregate(records, ("model",))[0]

    assert row.runs == 3
    assert row.stats["eval_rate"].count == 2
    assert row.stats["eval_rate"].mean == 105.0


def test_groups_keep_first_appearance_order():
    """Test grouping is stable and every record lands in exactly one group."""
    records = [
        _record("b", "p1", 1, 10.0),
        _record("a", "p1", 1, 20.0),
        _record("b", "p2", 1, 30.0),
        _record("a", "p1", 2, 40.0),
    ]
    rows = aggregate(records, ("model",))

    assert [r.group["model"] for r in rows] == ["b", "a"]
    assert sum(r.runs for r in rows) == len(records)


def test_mode_separates_groups():
    """Test steady-state and fresh runs are never mixed in one group."""
    records = [
        _record("m", "p", 1, 100.0, mode="steady"),
        _record("m", "p", 1, 60.0, mode="fresh"),
    ]
    rows = summarize(records)

    assert len(rows) == 4
    assert {(r.group["prompt_id"], r.group["mode"]) for r in rows} == {
        ("p", "steady"),
        ("p", "fresh"),
        (ROLLUP_SENTINEL, "steady"),
        (ROLLUP_SENTINEL, "fresh"),
    }
    assert all(r.runs == 1 for r in rows)


def test_summarize_rollup():
    """Test fine rows per prompt and a per-model rollup over all prompts."""
    records = [
        _record("m", "p1", 1, 100.0),
        _record("m", "p1", 2, 100.0),
        _record("m", "p2", 1, 50.0),
        _record("m", "p2", 2, 50.0),
    ]
    rows = summarize(records)
    fine = [r for r in rows if r.group["prompt_id"] != ROLLUP_SENTINEL]
    coarse = [r for r in rows if r.group["prompt_id"] == ROLLUP_SENTINEL]

    assert [r.stats["eval_rate"].mean for r in fine] == [100.0, 50.0]
    assert all(r.high_variance is False for r in fine)
    assert len(coarse) == 1
    assert coarse[0].runs == 4
    assert coarse[0].stats["eval_rate"].mean == 75.0
    assert coarse[0].high_variance is True


def test_aggregation_is_pure():
    """Test that aggregating twice yields identical rows and leaves input alone."""
    records = [_record("m", "p", i, 90.0 + i) for i in range(1, 6)]
    snapshot = list(records)

    assert summarize(records) == summarize(records)
    assert records == snapshot


def test_aggregate_accepts_raw_rows():
    """Test that mappings read back from the raw table are aggregated too."""
    rows = [
        {"model": "m", "prompt_id": "p", "mode": "steady", "eval_rate_tps": "100.0"},
        {"model": "m", "prompt_id": "p", "mode": "steady", "eval_rate_tps": ""},
    ]
    row = aggregate(rows, ("model",), {"eval_rate": "eval_rate_tps"})[0]
    assert row.stats["eval_rate"].count == 1
    assert row.stats["eval_rate"].mean == 100.0
