"""Reduce per-run records to descriptive statistics per group.

Usage:
    rows = summarize(records)                 # per model+prompt, plus per-model ALL
    rows = aggregate(records, ("model", "mode"), {"eval_rate": "eval_rate_tps"})

Aggregation is a pure function of its input: records are only read and the
same input always yields the same rows in the same order.
"""

from __future__ import annotations

import statistics
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from llmsweep.models.run_models import FieldStats, RunRecord, SummaryRow

PRIMARY_FIELD = "eval_rate"
HIGH_VARIANCE_CV_PCT = 10.0
ROLLUP_SENTINEL = "ALL"

# Summary label -> raw-table column
SUMMARY_FIELDS: dict[str, str] = {
    "eval_rate": "eval_rate_tps",
    "prompt_eval_rate": "prompt_eval_rate_tps",
    "total_duration": "total_duration_s",
    "load_duration": "load_duration_s",
    "eval_count": "eval_count",
    "gpu_util_mean": "gpu_util_mean_pct",
    "gpu_power_mean": "gpu_power_mean_w",
    "gpu_mem_max": "gpu_mem_max_mib",
    "gpu_temp_max": "gpu_temp_max_c",
}

FINE_GROUP_KEYS: tuple[str, ...] = ("model", "prompt_id", "mode")

Record = RunRecord | Mapping[str, Any]


def describe(values: Sequence[float]) -> FieldStats:
    """Descriptive statistics for a list of non-null numbers.

    Standard deviation is the sample deviation (n-1 divisor) and exactly 0
    for a single value. ``cv_pct`` is ``stddev / mean * 100`` and None when
    the mean is 0.
    """
    n = len(values)
    if n == 0:
        return FieldStats(count=0)

    data = [float(v) for v in values]
    mean = statistics.mean(data)
    stddev = statistics.stdev(data) if n > 1 else 0.0
    cv_pct = None if mean == 0 else stddev * 100 / mean

    return FieldStats(
        count=n,
        mean=mean,
        stddev=stddev,
        min=min(data),
        max=max(data),
        median=statistics.median(data),
        cv_pct=cv_pct,
    )


def _numeric(value: Any) -> float | None:
    if value is None or value == "" or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def is_high_variance(
    stats: Mapping[str, FieldStats],
    primary_field: str = PRIMARY_FIELD,
    threshold_pct: float = HIGH_VARIANCE_CV_PCT,
) -> bool:
    """True when the primary field's CV is strictly above the threshold."""
    primary = stats.get(primary_field)
    if primary is None or primary.cv_pct is None:
        return False
    return primary.cv_pct > threshold_pct


def aggregate(
    records: Iterable[Record],
    group_keys: Sequence[str],
    fields: Mapping[str, str] | None = None,
    *,
    rollup: Mapping[str, str] | None = None,
    primary_field: str = PRIMARY_FIELD,
    threshold_pct: float = HIGH_VARIANCE_CV_PCT,
) -> list[SummaryRow]:
    """Group records and compute statistics per field.

    Args:
        records: RunRecords or raw-table rows (mappings keyed by column).
        group_keys: Columns identifying a group, in output order.
        fields: Summary label -> record column. Defaults to SUMMARY_FIELDS.
        rollup: Group keys to collapse into a sentinel value, e.g.
            ``{"prompt_id": "ALL"}`` for a per-model rollup across prompts.
        primary_field: Summary label whose CV decides ``high_variance``.
        threshold_pct: CV above which a group is flagged.

    Returns:
        One SummaryRow per group, ordered by first appearance in records.
    """
    fields = SUMMARY_FIELDS if fields is None else fields
    rollup = rollup or {}

    groups: dict[tuple[str, ...], list[Record]] = {}
    for record in records:
        key = tuple(
            rollup[name] if name in rollup else str(record.get(name))
            for name in group_keys
        )
        groups.setdefault(key, []).append(record)

    rows = []
    for key, members in groups.items():
        stats = {}
        for label, column in fields.items():
            values = [_numeric(member.get(column)) for member in members]
            stats[label] = describe([v for v in values if v is not None])
        rows.append(
            SummaryRow(
                group=dict(zip(group_keys, key, strict=True)),
                runs=len(members),
                stats=stats,
                high_variance=is_high_variance(stats, primary_field, threshold_pct),
            )
        )
    return rows


def summarize(
    records: Sequence[Record],
    fields: Mapping[str, str] | None = None,
    threshold_pct: float = HIGH_VARIANCE_CV_PCT,
) -> list[SummaryRow]:
    """Per model+prompt+mode rows followed by per model+mode ``ALL`` rows.

    Both levels are computed from the same records; the rollup never reads
    the fine-grained rows.
    """
    fine = aggregate(records, FINE_GROUP_KEYS, fields, threshold_pct=threshold_pct)
    coarse = aggregate(
        records,
        FINE_GROUP_KEYS,
        fields,
        rollup={"prompt_id": ROLLUP_SENTINEL},
        threshold_pct=threshold_pct,
    )
    return fine + coarse
