"""Summary statistics over run records."""

from llmsweep.stats.aggregate import (
    FINE_GROUP_KEYS,
    HIGH_VARIANCE_CV_PCT,
    PRIMARY_FIELD,
    ROLLUP_SENTINEL,
    SUMMARY_FIELDS,
    aggregate,
    describe,
    is_high_variance,
    summarize,
)

__all__ = [
    "FINE_GROUP_KEYS",
    "HIGH_VARIANCE_CV_PCT",
    "PRIMARY_FIELD",
    "ROLLUP_SENTINEL",
    "SUMMARY_FIELDS",
    "aggregate",
    "describe",
    "is_high_variance",
    "summarize",
]
