"""Parse human-readable duration strings into seconds.

The engine prints durations the way Go's ``time.Duration`` formats them:
``3m20.5s``, ``1h2m3.4s``, ``123.4ms``, ``2.5s`` and, for very short phases,
``850µs`` or ``12ns``. Anything else parses to None, never an exception.

Usage:
    >>> parse_duration("3m20.5s")
    200.5
    >>> parse_duration("123.4ms")
    0.1234
    >>> parse_duration("garbage") is None
    True
"""

import math
import re
from decimal import Decimal

_FLOAT = r"(?:\d+(?:\.\d*)?|\.\d+)(?:[eE][-+]?\d+)?"

# Tried in order; the first full match wins.
_COMPOSITE_RE = re.compile(rf"^(?:(?P<h>\d+)h)?(?:(?P<m>\d+)m)?(?P<s>{_FLOAT})s$")
_MILLIS_RE = re.compile(rf"^(?P<v>{_FLOAT})ms$")
_SECONDS_RE = re.compile(rf"^(?P<v>{_FLOAT})s$")
_MICROS_RE = re.compile(rf"^(?P<v>{_FLOAT})(?:µs|μs|us)$")
_NANOS_RE = re.compile(rf"^(?P<v>{_FLOAT})ns$")

_SCALED = (
    (_MILLIS_RE, 1_000),
    (_SECONDS_RE, 1),
    (_MICROS_RE, 1_000_000),
    (_NANOS_RE, 1_000_000_000),
)


def _seconds(value: Decimal) -> float | None:
    seconds = float(value)
    if math.isfinite(seconds) and seconds >= 0:
        return seconds
    return None


def parse_duration(text: object) -> float | None:
    """Convert a duration string to seconds.

    Arithmetic is done in Decimal so ``"123.4ms"`` gives exactly the float
    ``0.1234`` rather than a neighbour of it.

    Args:
        text: Duration text such as ``"1h2m3.5s"`` or ``"120.5ms"``.
            Surrounding whitespace is ignored; non-strings yield None.

    Returns:
        Non-negative seconds, or None when the text matches no known form.
    """
    if not isinstance(text, str):
        return None
    text = text.strip()
    if not text:
        return None

    match = _COMPOSITE_RE.match(text)
    if match:
        hours = int(match.group("h") or 0)
        minutes = int(match.group("m") or 0)
        return _seconds(hours * 3600 + minutes * 60 + Decimal(match.group("s")))

    for pattern, divisor in _SCALED:
        match = pattern.match(text)
        if match:
            return _seconds(Decimal(match.group("v")) / divisor)

    return None


def format_duration(seconds: float) -> str:
    """Render seconds in the canonical ``<float>s`` form.

    ``parse_duration(format_duration(x)) == x`` for any finite x >= 0.

    Raises:
        ValueError: If seconds is negative or not finite.
    """
    if not math.isfinite(seconds) or seconds < 0:
        raise ValueError(f"Cannot format duration: {seconds!r}")
    return f"{float(seconds)!r}s"
