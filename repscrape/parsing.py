"""Text-to-value conversion for scraped fields. No I/O; failures become defaults and are counted."""

import re
import threading
from collections import Counter
from decimal import Decimal

THOUSAND_SUFFIX = "k"
# 32-bit signed range; bigger scores count as parse failures
MAX_REPUTATION = 2**31 - 1
MAX_NUMBER_CHARS = 20

_DIGITS_RE = re.compile(r"[0-9]+")
_DECIMAL_RE = re.compile(r"[0-9]+(?:\.[0-9]+)?")


class ParseStats:
    """Thread-safe per-field count of values that failed to parse and were zero-filled."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._failures: Counter[str] = Counter()

    def record(self, field: str) -> None:
        with self._lock:
            self._failures[field] += 1

    def count(self, field: str) -> int:
        with self._lock:
            return self._failures[field]

    @property
    def total(self) -> int:
        with self._lock:
            return sum(self._failures.values())

    def as_dict(self) -> dict[str, int]:
        with self._lock:
            return dict(self._failures)


def parse_reputation(text: str, stats: ParseStats | None = None) -> int:
    """
    Parse a reputation score: "9,365" -> 9365, "9.7k" -> 9700, "100k" -> 100000, "42" -> 42.
    Only plain ASCII digits (with an optional fraction before "k") are accepted.
    Anything else, or a value above MAX_REPUTATION, yields 0 and is recorded under "reputation" in stats.
    """
    s = (text or "").strip().replace(",", "")
    value = -1
    if len(s) <= MAX_NUMBER_CHARS:
        try:
            if s.endswith(THOUSAND_SUFFIX) and _DECIMAL_RE.fullmatch(s[: -len(THOUSAND_SUFFIX)]):
                # Decimal so 9.7k is exactly 9700; int() truncates toward zero
                value = int(Decimal(s[: -len(THOUSAND_SUFFIX)]) * 1000)
            elif _DIGITS_RE.fullmatch(s):
                value = int(s, 10)
        except (ArithmeticError, ValueError):
            value = -1
    if not 0 <= value <= MAX_REPUTATION:
        if stats is not None:
            stats.record("reputation")
        return 0
    return value


def parse_page_number(text: str) -> int | None:
    """Integer value of a pagination item, or None for labels like "…" and "Next"."""
    s = (text or "").strip()
    if len(s) > MAX_NUMBER_CHARS or not _DIGITS_RE.fullmatch(s):
        return None
    return int(s, 10)
