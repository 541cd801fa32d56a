# src/utils/severity.py
from typing import Dict, Iterable


def count_severities(severities: Iterable, buckets: Iterable[str]) -> Dict[str, int]:
    """
    Count severities (case-insensitive) into the given buckets.
    Unknown or non-string severities are ignored.
    """
    counts = {bucket.lower(): 0 for bucket in buckets}
    for severity in severities:
        key = str(severity or "").lower()
        if key in counts:
            counts[key] += 1
    return counts
