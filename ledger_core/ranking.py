"""
Top-N ranking over metric maps and percentage helpers.

Ties are broken by label (ascending) so rankings are reproducible
regardless of the order in which the underlying map was filled.
"""
from typing import Callable, Dict, Iterable, List, Mapping, Sequence, TypeVar

from ledger_core.models import RankingEntry
from ledger_core.validators import validate_limit

T = TypeVar("T")


def top_n(values: Mapping[str, float], n: int) -> List[RankingEntry]:
    """
    Rank a key -> value map descending by value, truncated to n entries.

    Args:
        values: Metric per label (e.g. revenue per vendor)
        n: Maximum entries to return

    Returns:
        RankingEntry list, value descending, label ascending on ties
    """
    validate_limit(n, "n")
    ordered = sorted(values.items(), key=lambda kv: (-kv[1], kv[0]))
    return [RankingEntry(label=label, value=value) for label, value in ordered[:n]]


def rank_records(
    records: Iterable[T],
    value: Callable[[T], float],
    label: Callable[[T], str],
    n: int,
    descending: bool = True,
) -> List[T]:
    """
    Rank arbitrary records by a numeric attribute.

    Used where the ranked thing carries more than a number (customer
    profiles, tool loyalty rows). Ties fall back to the label.
    """
    validate_limit(n, "n")
    sign = -1 if descending else 1
    ordered = sorted(records, key=lambda r: (sign * value(r), label(r)))
    return ordered[:n]


def percent(numerator: float, denominator: float, decimals: int = 1) -> float:
    """numerator / denominator * 100, rounded; 0 when the denominator is 0."""
    if not denominator:
        return 0.0
    return round(numerator / denominator * 100, decimals)


def scale_to_max(entries: Sequence[RankingEntry], decimals: int = 1) -> List[Dict[str, float]]:
    """
    Attach a relative width (percent of the largest value) to each entry.

    An all-zero or empty series scales to 0 instead of dividing by zero.
    """
    max_value = max((e.value for e in entries), default=0.0)
    return [
        {**e.to_dict(), "percent_of_max": percent(e.value, max_value, decimals)}
        for e in entries
    ]
