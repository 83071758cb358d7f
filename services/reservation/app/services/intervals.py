"""Half-open interval arithmetic over unix seconds."""

from __future__ import annotations

from typing import Iterable, Tuple

Interval = Tuple[int, int]


def overlaps(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    # [a_start, a_end) e [b_start, b_end); intervalos encostados não colidem
    return a_start < b_end and b_start < a_end


def peak_concurrency(intervals: Iterable[Interval], start: int, end: int) -> int:
    """Maximum number of intervals simultaneously open inside ``[start, end)``."""
    events = []
    for item_start, item_end in intervals:
        if not overlaps(item_start, item_end, start, end):
            continue
        events.append((max(item_start, start), 1))
        events.append((min(item_end, end), -1))

    # Saídas antes de entradas no mesmo instante
    events.sort(key=lambda event: (event[0], event[1]))

    current = peak = 0
    for _, delta in events:
        current += delta
        peak = max(peak, current)
    return peak
