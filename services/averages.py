"""Weighted combination of moving averages."""

from __future__ import annotations

from typing import Optional

from models.almanac import MovingAverage


def combine(
    a: Optional[MovingAverage], b: Optional[MovingAverage]
) -> Optional[MovingAverage]:
    if a is None:
        return b
    if b is None:
        return a
    n = a.n + b.n
    total = a.average * a.n + b.average * b.n
    return MovingAverage(average=total / n, n=n)
