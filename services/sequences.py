"""Bounded "hall of fame" sequences.

Hi/low sequences are kept ascending by ``(value, date)``: the hottest entry is
always last and the coldest always first, whichever kind the sequence is.
Freeze sequences are kept ascending by date.
"""

from __future__ import annotations

from typing import List, Optional

from models.almanac import ReadingType, RecordedReading

DEFAULT_SEQUENCE_SIZE = 5


def _by_value(reading: RecordedReading) -> tuple[float, float]:
    return (reading.value, reading.epoch)


def _by_date(reading: RecordedReading) -> float:
    return reading.epoch


def _trim(sequence: List[RecordedReading], size: int, keep_tail: bool) -> bool:
    """Drop entries beyond ``size``; returns ``True`` when any were dropped."""
    excess = len(sequence) - size
    if excess <= 0:
        return False
    if keep_tail:
        del sequence[:excess]
    else:
        del sequence[size:]
    return True


def _contains(sequence: List[RecordedReading], candidate: RecordedReading) -> bool:
    return any(existing.matches(candidate) for existing in sequence)


def update_hi_low_sequence(
    candidate: RecordedReading,
    sequence: List[RecordedReading],
    kind: ReadingType,
    size: int = DEFAULT_SEQUENCE_SIZE,
) -> bool:
    """Merge ``candidate`` into ``sequence`` in place.

    Returns ``True`` when the sequence changed. Raises ``ValueError`` for an
    unknown ``kind``.
    """
    if kind not in (ReadingType.high, ReadingType.low):
        raise ValueError(f"Unsupported reading type {kind!r} for a hi/low sequence.")

    sequence.sort(key=_by_value)
    trimmed = _trim(sequence, size, keep_tail=kind == ReadingType.high)
    if _contains(sequence, candidate):
        return trimmed

    if len(sequence) < size:
        sequence.append(candidate)
    elif kind == ReadingType.high and candidate.value > sequence[0].value:
        sequence[0] = candidate
    elif kind == ReadingType.low and candidate.value < sequence[-1].value:
        sequence[-1] = candidate
    else:
        return trimmed

    sequence.sort(key=_by_value)
    return True


def update_first_freeze_sequence(
    candidate: Optional[RecordedReading],
    sequence: List[RecordedReading],
    size: int = DEFAULT_SEQUENCE_SIZE,
) -> bool:
    """Track the ``size`` earliest freezes; evicts the latest when full."""
    sequence.sort(key=_by_date)
    trimmed = _trim(sequence, size, keep_tail=False)
    if candidate is None or _contains(sequence, candidate):
        return trimmed

    if len(sequence) < size:
        sequence.append(candidate)
    elif candidate.epoch < sequence[-1].epoch:
        sequence[-1] = candidate
    else:
        return trimmed

    sequence.sort(key=_by_date)
    return True


def update_last_freeze_sequence(
    candidate: Optional[RecordedReading],
    sequence: List[RecordedReading],
    size: int = DEFAULT_SEQUENCE_SIZE,
) -> bool:
    """Track the ``size`` latest freezes; evicts the earliest when full."""
    sequence.sort(key=_by_date)
    trimmed = _trim(sequence, size, keep_tail=True)
    if candidate is None or _contains(sequence, candidate):
        return trimmed

    if len(sequence) < size:
        sequence.append(candidate)
    elif candidate.epoch > sequence[0].epoch:
        sequence[0] = candidate
    else:
        return trimmed

    sequence.sort(key=_by_date)
    return True
