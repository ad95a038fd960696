from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Optional

from .parse import RawRecord


# A simplified 360-day calendar (12 x 30 days). Values are only meant for
# ordering and coarse binning (years, ages); never use them as real day counts.
DAYS_PER_MONTH = 30
DAYS_PER_YEAR = 12 * DAYS_PER_MONTH

# Two-digit birth years above this are 19xx, the rest 20xx.
CENTURY_PIVOT = 30

_LEADING_INT_RE = re.compile(r"^\s*[+-]?\d+")
_LEADING_FLOAT_RE = re.compile(r"^\s*[+-]?(?:\d+\.?\d*|\.\d+)")


@dataclass(frozen=True)
class NormalizedRecord:
    id: int
    rank: int
    time: str
    time_seconds: float
    wind: str
    athlete: str
    country: str
    birth_date: str  # DD.MM.YYYY after century resolution
    position: str
    location: str
    date: str
    date_value: int
    age_value: int
    age_years: int

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def time_to_seconds(value: str) -> float:
    """Convert a performance to a sortable float.

    - h:mm:ss(.f) and m:ss(.f) become seconds
    - anything else (sprint times, metres, points) is read as a plain number

    Unparseable input gives 0.0.
    """
    text = (value or "").strip()
    parts = text.split(":")
    if len(parts) == 3:
        hours = _leading_int(parts[0])
        minutes = _leading_int(parts[1])
        seconds = _leading_float(parts[2])
        if hours is None or minutes is None or seconds is None:
            return 0.0
        return max(0.0, hours * 3600 + minutes * 60 + seconds)
    if len(parts) == 2:
        minutes = _leading_int(parts[0])
        seconds = _leading_float(parts[1])
        if minutes is None or seconds is None:
            return 0.0
        return max(0.0, minutes * 60 + seconds)
    number = _leading_float(text)
    return max(0.0, number) if number is not None else 0.0


def date_ordinal(value: str) -> int:
    """DD.MM.YYYY -> year*360 + month*30 + day (0 if malformed)."""
    parts = (value or "").strip().split(".")
    if len(parts) != 3:
        return 0
    day = _leading_int(parts[0])
    month = _leading_int(parts[1])
    year = _leading_int(parts[2])
    if day is None or month is None or year is None:
        return 0
    return year * DAYS_PER_YEAR + month * DAYS_PER_MONTH + day


def resolve_birth_year(year_2: int) -> int:
    # Heuristic: no check against the event date, so athletes born around the
    # pivot year can land in the wrong century.
    return 1900 + year_2 if year_2 > CENTURY_PIVOT else 2000 + year_2


def resolve_birth_date(value: str) -> str:
    """DD.MM.YY -> DD.MM.YYYY; other shapes are returned unchanged."""
    text = (value or "").strip()
    parts = text.split(".")
    if len(parts) != 3 or len(parts[2]) != 2 or not parts[2].isdigit():
        return text
    full_year = resolve_birth_year(int(parts[2]))
    return f"{parts[0]}.{parts[1]}.{full_year}"


def compute_age(birth_date: str, event_date: str) -> tuple[int, int]:
    """Return (age_value, age_years) in the 360-day calendar."""
    age_value = date_ordinal(event_date) - date_ordinal(birth_date)
    return age_value, age_value // DAYS_PER_YEAR


def normalize(raw: RawRecord, sequence_index: int) -> NormalizedRecord:
    birth_date = resolve_birth_date(raw.birth_date)
    age_value, age_years = compute_age(birth_date, raw.date)
    rank = _leading_int(raw.rank)
    return NormalizedRecord(
        id=int(sequence_index),
        rank=rank if rank else int(sequence_index) + 1,
        time=raw.time,
        time_seconds=time_to_seconds(raw.time),
        wind=raw.wind or "",
        athlete=raw.athlete,
        country=raw.country,
        birth_date=birth_date,
        position=raw.position,
        location=raw.location,
        date=raw.date,
        date_value=date_ordinal(raw.date),
        age_value=age_value,
        age_years=age_years,
    )


def normalize_records(raws: Iterable[RawRecord]) -> list[NormalizedRecord]:
    return [normalize(raw, i) for i, raw in enumerate(raws)]


def _leading_int(text: str) -> Optional[int]:
    m = _LEADING_INT_RE.match(text or "")
    if not m:
        return None
    return int(m.group(0))


def _leading_float(text: str) -> Optional[float]:
    m = _LEADING_FLOAT_RE.match(text or "")
    if not m:
        return None
    return float(m.group(0))
