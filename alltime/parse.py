from __future__ import annotations

import re
from dataclasses import asdict, dataclass
from typing import Any, Iterable, Iterator, Optional, Union

from .extract import extract_lines


_TOKEN_SPLIT_RE = re.compile(r"\s{2,}")
_RANK_RE = re.compile(r"^\d+$")
_WIND_RE = re.compile(r"^[+\-±]?\d*\.?\d+$")
_WIND_STRIP_RE = re.compile(r"[^0-9.\-]")

MIN_TOKENS = 8
MAX_WIND = 10.0

# Field name in RawRecord -> key in the cached/API payload.
_API_KEYS = {
    "rank": "rank",
    "time": "time",
    "wind": "wind",
    "athlete": "athlete",
    "country": "country",
    "birth_date": "dob",
    "position": "position",
    "location": "location",
    "date": "date",
}


@dataclass(frozen=True)
class RawRecord:
    rank: str
    time: str
    wind: str
    athlete: str
    country: str
    birth_date: str  # DD.MM.YY (sometimes DD.MM.YYYY)
    position: str
    location: str
    date: str  # DD.MM.YYYY

    def to_api(self) -> dict[str, str]:
        d = asdict(self)
        return {api_key: d[field] for field, api_key in _API_KEYS.items()}

    @classmethod
    def from_api(cls, data: dict[str, Any]) -> "RawRecord":
        values = {field: str(data.get(api_key) or "").strip() for field, api_key in _API_KEYS.items()}
        return cls(**values)


@dataclass(frozen=True)
class HasWind:
    value: str


@dataclass(frozen=True)
class NoWind:
    pass


WindReading = Union[HasWind, NoWind]


def tokenize(line: str) -> list[str]:
    """Split a ranking row into columns; single spaces stay inside a column ("New York")."""
    return [p.strip() for p in _TOKEN_SPLIT_RE.split(line or "") if p.strip()]


def classify_wind(parts: list[str]) -> WindReading:
    """Decide whether parts[2] is a wind reading.

    The wind column has no header marker; it is only present for some events.
    A row carries wind when it has an extra column and the third token is a
    small signed decimal.
    """
    if len(parts) < MIN_TOKENS + 1:
        return NoWind()
    candidate = parts[2].strip()
    if not _WIND_RE.match(candidate):
        return NoWind()
    numeric = _WIND_STRIP_RE.sub("", candidate)
    try:
        magnitude = abs(float(numeric))
    except ValueError:
        return NoWind()
    if magnitude > MAX_WIND:
        return NoWind()
    return HasWind(candidate)


def parse_line(line: str) -> Optional[RawRecord]:
    parts = tokenize(line)
    if len(parts) < MIN_TOKENS:
        return None
    if not _RANK_RE.match(parts[0]):
        return None

    wind = classify_wind(parts)
    offset = 1 if isinstance(wind, HasWind) else 0

    return RawRecord(
        rank=parts[0],
        time=parts[1],
        wind=wind.value if isinstance(wind, HasWind) else "",
        athlete=_at(parts, 2 + offset),
        country=_at(parts, 3 + offset),
        birth_date=_at(parts, 4 + offset),
        position=_at(parts, 5 + offset),
        location=_at(parts, 6 + offset),
        date=_at(parts, 7 + offset),
    )


def parse_lines(lines: Iterable[str]) -> Iterator[RawRecord]:
    for line in lines:
        record = parse_line(line)
        if record is not None:
            yield record


def parse_markup(markup: str) -> list[RawRecord]:
    return list(parse_lines(extract_lines(markup)))


def _at(parts: list[str], idx: int) -> str:
    return parts[idx] if idx < len(parts) else ""
