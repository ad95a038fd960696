from __future__ import annotations

import csv
import math
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Callable, Iterable, Optional

import openpyxl

from .events import Event
from .normalize import DAYS_PER_YEAR, NormalizedRecord


SEARCH_SHORT_TERM_LIMIT = 10
SEARCH_UNLIMITED_FROM = 3

# Date histogram window (360-day ordinals): 1950..2030.
MIN_DATE_VALUE = 1950 * DAYS_PER_YEAR
MAX_DATE_VALUE = 2030 * DAYS_PER_YEAR
# Age histogram window: 10..70 years.
MIN_AGE_VALUE = 10 * DAYS_PER_YEAR
MAX_AGE_VALUE = 70 * DAYS_PER_YEAR


@dataclass(frozen=True)
class AthleteOption:
    name: str
    best: NormalizedRecord


@dataclass(frozen=True)
class HistogramBar:
    record_id: int
    index: int
    height_percent: float
    left_percent: float
    value: float


@dataclass(frozen=True)
class HistogramLabel:
    value: int
    position: float
    label: str


@dataclass(frozen=True)
class Histogram:
    bars: list[HistogramBar]
    min_value: float
    max_value: float
    value_range: float
    labels: list[HistogramLabel]

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


EMPTY_HISTOGRAM = Histogram(bars=[], min_value=0, max_value=0, value_range=0, labels=[])


def _is_better(a: NormalizedRecord, b: NormalizedRecord, *, orientation: str) -> bool:
    if orientation == "higher":
        return a.time_seconds > b.time_seconds
    return a.time_seconds < b.time_seconds


def athlete_options(records: Iterable[NormalizedRecord], *, orientation: str = "lower") -> list[AthleteOption]:
    """Best performance per athlete name, alphabetically."""
    best: dict[str, NormalizedRecord] = {}
    for r in records:
        cur = best.get(r.athlete)
        if cur is None or _is_better(r, cur, orientation=orientation):
            best[r.athlete] = r
    return [AthleteOption(name=name, best=rec) for name, rec in sorted(best.items(), key=lambda kv: kv[0].lower())]


def search_athletes(
    records: Iterable[NormalizedRecord],
    term: str,
    *,
    orientation: str = "lower",
) -> list[AthleteOption]:
    text = (term or "").strip()
    if not text:
        return []
    needle = text.lower()
    matches = [opt for opt in athlete_options(records, orientation=orientation) if needle in opt.name.lower()]
    # Short terms match too much; only show the first few until the user types more.
    if len(text) >= SEARCH_UNLIMITED_FROM:
        return matches
    return matches[:SEARCH_SHORT_TERM_LIMIT]


def location_performances(
    records: Iterable[NormalizedRecord],
    city: str,
    *,
    sort: str = "time",
) -> list[NormalizedRecord]:
    if not city:
        return []
    rows = [r for r in records if r.location == city]
    if sort == "time":
        rows.sort(key=lambda r: r.time_seconds)
    elif sort == "date":
        rows.sort(key=lambda r: r.date_value)
    else:
        raise ValueError(f"sort må være time eller date, fikk {sort!r}")
    return rows


def within_cutoff(record: NormalizedRecord, event: Event) -> bool:
    # Cutoffs are integers in hundredths (timed) or centimetres/points (field).
    scaled = record.time_seconds * 100
    if event.orientation == "higher":
        return scaled >= event.cutoff
    return scaled <= event.cutoff


def filter_by_cutoff(records: Iterable[NormalizedRecord], event: Event) -> list[NormalizedRecord]:
    return [r for r in records if within_cutoff(r, event)]


def rank_histogram(records: list[NormalizedRecord]) -> Histogram:
    """Bars in list order: x = rank position, height = relative performance."""
    if not records:
        return EMPTY_HISTOGRAM

    height = _height_fn(records)
    total = len(records)
    bars = [
        HistogramBar(
            record_id=r.id,
            index=i,
            height_percent=height(r),
            left_percent=(i / total) * 100,
            value=r.time_seconds,
        )
        for i, r in enumerate(records)
    ]

    step = math.ceil(total / 10)
    labels: list[HistogramLabel] = []
    for i in range(0, total + 1, step):
        rank = 1 if i == 0 else i
        labels.append(HistogramLabel(value=rank, position=(rank / total) * 100, label=f"#{rank}"))

    times = [r.time_seconds for r in records]
    lo, hi = min(times), max(times)
    return Histogram(bars=bars, min_value=lo, max_value=hi, value_range=(hi - lo) or 1, labels=labels)


def date_histogram(records: list[NormalizedRecord]) -> Histogram:
    valid = [r for r in records if MIN_DATE_VALUE < r.date_value < MAX_DATE_VALUE]
    return _value_histogram(
        valid,
        value_of=lambda r: r.date_value,
        label_of=str,
    )


def age_histogram(records: list[NormalizedRecord]) -> Histogram:
    valid = [r for r in records if MIN_AGE_VALUE < r.age_value < MAX_AGE_VALUE]
    return _value_histogram(
        valid,
        value_of=lambda r: r.age_value,
        label_of=lambda years: f"{years}y",
    )


def _value_histogram(
    records: list[NormalizedRecord],
    *,
    value_of: Callable[[NormalizedRecord], int],
    label_of: Callable[[int], str],
) -> Histogram:
    if not records:
        return EMPTY_HISTOGRAM

    values = [value_of(r) for r in records]
    lo, hi = min(values), max(values)
    span = (hi - lo) or 1
    height = _height_fn(records)

    bars = [
        HistogramBar(
            record_id=r.id,
            index=i,
            height_percent=height(r),
            left_percent=((value_of(r) - lo) / span) * 100,
            value=value_of(r),
        )
        for i, r in enumerate(records)
    ]

    # Labels on whole (360-day) years.
    first = math.floor(lo / DAYS_PER_YEAR)
    last = math.ceil(hi / DAYS_PER_YEAR)
    step = math.ceil((last - first) / 10) or 1
    labels: list[HistogramLabel] = []
    for year in range(first, last + 1, step):
        position = ((year * DAYS_PER_YEAR - lo) / span) * 100
        if 0 <= position <= 100:
            labels.append(HistogramLabel(value=year, position=position, label=label_of(year)))

    return Histogram(bars=bars, min_value=lo, max_value=hi, value_range=span, labels=labels)


def _height_fn(records: list[NormalizedRecord]) -> Callable[[NormalizedRecord], float]:
    # Height is the mark relative to the range of marks shown, for every event type.
    times = [r.time_seconds for r in records]
    lo, hi = min(times), max(times)
    span = (hi - lo) or 1
    return lambda r: ((r.time_seconds - lo) / span) * 100


def find_record(records: Iterable[NormalizedRecord], record_id: int) -> Optional[NormalizedRecord]:
    for r in records:
        if r.id == record_id:
            return r
    return None


_EXPORT_COLUMNS = [f.name for f in fields(NormalizedRecord)]


def export_records(records: list[NormalizedRecord], path: Path) -> None:
    """Write records to .csv or .xlsx (chosen by suffix)."""
    path.parent.mkdir(parents=True, exist_ok=True)
    suffix = path.suffix.lower()
    if suffix == ".csv":
        _write_csv(records, path)
    elif suffix == ".xlsx":
        _write_xlsx(records, path)
    else:
        raise ValueError(f"Ukjent filtype: {path.suffix or '(ingen)'} (bruk .csv eller .xlsx)")


def _write_csv(records: list[NormalizedRecord], path: Path) -> None:
    with path.open("w", newline="", encoding="utf-8") as f:
        writer = csv.DictWriter(f, fieldnames=_EXPORT_COLUMNS)
        writer.writeheader()
        for r in records:
            writer.writerow(r.to_dict())


def _write_xlsx(records: list[NormalizedRecord], path: Path) -> None:
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = "records"
    ws.append(_EXPORT_COLUMNS)
    for r in records:
        d = r.to_dict()
        ws.append([d[col] for col in _EXPORT_COLUMNS])
    wb.save(path)
