from __future__ import annotations

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Optional

import requests

from .cache import ResultStore, age_hours, is_fresh, utcnow
from .config import CACHE_MAX_AGE, POLITE_DELAY_S
from .events import EVENTS, get_event
from .normalize import NormalizedRecord, normalize_records
from .scrape import ScrapeResult, scrape_event


Scraper = Callable[..., ScrapeResult]


class EventFetchError(RuntimeError):
    def __init__(self, event_code: str, message: str) -> None:
        super().__init__(message)
        self.event_code = event_code
        self.message = message


@dataclass(frozen=True)
class EventStatus:
    code: str
    name: str
    cached: bool
    cache_date: Optional[str]


@dataclass(frozen=True)
class UpdateSummary:
    updated_at: str
    events: list[str]
    summary: dict[str, str]

    def to_dict(self) -> dict[str, Any]:
        return {
            "success": True,
            "updated_at": self.updated_at,
            "events": list(self.events),
            "summary": dict(self.summary),
        }


def get_cached_or_fetch(
    *,
    store: ResultStore,
    event_code: str,
    refresh: bool = False,
    max_age: timedelta = CACHE_MAX_AGE,
    session: Optional[requests.Session] = None,
    now: Optional[datetime] = None,
    scraper: Scraper = scrape_event,
) -> dict[str, Any]:
    """Return the result payload for an event, from the store while it is fresh.

    Failed fetches are returned to the caller but never stored, so a stale
    entry keeps being served on the next non-refresh call.
    """
    ev = get_event(event_code)
    now = now or utcnow()

    if not refresh:
        entry = store.get(ev.code)
        if entry is not None and is_fresh(entry, now=now, max_age=max_age):
            payload = dict(entry.value)
            payload["from_cache"] = True
            payload["cache_age_hours"] = age_hours(entry, now=now)
            return payload

    result = scraper(event_code=ev.code, session=session)
    payload = result.to_dict()
    if result.success:
        store.put(ev.code, payload, now)
    payload["from_cache"] = False
    return payload


def records_from_payload(*, event_code: str, payload: dict[str, Any]) -> list[NormalizedRecord]:
    result = ScrapeResult.from_dict(event_code, payload)
    if result.error or not result.success:
        raise EventFetchError(event_code, str(result.error or "Unknown error"))
    return normalize_records(result.records)


def load_records(
    *,
    store: ResultStore,
    event_code: str,
    refresh: bool = False,
    max_age: timedelta = CACHE_MAX_AGE,
    session: Optional[requests.Session] = None,
    now: Optional[datetime] = None,
    scraper: Scraper = scrape_event,
) -> list[NormalizedRecord]:
    payload = get_cached_or_fetch(
        store=store,
        event_code=event_code,
        refresh=refresh,
        max_age=max_age,
        session=session,
        now=now,
        scraper=scraper,
    )
    return records_from_payload(event_code=event_code, payload=payload)


def update_all_events(
    *,
    store: ResultStore,
    codes: Optional[Iterable[str]] = None,
    polite_delay_s: float = POLITE_DELAY_S,
    session: Optional[requests.Session] = None,
    scraper: Scraper = scrape_event,
    sleep: Callable[[float], None] = time.sleep,
) -> UpdateSummary:
    todo = [get_event(c).code for c in codes] if codes is not None else [ev.code for ev in EVENTS]
    sess = session or requests.Session()

    summary: dict[str, str] = {}
    for i, code in enumerate(todo):
        if i > 0 and polite_delay_s > 0:
            sleep(float(polite_delay_s))
        payload = get_cached_or_fetch(store=store, event_code=code, refresh=True, session=sess, scraper=scraper)
        if payload.get("success"):
            summary[code] = f"{payload.get('count', 0)} records"
            print(f"{code}: {payload.get('count', 0)} rader")
        else:
            summary[code] = "error"
            print(f"Advarsel: {code} feilet ({payload.get('error')})")

    return UpdateSummary(
        updated_at=datetime.now().strftime("%Y-%m-%d %H:%M:%S"),
        events=todo,
        summary=summary,
    )


def list_events(*, store: ResultStore) -> list[EventStatus]:
    cached = set(store.keys())
    out: list[EventStatus] = []
    for ev in EVENTS:
        entry = store.get(ev.code) if ev.code in cached else None
        out.append(
            EventStatus(
                code=ev.code,
                name=ev.name,
                cached=entry is not None,
                cache_date=entry.stored_at.strftime("%Y-%m-%d %H:%M:%S") if entry is not None else None,
            )
        )
    return out
