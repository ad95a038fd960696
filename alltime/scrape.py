from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Optional

import requests

from .config import FETCH_TIMEOUT_S, USER_AGENT
from .events import event_url, get_event
from .extract import ParseError
from .parse import RawRecord, parse_markup


FETCHED_AT_FORMAT = "%Y-%m-%d %H:%M:%S"


@dataclass(frozen=True)
class ScrapeResult:
    event_code: str
    success: bool
    count: int
    fetched_at: Optional[str]
    records: list[RawRecord] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        d: dict[str, Any] = {
            "success": self.success,
            "count": self.count,
            "fetched_at": self.fetched_at,
            "records": [r.to_api() for r in self.records],
        }
        if self.error is not None:
            d["error"] = self.error
        return d

    @classmethod
    def from_dict(cls, event_code: str, data: dict[str, Any]) -> "ScrapeResult":
        records = [RawRecord.from_api(r) for r in data.get("records") or []]
        return cls(
            event_code=event_code,
            success=bool(data.get("success")),
            count=int(data.get("count") or len(records)),
            fetched_at=data.get("fetched_at"),
            records=records,
            error=data.get("error"),
        )


def fetch_event_page(
    *,
    url: str,
    session: Optional[requests.Session] = None,
    timeout: float = FETCH_TIMEOUT_S,
) -> str:
    sess = session or requests.Session()
    headers = {"User-Agent": USER_AGENT}
    resp = sess.get(url, headers=headers, timeout=timeout)
    resp.raise_for_status()
    return resp.text


def parse_event_page(*, markup: str, event_code: str, now: Optional[datetime] = None) -> ScrapeResult:
    try:
        records = parse_markup(markup)
    except ParseError as exc:
        return ScrapeResult(event_code=event_code, success=False, count=0, fetched_at=None, records=[], error=exc.message)
    fetched_at = (now or datetime.now()).strftime(FETCHED_AT_FORMAT)
    return ScrapeResult(event_code=event_code, success=True, count=len(records), fetched_at=fetched_at, records=records)


def scrape_event(
    *,
    event_code: str,
    session: Optional[requests.Session] = None,
    now: Optional[datetime] = None,
) -> ScrapeResult:
    ev = get_event(event_code)
    url = event_url(ev.code)
    try:
        markup = fetch_event_page(url=url, session=session)
    except requests.RequestException:
        return ScrapeResult(
            event_code=ev.code,
            success=False,
            count=0,
            fetched_at=None,
            records=[],
            error=f"Failed to fetch data from {url}",
        )
    return parse_event_page(markup=markup, event_code=ev.code, now=now)
