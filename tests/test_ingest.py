from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from alltime.cache import MemoryStore
from alltime.events import EVENTS, UnknownEventError
from alltime.ingest import (
    EventFetchError,
    get_cached_or_fetch,
    list_events,
    load_records,
    records_from_payload,
    update_all_events,
)
from alltime.scrape import ScrapeResult, parse_event_page


NOW = datetime(2024, 5, 1, 12, 0, tzinfo=timezone.utc)


class FakeScraper:
    def __init__(self, markup: str, failing: set[str] | None = None) -> None:
        self.markup = markup
        self.failing = failing or set()
        self.calls: list[str] = []

    def __call__(self, *, event_code: str, session=None) -> ScrapeResult:
        self.calls.append(event_code)
        if event_code in self.failing:
            return ScrapeResult(event_code=event_code, success=False, count=0, fetched_at=None, error="Failed to fetch data")
        return parse_event_page(markup=self.markup, event_code=event_code)


def test_first_call_fetches_and_stores(sample_page):
    store = MemoryStore()
    scraper = FakeScraper(sample_page)

    payload = get_cached_or_fetch(store=store, event_code="m_100", now=NOW, scraper=scraper)

    assert payload["success"]
    assert payload["from_cache"] is False
    assert payload["count"] == 7
    assert scraper.calls == ["m_100"]
    entry = store.get("m_100")
    assert entry is not None
    assert "from_cache" not in entry.value


def test_fresh_entry_is_served_from_store(sample_page):
    store = MemoryStore()
    scraper = FakeScraper(sample_page)
    get_cached_or_fetch(store=store, event_code="m_100", now=NOW, scraper=scraper)

    payload = get_cached_or_fetch(store=store, event_code="m_100", now=NOW + timedelta(hours=30), scraper=scraper)

    assert payload["from_cache"] is True
    assert payload["cache_age_hours"] == 30.0
    assert scraper.calls == ["m_100"]


def test_stale_entry_is_refetched(sample_page):
    store = MemoryStore()
    scraper = FakeScraper(sample_page)
    get_cached_or_fetch(store=store, event_code="m_100", now=NOW, scraper=scraper)

    payload = get_cached_or_fetch(store=store, event_code="m_100", now=NOW + timedelta(days=8), scraper=scraper)

    assert payload["from_cache"] is False
    assert scraper.calls == ["m_100", "m_100"]
    assert store.get("m_100").stored_at == NOW + timedelta(days=8)


def test_refresh_bypasses_fresh_entry(sample_page):
    store = MemoryStore()
    scraper = FakeScraper(sample_page)
    get_cached_or_fetch(store=store, event_code="m_100", now=NOW, scraper=scraper)
    get_cached_or_fetch(store=store, event_code="m_100", refresh=True, now=NOW, scraper=scraper)

    assert scraper.calls == ["m_100", "m_100"]


def test_custom_freshness_window(sample_page):
    store = MemoryStore()
    scraper = FakeScraper(sample_page)
    get_cached_or_fetch(store=store, event_code="m_100", now=NOW, scraper=scraper)
    get_cached_or_fetch(store=store, event_code="m_100", now=NOW + timedelta(hours=2), max_age=timedelta(hours=1), scraper=scraper)

    assert len(scraper.calls) == 2


def test_failed_fetch_is_not_stored(sample_page):
    store = MemoryStore()
    scraper = FakeScraper(sample_page, failing={"mmara"})

    payload = get_cached_or_fetch(store=store, event_code="mmara", now=NOW, scraper=scraper)

    assert payload["success"] is False
    assert payload["error"] == "Failed to fetch data"
    assert store.get("mmara") is None


def test_unknown_event():
    with pytest.raises(UnknownEventError):
        get_cached_or_fetch(store=MemoryStore(), event_code="nope", scraper=FakeScraper(""))


def test_load_records_normalizes(sample_page):
    records = load_records(store=MemoryStore(), event_code="m_100", now=NOW, scraper=FakeScraper(sample_page))

    assert [r.id for r in records] == list(range(7))
    assert records[0].time_seconds == pytest.approx(9.58)
    assert records[0].birth_date == "21.08.1986"
    assert records[5].birth_date == "04.03.2001"


def test_load_records_raises_on_failure():
    with pytest.raises(EventFetchError) as exc_info:
        load_records(store=MemoryStore(), event_code="mmara", scraper=FakeScraper("", failing={"mmara"}))

    assert exc_info.value.event_code == "mmara"


def test_update_all_refreshes_each_event_politely(sample_page, capsys):
    store = MemoryStore()
    scraper = FakeScraper(sample_page, failing={"mmara"})
    sleeps: list[float] = []

    res = update_all_events(
        store=store,
        codes=["m_100", "mmara", "wjave"],
        polite_delay_s=0.5,
        scraper=scraper,
        sleep=sleeps.append,
    )

    assert res.events == ["m_100", "mmara", "wjave"]
    assert res.summary == {"m_100": "7 records", "mmara": "error", "wjave": "7 records"}
    assert sleeps == [0.5, 0.5]
    assert store.keys() == ["m_100", "wjave"]
    assert "Advarsel: mmara" in capsys.readouterr().out


def test_update_all_defaults_to_whole_catalog(sample_page):
    scraper = FakeScraper(sample_page)
    res = update_all_events(store=MemoryStore(), polite_delay_s=0, scraper=scraper)

    assert scraper.calls == [ev.code for ev in EVENTS]
    assert res.to_dict()["success"] is True


def test_list_events_reports_cache_status(sample_page):
    store = MemoryStore()
    get_cached_or_fetch(store=store, event_code="mhigh", now=NOW, scraper=FakeScraper(sample_page))

    statuses = {s.code: s for s in list_events(store=store)}

    assert len(statuses) == len(EVENTS)
    assert statuses["mhigh"].cached
    assert statuses["mhigh"].cache_date == "2024-05-01 12:00:00"
    assert statuses["mhigh"].name == "Men's High Jump"
    assert not statuses["m_100"].cached
    assert statuses["m_100"].cache_date is None


def test_records_from_payload_reads_cached_shape(sample_page):
    payload = parse_event_page(markup=sample_page, event_code="m_100").to_dict()

    records = records_from_payload(event_code="m_100", payload=payload)

    assert len(records) == 7
    assert records[0].birth_date == "21.08.1986"


def test_records_from_payload_rejects_error_payload():
    payload = {"success": False, "count": 0, "fetched_at": None, "records": [], "error": "No PRE tag found in HTML"}

    with pytest.raises(EventFetchError) as exc_info:
        records_from_payload(event_code="m_100", payload=payload)

    assert exc_info.value.message == "No PRE tag found in HTML"
