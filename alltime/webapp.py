from __future__ import annotations

import json
from dataclasses import asdict
from datetime import timedelta
from http.server import BaseHTTPRequestHandler, ThreadingHTTPServer
from typing import Any, Optional
from urllib.parse import parse_qs, urlparse

from .cache import ResultStore
from .config import CACHE_MAX_AGE, POLITE_DELAY_S
from .events import EVENTS, UnknownEventError, get_event
from .ingest import EventFetchError, get_cached_or_fetch, list_events, load_records, update_all_events
from .normalize import NormalizedRecord
from .queries import (
    age_histogram,
    date_histogram,
    filter_by_cutoff,
    find_record,
    location_performances,
    rank_histogram,
    search_athletes,
)


def run_web(
    *,
    store: ResultStore,
    host: str = "127.0.0.1",
    port: int = 8080,
    max_age: timedelta = CACHE_MAX_AGE,
) -> None:
    server = make_server(store=store, host=host, port=port, max_age=max_age)
    print(f"Starter API: http://{host}:{port}/api/")
    server.serve_forever()


def make_server(*, store: ResultStore, host: str, port: int, max_age: timedelta = CACHE_MAX_AGE) -> ThreadingHTTPServer:
    class Handler(_Handler):
        _store = store
        _max_age = max_age

    return ThreadingHTTPServer((host, int(port)), Handler)


class _Handler(BaseHTTPRequestHandler):
    _store: ResultStore
    _max_age: timedelta

    def log_message(self, fmt: str, *args: Any) -> None:
        # Keep console output readable.
        return

    def do_GET(self) -> None:  # noqa: N802
        parsed = urlparse(self.path)
        path = parsed.path.rstrip("/") or "/"
        qs = parse_qs(parsed.query)

        if path in {"/", "/api"}:
            return self._json(_api_info())

        if path.startswith("/api/"):
            try:
                payload, status = self._handle_api(path, qs)
            except _ApiError as exc:
                return self._json({"success": False, "error": exc.message}, status=exc.status)
            except UnknownEventError:
                return self._json({"success": False, "error": "Unknown event. Use /api/events to see available events."}, status=400)
            except EventFetchError as exc:
                return self._json({"success": False, "error": exc.message}, status=502)
            except Exception as exc:  # noqa: BLE001
                return self._json({"success": False, "error": f"{type(exc).__name__}: {exc}"}, status=500)
            return self._json(payload, status=status)

        return self._json({"success": False, "error": "Not found"}, status=404)

    def _handle_api(self, path: str, qs: dict[str, list[str]]) -> tuple[Any, int]:
        if path == "/api/events":
            return {"success": True, "events": [asdict(s) for s in list_events(store=self._store)]}, 200

        if path == "/api/update_all":
            summary = update_all_events(store=self._store, polite_delay_s=POLITE_DELAY_S)
            return summary.to_dict(), 200

        if path == "/api/event":
            code = _get_one(qs, "code")
            refresh = _get_one(qs, "refresh", default="0") == "1"
            payload = get_cached_or_fetch(store=self._store, event_code=code, refresh=refresh, max_age=self._max_age)
            # A failed upstream fetch is reported in the body, like the cached payload shape.
            return payload, 200 if payload.get("success") else 502

        if path == "/api/records":
            ev = get_event(_get_one(qs, "code"))
            records = self._records(ev.code)
            if _get_one(qs, "cutoff", default="0") == "1":
                records = filter_by_cutoff(records, ev)
            return {"success": True, "count": len(records), "records": [r.to_dict() for r in records]}, 200

        if path == "/api/record":
            ev = get_event(_get_one(qs, "code"))
            raw_id = _get_one(qs, "id")
            if not raw_id.isdigit():
                raise _ApiError(400, "id må være et heltall")
            rec = find_record(self._records(ev.code), int(raw_id))
            if rec is None:
                raise _ApiError(404, f"Fant ikke rad {raw_id}")
            return {"success": True, "record": rec.to_dict()}, 200

        if path == "/api/search":
            ev = get_event(_get_one(qs, "code"))
            term = _get_one(qs, "q", default="")
            options = search_athletes(self._records(ev.code), term, orientation=ev.orientation)
            return [{"name": o.name, "best": o.best.to_dict()} for o in options], 200

        if path == "/api/location":
            ev = get_event(_get_one(qs, "code"))
            city = _get_one(qs, "city")
            sort = _get_one(qs, "sort", default="time")
            if sort not in {"time", "date"}:
                raise _ApiError(400, "sort må være time eller date")
            rows = location_performances(self._records(ev.code), city, sort=sort)
            return {"city": city, "count": len(rows), "records": [r.to_dict() for r in rows]}, 200

        if path == "/api/histogram":
            ev = get_event(_get_one(qs, "code"))
            kind = _get_one(qs, "kind", default="rank")
            builders = {"rank": rank_histogram, "date": date_histogram, "age": age_histogram}
            if kind not in builders:
                raise _ApiError(400, "kind må være rank, date eller age")
            hist = builders[kind](self._records(ev.code))
            return hist.to_dict(), 200

        raise _ApiError(404, "Ukjent API-endepunkt")

    def _records(self, code: str) -> list[NormalizedRecord]:
        return load_records(store=self._store, event_code=code, max_age=self._max_age)

    def _json(self, data: Any, *, status: int = 200) -> None:
        raw = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self.send_response(int(status))
        self.send_header("Content-Type", "application/json; charset=utf-8")
        self.send_header("Content-Length", str(len(raw)))
        self.end_headers()
        self.wfile.write(raw)


class _ApiError(Exception):
    def __init__(self, status: int, message: str) -> None:
        super().__init__(message)
        self.status = int(status)
        self.message = message


def _get_one(qs: dict[str, list[str]], key: str, *, default: Optional[str] = None) -> str:
    if key not in qs or not qs[key]:
        if default is not None:
            return default
        raise _ApiError(400, f"Mangler parameter: {key}")
    return qs[key][0]


def _api_info() -> dict[str, Any]:
    return {
        "name": "Track & Field Records API",
        "endpoints": {
            "/api/events": "List all available events",
            "/api/event?code=EVENT_CODE": "Get data for specific event",
            "/api/event?code=EVENT_CODE&refresh=1": "Force refresh cache for event",
            "/api/records?code=EVENT_CODE[&cutoff=1]": "Normalized records",
            "/api/record?code=EVENT_CODE&id=ID": "One normalized record by id",
            "/api/search?code=EVENT_CODE&q=TERM": "Athlete search",
            "/api/location?code=EVENT_CODE&city=CITY[&sort=time|date]": "Performances at one location",
            "/api/histogram?code=EVENT_CODE&kind=rank|date|age": "Histogram data",
            "/api/update_all": "Update all events",
        },
        "events": [ev.code for ev in EVENTS],
    }
