from __future__ import annotations

import argparse
import json
from datetime import timedelta
from pathlib import Path

from .cache import JsonFileStore, ResultStore
from .config import CACHE_MAX_AGE, POLITE_DELAY_S, default_cache_db_path, default_cache_dir
from .db import SqliteStore
from .events import UnknownEventError, get_event
from .ingest import EventFetchError, get_cached_or_fetch, list_events, load_records, update_all_events
from .normalize import normalize_records
from .queries import export_records, filter_by_cutoff, location_performances, search_athletes
from .scrape import parse_event_page
from .webapp import run_web


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(prog="python -m alltime", description="alltime-athletics.com -> strukturerte resultater")
    sub = parser.add_subparsers(dest="cmd", required=True)

    def add_store_args(p: argparse.ArgumentParser) -> None:
        p.add_argument("--store", choices=["json", "sqlite"], default="json", help="Hvor resultatlister caches")
        p.add_argument("--cache-dir", type=Path, default=default_cache_dir(), help="Mappe for JSON-cache (--store json)")
        p.add_argument("--db", type=Path, default=default_cache_db_path(), help="SQLite-fil for cache (--store sqlite)")
        p.add_argument(
            "--max-age-days",
            type=float,
            default=CACHE_MAX_AGE.total_seconds() / 86400,
            help="Hvor lenge en cachet liste regnes som fersk (dager)",
        )

    ls = sub.add_parser("list", help="Vis tilgjengelige øvelser og cache-status")
    add_store_args(ls)

    fetch = sub.add_parser("fetch", help="Hent én øvelse (fra cache hvis fersk)")
    fetch.add_argument("event", help="Øvelseskode, f.eks. m_100 eller mmara")
    fetch.add_argument("--refresh", action="store_true", help="Last ned på nytt selv om cache er fersk")
    fetch.add_argument("--json", action="store_true", help="Skriv hele svaret som JSON")
    add_store_args(fetch)

    upd = sub.add_parser("update-all", help="Last ned alle øvelser på nytt (for cron)")
    upd.add_argument("--events", nargs="+", default=None, help="Begrens til disse kodene")
    upd.add_argument("--polite-delay", type=float, default=POLITE_DELAY_S, help="Pause mellom sider (sekunder)")
    add_store_args(upd)

    parse_cmd = sub.add_parser("parse", help="Parse en lokal HTML-side og skriv normaliserte rader som JSON")
    parse_cmd.add_argument("html_file", type=Path, help="Nedlastet side, f.eks. m_100ok.htm")
    parse_cmd.add_argument("--encoding", default="latin-1", help="Tegnsett for filen (default: latin-1)")
    parse_cmd.add_argument("--raw", action="store_true", help="Skriv rå rader i stedet for normaliserte")

    search = sub.add_parser("search", help="Søk etter utøver i en øvelse")
    search.add_argument("event", help="Øvelseskode")
    search.add_argument("term", help="Del av navnet")
    add_store_args(search)

    loc = sub.add_parser("location", help="Alle resultater fra ett sted")
    loc.add_argument("event", help="Øvelseskode")
    loc.add_argument("city", help="Stedsnavn slik det står i listen, f.eks. Berlin")
    loc.add_argument("--sort", choices=["time", "date"], default="time", help="Sortering")
    add_store_args(loc)

    export = sub.add_parser("export", help="Eksporter normaliserte rader til CSV eller Excel")
    export.add_argument("event", help="Øvelseskode")
    export.add_argument("out", type=Path, help="Utfil (.csv eller .xlsx)")
    export.add_argument("--cutoff", action="store_true", help="Bare rader innenfor øvelsens visningsgrense")
    add_store_args(export)

    web = sub.add_parser("web", help="Start lokal JSON-API")
    web.add_argument("--host", default="127.0.0.1")
    web.add_argument("--port", type=int, default=8080)
    add_store_args(web)

    args = parser.parse_args(argv)

    try:
        return _run(args)
    except UnknownEventError as exc:
        print(f"Ukjent øvelse: {exc.code} (se `list`)")
        return 2
    except EventFetchError as exc:
        print(f"Feil for {exc.event_code}: {exc.message}")
        return 1


def _run(args: argparse.Namespace) -> int:
    if args.cmd == "parse":
        if not args.html_file.exists():
            raise FileNotFoundError(f"Fant ikke fil: {args.html_file}")
        markup = args.html_file.read_bytes().decode(args.encoding, errors="replace")
        result = parse_event_page(markup=markup, event_code=args.html_file.stem)
        if not result.success:
            print(f"Feil: {result.error}")
            return 1
        if args.raw:
            rows = [r.to_api() for r in result.records]
        else:
            rows = [r.to_dict() for r in normalize_records(result.records)]
        print(json.dumps(rows, ensure_ascii=False, indent=2))
        return 0

    store = _make_store(args)
    max_age = timedelta(days=float(args.max_age_days))

    if args.cmd == "list":
        for s in list_events(store=store):
            status = s.cache_date if s.cached else "-"
            print(f"{s.code:8} {s.name:32} {status}")
        return 0

    if args.cmd == "fetch":
        payload = get_cached_or_fetch(store=store, event_code=args.event, refresh=bool(args.refresh), max_age=max_age)
        if args.json:
            print(json.dumps(payload, ensure_ascii=False, indent=2))
            return 0 if payload.get("success") else 1
        if not payload.get("success"):
            print(f"Feil: {payload.get('error')}")
            return 1
        source = f"cache, {payload.get('cache_age_hours')} t gammel" if payload.get("from_cache") else "lastet ned"
        print(f"{get_event(args.event).name}: {payload.get('count')} rader ({source}, hentet {payload.get('fetched_at')})")
        return 0

    if args.cmd == "update-all":
        res = update_all_events(store=store, codes=args.events, polite_delay_s=float(args.polite_delay))
        failed = [code for code, s in res.summary.items() if s == "error"]
        print(
            "Oppdatering ferdig:",
            f"events={len(res.events)}",
            f"failed={len(failed)}",
            sep=" ",
        )
        return 0 if not failed else 1

    if args.cmd == "search":
        ev = get_event(args.event)
        records = load_records(store=store, event_code=ev.code, max_age=max_age)
        options = search_athletes(records, args.term, orientation=ev.orientation)
        if not options:
            print("Ingen treff.")
            return 0
        for opt in options:
            r = opt.best
            print(f"{opt.name} | #{r.rank} | {r.time} | {r.location or '-'} | {r.date or '-'}")
        return 0

    if args.cmd == "location":
        ev = get_event(args.event)
        records = load_records(store=store, event_code=ev.code, max_age=max_age)
        rows = location_performances(records, args.city, sort=args.sort)
        if not rows:
            print("Ingen treff.")
            return 0
        print(f"{args.city}: {len(rows)} resultat(er)")
        for r in rows[:200]:
            print(f"#{r.rank} | {r.time} | {r.athlete} | {r.country} | {r.date or '-'}")
        if len(rows) > 200:
            print(f"... ({len(rows) - 200} flere)")
        return 0

    if args.cmd == "export":
        ev = get_event(args.event)
        records = load_records(store=store, event_code=ev.code, max_age=max_age)
        if args.cutoff:
            records = filter_by_cutoff(records, ev)
        export_records(records, args.out)
        print(f"Skrev {len(records)} rader til {args.out}")
        return 0

    if args.cmd == "web":
        run_web(store=store, host=args.host, port=int(args.port), max_age=max_age)
        return 0

    raise AssertionError(f"Unhandled cmd: {args.cmd}")


def _make_store(args: argparse.Namespace) -> ResultStore:
    if args.store == "sqlite":
        return SqliteStore(args.db)
    return JsonFileStore(args.cache_dir)
