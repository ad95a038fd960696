from __future__ import annotations

import re
from dataclasses import dataclass

from .config import ALLTIME_BASE_URL


@dataclass(frozen=True)
class Event:
    code: str
    name: str
    cutoff: int  # hundredths of a second (timed), centimetres (jumps/throws) or points
    orientation: str  # "lower" | "higher"


class UnknownEventError(KeyError):
    def __init__(self, code: str) -> None:
        super().__init__(code)
        self.code = code

    def __str__(self) -> str:
        return f"Unknown event: {self.code!r}"


_FIELD_CODES = frozenset(
    {
        "mhigh", "mpole", "mlong", "mtrip", "mshot", "mdisc", "mhamm", "mjave", "mdeca",
        "whigh", "wpole", "wlong", "wtrip", "wshot", "wdisc", "whamm", "wjave",
    }
)

_CODE_RE = re.compile(r"[^a-z0-9_]", re.IGNORECASE)


def _event(code: str, name: str, cutoff: int) -> Event:
    return Event(code=code, name=name, cutoff=cutoff, orientation=infer_orientation(code))


def infer_orientation(code: str) -> str:
    # Jumps and throws are measured, the decathlon is scored; everything else is timed.
    return "higher" if code in _FIELD_CODES else "lower"


EVENTS: tuple[Event, ...] = (
    # MEN
    _event("m_100", "Men's 100m", 1200),  # Sprints
    _event("m_200", "Men's 200m", 2200),
    _event("m_400", "Men's 400m", 5000),
    _event("m_110h", "Men's 110m Hurdles", 1500),
    _event("m_400h", "Men's 400m Hurdles", 5200),
    _event("m_800", "Men's 800m", 12000),  # Middle distance
    _event("m_1500", "Men's 1500m", 24000),
    _event("m_mile", "Men's Mile", 26000),
    _event("m_3000", "Men's 3,000m", 47000),  # Long distance
    _event("m3000h", "Men's 3,000m Steeplechase", 52000),
    _event("m_5000", "Men's 5,000m", 82000),
    _event("m10000", "Men's 10,000m", 140000),
    _event("mhmara", "Men's Half Marathon", 280000),
    _event("mmara", "Men's Marathon", 600000),
    _event("m20kw", "Men's 20km Race Walk", 520000),  # Race walks
    _event("m35kw", "Men's 35km Race Walk", 900000),
    _event("m50kw", "Men's 50km Race Walk", 1350000),
    _event("mhigh", "Men's High Jump", 230),  # Jumps
    _event("mpole", "Men's Pole Vault", 590),
    _event("mlong", "Men's Long Jump", 860),
    _event("mtrip", "Men's Triple Jump", 1760),
    _event("mshot", "Men's Shot Put", 2150),  # Throws
    _event("mdisc", "Men's Discus", 7000),
    _event("mhamm", "Men's Hammer Throw", 8000),
    _event("mjave", "Men's Javelin", 9100),
    _event("mdeca", "Men's Decathlon", 8500),  # Combined
    # WOMEN
    _event("w_100", "Women's 100m", 1300),
    _event("w_200", "Women's 200m", 2400),
    _event("w_400", "Women's 400m", 5500),
    _event("w_100h", "Women's 100m Hurdles", 1400),
    _event("w_400h", "Women's 400m Hurdles", 5700),
    _event("w_800", "Women's 800m", 13500),
    _event("w_1500", "Women's 1500m", 27000),
    _event("w_mile", "Women's Mile", 29000),
    _event("w_3000", "Women's 3,000m", 55000),
    _event("w3000h", "Women's 3,000m Steeplechase", 60000),
    _event("w_5000", "Women's 5,000m", 95000),
    _event("w10000", "Women's 10,000m", 190000),
    _event("whmara", "Women's Half Marathon", 320000),
    _event("wmara", "Women's Marathon", 840000),
    _event("w20kw", "Women's 20km Race Walk", 600000),
    _event("w35kw", "Women's 35km Race Walk", 1050000),
    _event("whigh", "Women's High Jump", 200),
    _event("wpole", "Women's Pole Vault", 480),
    _event("wlong", "Women's Long Jump", 720),
    _event("wtrip", "Women's Triple Jump", 1480),
    _event("wshot", "Women's Shot Put", 2000),
    _event("wdisc", "Women's Discus", 7000),
    _event("whamm", "Women's Hammer Throw", 7500),
    _event("wjave", "Women's Javelin", 6500),
)

_EVENTS_BY_CODE: dict[str, Event] = {ev.code: ev for ev in EVENTS}


def sanitize_code(raw: str) -> str:
    return _CODE_RE.sub("", raw or "")


def get_event(code: str) -> Event:
    ev = _EVENTS_BY_CODE.get(sanitize_code(code))
    if ev is None:
        raise UnknownEventError(code)
    return ev


def event_codes() -> list[str]:
    return [ev.code for ev in EVENTS]


def event_url(code: str) -> str:
    ev = get_event(code)
    return f"{ALLTIME_BASE_URL}/{ev.code}ok.htm"
