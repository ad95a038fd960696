"""
Shared fixtures: a trimmed-down alltime-athletics ranking page and record factories.
"""
from __future__ import annotations

import pytest

from alltime.normalize import normalize_records
from alltime.parse import RawRecord


SAMPLE_PAGE = """<HTML>
<HEAD><TITLE>100 metres all-time</TITLE></HEAD>
<BODY BGCOLOR="#FFFFFF">
<H2>Men 100 metres</H2>
<PRE>
==================================================================================================
+ = legal wind, # = hand timing
     1      9.58    +0.9  Usain Bolt                     JAM    21.08.86    1        Berlin                          16.08.2009
     2      9.63    +1.5  Usain Bolt                     JAM    21.08.86    1        London                          05.08.2012
     3      9.69    -0.1  Tyson Gay                      USA    09.08.82    1        Shanghai                        20.09.2009

     4      9.72    +0.2  Asafa Powell                   JAM    23.11.82    1rA      Lausanne                        02.09.2008
     5      9.74    +1.7  Justin Gatlin                  USA    10.02.82    1        Doha                            15.05.2015
     6      9.76    +0.6  Jos&eacute; Mart&iacute;nez    ESP    04.03.01    1        Berlin                          20.06.2021
* Intermediate times in longer races
     7      9.78    +0.9  Nesta Carter                   JAM    11.10.85    1        Rieti                           29.08.2010
Notes: 60 metres Indoor marks are not included
- end of list -
</PRE>
</BODY>
<P>trailer outside the body     99     1.00    +0.0  Not Included   XXX  01.01.01  1  Nowhere  01.01.2001</P>
</HTML>
"""


@pytest.fixture
def sample_page() -> str:
    return SAMPLE_PAGE


@pytest.fixture
def make_raw():
    def _make(**overrides: str) -> RawRecord:
        values = {
            "rank": "1",
            "time": "9.58",
            "wind": "+0.9",
            "athlete": "Usain Bolt",
            "country": "JAM",
            "birth_date": "21.08.86",
            "position": "1",
            "location": "Berlin",
            "date": "16.08.2009",
        }
        values.update(overrides)
        return RawRecord(**values)

    return _make


@pytest.fixture
def marathon_records(make_raw):
    raws = [
        make_raw(rank="1", time="2:00:35", wind="", athlete="Kelvin Kiptum", country="KEN", birth_date="02.12.99", location="Chicago", date="08.10.2023"),
        make_raw(rank="2", time="2:01:09", wind="", athlete="Eliud Kipchoge", country="KEN", birth_date="05.11.84", location="Berlin", date="25.09.2022"),
        make_raw(rank="3", time="2:01:25", wind="", athlete="Kelvin Kiptum", country="KEN", birth_date="02.12.99", location="London", date="23.04.2023"),
        make_raw(rank="4", time="2:01:39", wind="", athlete="Eliud Kipchoge", country="KEN", birth_date="05.11.84", location="Berlin", date="16.09.2018"),
        make_raw(rank="5", time="2:01:41", wind="", athlete="Kenenisa Bekele", country="ETH", birth_date="13.06.82", location="Berlin", date="29.09.2019"),
    ]
    return normalize_records(raws)
