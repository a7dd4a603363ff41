# medapp/utils/clock.py
from __future__ import annotations

import re

_TIME_RE = re.compile(r"^\d{2}:\d{2}$")

def valid_hhmm(hhmm: str) -> bool:
    if not isinstance(hhmm, str) or not _TIME_RE.match(hhmm):
        return False
    h, m = map(int, hhmm.split(":"))
    return 0 <= h <= 23 and 0 <= m <= 59

def hhmm_to_minutes(hhmm: str) -> int:
    h, m = map(int, hhmm.split(":"))
    return h * 60 + m

def hour_to_hhmm(hour: int) -> str:
    return f"{hour:02d}:00"
