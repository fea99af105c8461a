"""
Daily leaderboard date rolling.

The candidate list comes from a daily leaderboard page whose URL embeds the
date (`/leaderboard/daily/<Y>/<M>/<D>/all`). Each scheduled run advances the
configured `schedule.target_url` by one day.
"""

from __future__ import annotations

import re
from datetime import date, timedelta
from pathlib import Path
from typing import Union

import yaml


LEADERBOARD_RE = re.compile(r"(/leaderboard/daily/)(\d{4})/(\d{1,2})/(\d{1,2})(/all)")


class ScheduleError(ValueError):
    pass


def next_leaderboard_url(url: str) -> str:
    """Return url with its leaderboard date moved forward by one day (no zero padding)."""
    m = LEADERBOARD_RE.search(url or "")
    if not m:
        raise ScheduleError(f"not a daily leaderboard URL: {url!r}")
    try:
        current = date(int(m.group(2)), int(m.group(3)), int(m.group(4)))
    except ValueError as e:
        raise ScheduleError(f"invalid date in {url!r}: {e}") from e
    nxt = current + timedelta(days=1)
    replacement = f"{m.group(1)}{nxt.year}/{nxt.month}/{nxt.day}{m.group(5)}"
    return url[: m.start()] + replacement + url[m.end():]


def advance_target_url(config_path: Union[str, Path]) -> str:
    """Rewrite `schedule.target_url` in the YAML config to the next day; return the new URL.

    Only the URL text is replaced, so comments and layout of the file survive.
    """
    p = Path(config_path)
    text = p.read_text(encoding="utf-8")
    cfg = yaml.safe_load(text) or {}
    schedule = cfg.get("schedule") if isinstance(cfg, dict) else None
    if not isinstance(schedule, dict) or not schedule.get("target_url"):
        raise ScheduleError(f"schedule.target_url not found in {p}")
    old_url = str(schedule["target_url"])
    new_url = next_leaderboard_url(old_url)
    line = re.search(r"^[ \t]*target_url:.*" + re.escape(old_url), text, re.MULTILINE)
    if not line:
        raise ScheduleError(f"schedule.target_url is not a plain scalar in {p}")
    start = line.end() - len(old_url)
    p.write_text(text[:start] + new_url + text[line.end():], encoding="utf-8")
    print(f"Updated target_url to use date: {new_url}")
    return new_url
