"""
Schedule specs for detection scans.

Accepted forms:

- 5-field crontab: ``minute hour day month day_of_week``
- Quartz 6/7-field: ``second minute hour day month day_of_week [year]``;
  the seconds and year fields are dropped, ``?`` is read as ``*`` and
  weekdays 1-7 (SUN-SAT) are renumbered to 0-6
- Fixed interval: ``every <n>s`` (also ``every <n>m``, ``every <n>h``)

Supported tokens per cron field: '*', '*/n', 'a', 'a/n', 'a,b,c', 'a-b', 'a-b/n'.
When day-of-month and day-of-week are both restricted a day matches if
either does, as in traditional cron.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from zoneinfo import ZoneInfo

DEFAULT_SCHEDULE = "*/5 * * * *"

_EVERY_RE = re.compile(r"^every\s+(\d+(?:\.\d+)?)\s*(s|m|h)$", re.IGNORECASE)
_UNIT_SECONDS = {"s": 1, "m": 60, "h": 3600}
_DOW_NAMES = ["SUN", "MON", "TUE", "WED", "THU", "FRI", "SAT"]
_DOW_NAME_RE = re.compile(r"\b(?:SUN|MON|TUE|WED|THU|FRI|SAT)\b", re.IGNORECASE)
# Quartz numbers weekdays 1=SUN..7=SAT; step values are left alone
_QUARTZ_DOW_RE = re.compile(r"(?<![/\d])(\d+)")


class CronParseError(ValueError):
    pass


@dataclass(frozen=True)
class CronSpec:
    minutes: frozenset[int]
    hours: frozenset[int]
    dom: frozenset[int]  # 1-31
    months: frozenset[int]  # 1-12
    dow: frozenset[int]  # 0-6 (0=Sunday)
    dom_any: bool
    dow_any: bool


@dataclass(frozen=True)
class Schedule:
    """A parsed schedule spec; exactly one of ``cron`` / ``every_s`` is set."""

    expression: str
    cron: CronSpec | None = None
    every_s: float | None = None

    def next_fire(self, now: datetime, timezone: str | None = None) -> datetime:
        """First fire time strictly after ``now``."""
        if self.every_s is not None:
            return now + timedelta(seconds=self.every_s)
        assert self.cron is not None
        tz = ZoneInfo(timezone) if timezone else (now.tzinfo or ZoneInfo("UTC"))
        now = now.replace(tzinfo=tz) if now.tzinfo is None else now.astimezone(tz)
        # Start at next minute boundary
        start = now.replace(second=0, microsecond=0) + timedelta(minutes=1)
        return _find_next_match(self.cron, start)


def parse_schedule(expr: str | None) -> Schedule:
    """
    Parse a schedule spec; empty or missing specs use DEFAULT_SCHEDULE.

    Raises:
        CronParseError: If the spec matches none of the accepted forms
    """
    text = (expr or "").strip() or DEFAULT_SCHEDULE

    match = _EVERY_RE.match(text)
    if match:
        seconds = float(match.group(1)) * _UNIT_SECONDS[match.group(2).lower()]
        if seconds <= 0:
            raise CronParseError(f"interval must be positive: {text!r}")
        return Schedule(expression=text, every_s=seconds)

    parts = [p for p in text.split() if p]
    if len(parts) in (6, 7):
        # Quartz: drop seconds (and year); "?" means "no specific value"
        parts = [("*" if p == "?" else p) for p in parts[1:6]]
        parts[4] = _QUARTZ_DOW_RE.sub(lambda m: str(int(m.group(1)) - 1), parts[4])
    if len(parts) == 5:
        parts[4] = _DOW_NAME_RE.sub(lambda m: str(_DOW_NAMES.index(m.group(0).upper())), parts[4])
    if len(parts) != 5:
        raise CronParseError(f"cron must have 5, 6 or 7 fields, got {len(parts)}: {text!r}")
    return Schedule(expression=text, cron=_parse_cron(parts))


def next_fire_time(expr: str | None, *, now: datetime, timezone: str | None = None) -> datetime:
    """Compute the next fire time for a schedule spec."""
    return parse_schedule(expr).next_fire(now, timezone)


def _find_next_match(spec: CronSpec, cursor: datetime) -> datetime:
    # 370 days covers the leap year edge
    limit = cursor + timedelta(days=370)
    cur = cursor

    while cur <= limit:
        if cur.month not in spec.months:
            cur = _ceil_month(cur)
            continue
        if not _dom_or_dow_match(spec, cur):
            cur = (cur + timedelta(days=1)).replace(hour=0, minute=0)
            continue
        if cur.hour not in spec.hours:
            cur = (cur + timedelta(hours=1)).replace(minute=0)
            continue
        if cur.minute not in spec.minutes:
            cur = cur + timedelta(minutes=1)
            continue
        return cur

    raise CronParseError("cron expression produced no next fire time within safety window")


def _dom_or_dow_match(spec: CronSpec, dt: datetime) -> bool:
    dom_match = dt.day in spec.dom
    # Python: Monday=0..Sunday=6; cron: Sunday=0..Saturday=6
    dow_match = (dt.weekday() + 1) % 7 in spec.dow

    if spec.dom_any and spec.dow_any:
        return True
    if spec.dom_any:
        return dow_match
    if spec.dow_any:
        return dom_match
    return dom_match or dow_match


def _ceil_month(dt: datetime) -> datetime:
    return (dt.replace(day=1, hour=0, minute=0) + timedelta(days=32)).replace(day=1)


def _parse_cron(parts: list[str]) -> CronSpec:
    return CronSpec(
        minutes=_parse_field(parts[0], min_v=0, max_v=59),
        hours=_parse_field(parts[1], min_v=0, max_v=23),
        dom=_parse_field(parts[2], min_v=1, max_v=31),
        months=_parse_field(parts[3], min_v=1, max_v=12),
        dow=_parse_field(parts[4], min_v=0, max_v=6, allow_7_as_0=True),
        dom_any=parts[2] == "*",
        dow_any=parts[4] == "*",
    )


def _parse_field(token: str, *, min_v: int, max_v: int, allow_7_as_0: bool = False) -> frozenset[int]:
    token = token.strip()
    if token == "*":
        return frozenset(range(min_v, max_v + 1))

    values: set[int] = set()
    for part in token.split(","):
        part = part.strip()
        if not part:
            continue
        step = 1
        if "/" in part:
            part, step_s = (s.strip() for s in part.split("/", 1))
            if not step_s.isdigit() or int(step_s) == 0:
                raise CronParseError(f"invalid step in field: {token!r}")
            step = int(step_s)

        if part == "*":
            values.update(range(min_v, max_v + 1, step))
            continue

        if "-" in part:
            a_s, b_s = (s.strip() for s in part.split("-", 1))
            if not (a_s.isdigit() and b_s.isdigit()):
                raise CronParseError(f"invalid range in field: {token!r}")
            a, b = int(a_s), int(b_s)
            if allow_7_as_0 and b == 7:
                # "5-7" is Fri, Sat, Sun
                values.update(range(a, max_v + 1, step))
                values.add(0)
                continue
            if a > b:
                raise CronParseError(f"range start > end in field: {token!r}")
            if a < min_v or b > max_v:
                raise CronParseError(f"range out of bounds in field: {token!r}")
            values.update(range(a, b + 1, step))
            continue

        if not part.isdigit():
            raise CronParseError(f"invalid value in field: {token!r}")
        v = int(part)
        if step > 1:
            # Quartz "a/n": from a to the field maximum
            if v < min_v or v > max_v:
                raise CronParseError(f"value out of bounds in field: {token!r}")
            values.update(range(v, max_v + 1, step))
            continue
        if allow_7_as_0 and v == 7:
            v = 0
        if v < min_v or v > max_v:
            raise CronParseError(f"value out of bounds in field: {token!r}")
        values.add(v)

    if not values:
        raise CronParseError(f"empty field: {token!r}")
    return frozenset(values)
