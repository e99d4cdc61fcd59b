"""Human-readable descriptions of five-field cron expressions."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

_DAY_NAMES = (
    "Sunday",
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
)
_MONTH_NAMES = (
    "January",
    "February",
    "March",
    "April",
    "May",
    "June",
    "July",
    "August",
    "September",
    "October",
    "November",
    "December",
)


class CronSyntaxError(ValueError):
    """Raised when a cron expression cannot be parsed."""


@dataclass(frozen=True)
class _Field:
    name: str
    low: int
    high: int
    aliases: dict = field(default_factory=dict)


_MINUTE = _Field("minute", 0, 59)
_HOUR = _Field("hour", 0, 23)
_DAY_OF_MONTH = _Field("day of month", 1, 31)
_MONTH = _Field(
    "month", 1, 12, {name[:3].upper(): i for i, name in enumerate(_MONTH_NAMES, 1)}
)
_DAY_OF_WEEK = _Field(
    "day of week", 0, 7, {name[:3].upper(): i for i, name in enumerate(_DAY_NAMES)}
)

Span = tuple[int, int]


@dataclass(frozen=True)
class _Segment:
    kind: str  # "any", "single", "range", "list" or "step"
    spans: tuple[Span, ...] = ()
    step: int = 0


def _parse_value(text: str, fld: _Field) -> int:
    alias = fld.aliases.get(text.upper())
    if alias is not None:
        return alias
    if not (text.isascii() and text.isdigit()):
        raise CronSyntaxError(f"invalid {fld.name} value {text!r}")
    value = int(text)
    if not fld.low <= value <= fld.high:
        raise CronSyntaxError(
            f"{fld.name} value {value} out of range {fld.low}-{fld.high}"
        )
    return value


def _parse_span(text: str, fld: _Field) -> Span:
    if "/" in text:
        raise CronSyntaxError(f"unsupported {fld.name} item {text!r}")
    low_text, dash, high_text = text.partition("-")
    low = _parse_value(low_text, fld)
    high = _parse_value(high_text, fld) if dash else low
    if low > high:
        raise CronSyntaxError(f"{fld.name} range {text!r} runs backwards")
    return low, high


def _parse_segment(text: str, fld: _Field) -> _Segment:
    if text in ("*", "?"):
        return _Segment("any")
    if "," in text:
        return _Segment("list", tuple(_parse_span(part, fld) for part in text.split(",")))
    base, slash, step_text = text.partition("/")
    if slash:
        if not (step_text.isascii() and step_text.isdigit()) or int(step_text) == 0:
            raise CronSyntaxError(f"invalid {fld.name} step {step_text!r}")
        step = int(step_text)
        if base in ("*", "?"):
            return _Segment("step", step=step)
        span = _parse_span(base, fld)
        if "-" not in base and span[0] == fld.low:
            return _Segment("step", step=step)
        return _Segment("step", (span,), step)
    span = _parse_span(text, fld)
    return _Segment("range" if "-" in text else "single", (span,))


def _join(items: list[str]) -> str:
    if len(items) <= 2:
        return " and ".join(items)
    return ", ".join(items[:-1]) + ", and " + items[-1]


def _span_text(span: Span, render: Callable[[int], str]) -> str:
    low, high = span
    if low == high:
        return render(low)
    return f"{render(low)} through {render(high)}"


def _every(step: int, unit: str) -> str:
    return f"every {unit}" if step == 1 else f"every {step} {unit}s"


def _clock(hour: int, minute: int) -> str:
    suffix = "AM" if hour < 12 else "PM"
    return f"{hour % 12 or 12:02d}:{minute:02d} {suffix}"


def _day_name(value: int) -> str:
    return _DAY_NAMES[value % 7]


def _month_name(value: int) -> str:
    return _MONTH_NAMES[value - 1]


def _describe_minutes(seg: _Segment) -> str:
    if seg.kind == "any":
        return "every minute"
    if seg.kind == "single":
        return f"at {seg.spans[0][0]} minutes past the hour"
    if seg.kind == "range":
        low, high = seg.spans[0]
        return f"minutes {low} through {high} past the hour"
    if seg.kind == "list":
        return "at " + _join([_span_text(s, str) for s in seg.spans]) + " minutes past the hour"
    text = _every(seg.step, "minute")
    if seg.spans:
        low, high = seg.spans[0]
        if low == high:
            return f"{text}, starting at {low} minutes past the hour"
        return f"{text}, minutes {low} through {high} past the hour"
    return text


def _describe_hours(seg: _Segment) -> str | None:
    if seg.kind == "any":
        return None
    if seg.kind in ("single", "range"):
        low, high = seg.spans[0]
        return f"between {_clock(low, 0)} and {_clock(high, 59)}"
    if seg.kind == "list":
        return "at " + _join([_span_text(s, lambda h: _clock(h, 0)) for s in seg.spans])
    text = _every(seg.step, "hour")
    if seg.spans:
        low, high = seg.spans[0]
        if low == high:
            return f"{text}, starting at {_clock(low, 0)}"
        return f"{text}, between {_clock(low, 0)} and {_clock(high, 59)}"
    return text


def _describe_time(minute: _Segment, hour: _Segment) -> str:
    fixed_hours = hour.kind in ("single", "list") and all(
        low == high for low, high in hour.spans
    )
    if minute.kind == "single" and fixed_hours:
        at_minute = minute.spans[0][0]
        return "at " + _join([_clock(h, at_minute) for h, _ in hour.spans])
    parts = [_describe_minutes(minute)]
    hours = _describe_hours(hour)
    if hours:
        parts.append(hours)
    return ", ".join(parts)


def _describe_day_of_month(seg: _Segment) -> str | None:
    if seg.kind == "any":
        return None
    if seg.kind == "single":
        return f"on day {seg.spans[0][0]} of the month"
    if seg.kind == "range":
        low, high = seg.spans[0]
        return f"between day {low} and {high} of the month"
    if seg.kind == "list":
        return "on day " + _join([_span_text(s, str) for s in seg.spans]) + " of the month"
    text = _every(seg.step, "day")
    if seg.spans:
        low, high = seg.spans[0]
        if low == high:
            return f"{text}, starting on day {low} of the month"
        return f"{text}, between day {low} and {high} of the month"
    return text


def _describe_named(
    seg: _Segment, render: Callable[[int], str], unit: str, prefix: str, start_word: str
) -> str | None:
    if seg.kind == "any":
        return None
    if seg.kind == "single":
        return f"{prefix} {render(seg.spans[0][0])}"
    if seg.kind == "range":
        return _span_text(seg.spans[0], render)
    if seg.kind == "list":
        return f"{prefix} " + _join([_span_text(s, render) for s in seg.spans])
    text = _every(seg.step, unit)
    if seg.spans:
        low, high = seg.spans[0]
        if low == high:
            return f"{text}, starting {start_word} {render(low)}"
        return f"{text}, {_span_text((low, high), render)}"
    return text


def _describe(expr: str) -> str:
    fields = expr.split()
    if len(fields) != 5:
        raise CronSyntaxError(f"expected 5 fields, got {len(fields)}")
    minute, hour, day_of_month, month, day_of_week = (
        _parse_segment(text, fld)
        for text, fld in zip(fields, (_MINUTE, _HOUR, _DAY_OF_MONTH, _MONTH, _DAY_OF_WEEK))
    )
    weekday = _describe_named(day_of_week, _day_name, "day", "only on", "on")
    if weekday is not None and day_of_week.kind == "step":
        weekday = weekday.replace("days", "days of the week", 1).replace(
            "every day", "every day of the week", 1
        )
    parts = [
        _describe_time(minute, hour),
        _describe_day_of_month(day_of_month),
        weekday,
        _describe_named(month, _month_name, "month", "only in", "in"),
    ]
    text = ", ".join(part for part in parts if part)
    return text[0].upper() + text[1:]


def describe_cron(expr: str) -> str:
    """Describe a cron expression in English, or return it unchanged if it is invalid."""
    try:
        return _describe(expr)
    except CronSyntaxError:
        return expr