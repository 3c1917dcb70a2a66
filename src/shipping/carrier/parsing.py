"""Lenient parsing of provider date and time strings.

Indian couriers report local (IST) wall-clock times, usually without an
offset. Unparseable values come back as ``None`` rather than failing the
whole response.
"""

from datetime import date, datetime, time, timedelta, timezone

IST = timezone(timedelta(hours=5, minutes=30), "IST")

_DATETIME_FORMATS = (
    "%d-%b-%Y %H:%M:%S",
    "%d-%b-%Y %H:%M",
    "%d %b %Y %H:%M",
    "%d-%m-%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
)
_DATE_FORMATS = ("%Y-%m-%d", "%d-%b-%Y", "%d %b %Y", "%d-%m-%Y", "%d/%m/%Y")


def parse_datetime(value: str | None) -> datetime | None:
    if not value:
        return None
    text = value.strip()
    parsed = None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        for fmt in _DATETIME_FORMATS + _DATE_FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is None:
        return None
    return parsed if parsed.tzinfo else parsed.replace(tzinfo=IST)


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    text = value.strip()
    for fmt in _DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue
    parsed = parse_datetime(text)
    return parsed.date() if parsed else None


def combine_date_time(day: str | None, clock: str | None) -> datetime | None:
    """Join a separate date and ``HH:MM``/``HHMM`` time as reported by BlueDart."""
    parsed_day = parse_date(day)
    if parsed_day is None:
        return None
    digits = (clock or "").replace(":", "").strip()
    if len(digits) >= 4 and digits[:4].isdigit():
        hour, minute = int(digits[:2]), int(digits[2:4])
        if hour < 24 and minute < 60:
            return datetime.combine(parsed_day, time(hour, minute), tzinfo=IST)
    return datetime.combine(parsed_day, time.min, tzinfo=IST)
