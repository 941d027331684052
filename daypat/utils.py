from datetime import datetime, timedelta, date
import calendar, re
from loguru import logger
import webcolors
from dateutil.relativedelta import relativedelta


def css_color_to_hex(name_or_hex: str) -> str:
    """
    Convert a CSS color name, functional gray(%), or hex code to a 6-digit hex code.

    - Leaves valid hex codes unchanged.
    - Parses CSS4 gray(%) syntax.
    - Grayscale class names gray0–gray15, with aliases for black and white.
    - Falls back to standard CSS color names via webcolors.
    """
    if name_or_hex.startswith("#"):
        return name_or_hex

    lower = name_or_hex.lower().strip()

    m_pct = re.fullmatch(r'gray\(\s*([0-9]+(?:\.[0-9]+)?)%\s*\)', lower)
    if m_pct:
        level = round(255 * float(m_pct.group(1)) / 100)
        return f"#{level:02X}{level:02X}{level:02X}"

    if lower in ('black', 'gray0'):
        return '#000000'
    if lower in ('white', 'gray15'):
        return '#FFFFFF'

    m = re.fullmatch(r'gray([0-9]|1[0-5])', lower)
    if m:
        level = int(m.group(1)) * 17
        return f"#{level:02X}{level:02X}{level:02X}"

    try:
        return webcolors.name_to_hex(name_or_hex)
    except ValueError:
        logger.error("Unknown CSS color '{}', passing through.", name_or_hex)
        return name_or_hex


def rgba(color: str, alpha: int = 255) -> tuple[int, int, int, int]:
    """Any color accepted by css_color_to_hex as a Pillow RGBA tuple."""
    rgb = webcolors.hex_to_rgb(css_color_to_hex(color))
    return (rgb.red, rgb.green, rgb.blue, alpha)


def checked_color(color: str, default: str) -> str:
    """Return `color` if it resolves to an RGB value, otherwise `default`."""
    try:
        rgba(color)
    except ValueError:
        logger.error("Unusable color '{}', falling back to {}", color, default)
        return default
    return color


# Dates

def parse_iso_date(s: str) -> date:
    return datetime.strptime(s.strip(), "%Y-%m-%d").date()


def monday_of(d: date) -> date:
    return d - timedelta(days=d.weekday())


def week_anchors(start: date, end: date) -> list[date]:
    """Mondays from the one on or before `start` through `end`."""
    anchors = []
    current = monday_of(start)
    while current <= end:
        anchors.append(current)
        current += timedelta(days=7)
    return anchors


def month_anchors(start: date, end: date) -> list[tuple[int, int]]:
    """(year, month) pairs touched by the inclusive range."""
    months = []
    current = start.replace(day=1)
    while current <= end:
        months.append((current.year, current.month))
        current += relativedelta(months=1)
    return months


def month_cells(year: int, month: int) -> list[date]:
    """
    Calendar cells for a Monday-first month grid: trailing days of the
    previous month, the month itself, then leading days of the next month
    up to a whole number of weeks.
    """
    cal = calendar.Calendar(firstweekday=calendar.MONDAY)
    return list(cal.itermonthdates(year, month))


_RELATIVE = re.compile(r'(\d+)\s*(day|week|month)s?')


def parse_date_range(s: str, tzinfo) -> tuple[date, date]:
    """
    Inclusive (start, end) for an EXPORT_DATE_RANGE value: today, this week,
    this month, "N days|weeks|months", "YYYY-MM-DD:YYYY-MM-DD",
    "YYYY-MM-DD to YYYY-MM-DD" or a single date. Weeks start on Monday.
    """
    s     = s.strip().strip('"').strip("'").lower()
    today = datetime.now(tz=tzinfo).date()

    if s == "today":
        s = "1 day"
    elif s == "this week":
        s = "1 week"
    elif s == "this month":
        s = "1 month"

    if m := _RELATIVE.fullmatch(s):
        count, unit = int(m.group(1)), m.group(2)
        if count < 1:
            raise ValueError(f"Range {s!r} covers no days")
        if unit == "day":
            start, end = today, today + timedelta(days=count - 1)
        elif unit == "week":
            start = monday_of(today)
            end   = start + timedelta(weeks=count, days=-1)
        else:
            start = today.replace(day=1)
            end   = start + relativedelta(months=count, days=-1)
        return start, end

    parts = re.split(r"\s*:\s*|\s+to\s+", s, maxsplit=1)
    start = parse_iso_date(parts[0])
    end   = parse_iso_date(parts[-1])
    if start > end:
        raise ValueError(f"Start date {start} after end date {end}")
    return start, end


def week_number(monday: date) -> int:
    """
    Week of the year for a Monday-start week, counting the week that holds
    January 1st as week 1 (so a week straddling New Year is week 1).
    """
    sunday = monday + timedelta(days=6)
    if sunday.year > monday.year:
        return 1
    first = monday_of(date(monday.year, 1, 1))
    return (monday - first).days // 7 + 1


def format_short(d: date) -> str:
    """'Mar 3, 2025'"""
    return f"{d:%b} {d.day}, {d.year}"
