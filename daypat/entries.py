"""
Entry Data Provider.

Rows come back from the entry store loosely typed; everything past this
module sees validated Entry and Sticker values with their images already
materialized.
"""
from dataclasses import dataclass, field
from datetime import date, timedelta
import calendar
import json

from loguru import logger

from daypat.errors import EntryFetchError, StoreError
from daypat.materializer import ImageMaterializer, MaterializedImage
from daypat.utils import month_anchors, parse_iso_date, week_anchors

RANGE_COLUMNS = ("entry_date", "praise", "photo_path", "sticker_state")
DAY_COLUMNS = ("entry_date", "praise", "photo_path", "sticker_state", "is_liked", "created_at")
FAVORITE_COLUMNS = ("entry_date", "praise", "photo_path", "is_liked", "created_at")


@dataclass
class Sticker:
    src: str
    x: float
    y: float
    scale: float = 1.0
    rotation: float = 0.0
    kind: str = "asset"                 # "asset" or "emoji"
    image: MaterializedImage | None = None


@dataclass
class Entry:
    date: date
    note: str | None = None
    photo_path: str | None = None
    stickers: list[Sticker] = field(default_factory=list)
    is_liked: bool = False
    created_at: str | None = None
    photo: MaterializedImage | None = None

    @property
    def has_content(self) -> bool:
        return has_content(self)


def has_content(entry: Entry) -> bool:
    """A note with visible characters, a photo reference, or at least one sticker."""
    return bool((entry.note or "").strip()) or bool(entry.photo_path) or bool(entry.stickers)


# Stickers

def _number(value) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


def _clamp(v: float) -> float:
    return min(max(v, 0.0), 1.0)


def _parse_asset(raw: dict) -> Sticker | None:
    src = raw.get("src")
    x, y = _number(raw.get("x")), _number(raw.get("y"))
    if not isinstance(src, str) or not src.strip() or x is None or y is None:
        return None
    scale = _number(raw.get("scale"))
    rotation = _number(raw.get("rotation"))
    # a bare character in `src` is an emoji saved through the asset schema
    kind = "asset" if any(c in src for c in "/.:") else "emoji"
    return Sticker(
        src=src,
        x=_clamp(x),
        y=_clamp(y),
        scale=scale if scale and scale > 0 else 1.0,
        rotation=rotation or 0.0,
        kind=kind,
    )


def _parse_emoji(raw: dict) -> Sticker | None:
    emoji = raw.get("emoji")
    x, y = _number(raw.get("x")), _number(raw.get("y"))
    if not isinstance(emoji, str) or not emoji.strip() or x is None or y is None:
        return None
    scale = _number(raw.get("scale"))
    return Sticker(
        src=emoji,
        x=_clamp(x),
        y=_clamp(y),
        scale=scale if scale and scale > 0 else 1.0,
        rotation=_number(raw.get("rotate")) or 0.0,
        kind="emoji",
    )


def parse_stickers(state, log=logger) -> list[Sticker]:
    """
    Parse the sticker column. It holds either {"stickers": [...]} or, in
    older rows, the bare list; it may also arrive as a JSON string. Each
    record is recognized by its keys: `emoji` marks the emoji schema
    (ordered by `z`), `src` the asset schema. Anything else is dropped.
    """
    if isinstance(state, str):
        try:
            state = json.loads(state)
        except ValueError:
            log.warning("Unreadable sticker_state, ignoring: {!r}", state[:40])
            return []
    if isinstance(state, dict):
        state = state.get("stickers")
    if not isinstance(state, list):
        return []

    parsed: list[tuple[float, Sticker]] = []
    for i, raw in enumerate(state):
        sticker = None
        z = float(i)
        if isinstance(raw, dict):
            if "emoji" in raw:
                sticker = _parse_emoji(raw)
                z = _number(raw.get("z"))
                z = float(i) if z is None else z
            elif "src" in raw:
                sticker = _parse_asset(raw)
        if sticker is None:
            log.warning("Dropping malformed sticker #{}: {!r}", i, raw)
            continue
        parsed.append((z, sticker))

    parsed.sort(key=lambda pair: pair[0])
    return [s for _, s in parsed]


def entry_from_row(row: dict, log=logger) -> Entry | None:
    try:
        day = parse_iso_date(str(row.get("entry_date", ""))[:10])
    except ValueError:
        log.warning("Dropping row with bad entry_date: {!r}", row.get("entry_date"))
        return None
    note = row.get("praise")
    photo_path = row.get("photo_path")
    created_at = row.get("created_at")
    return Entry(
        date=day,
        note=note if isinstance(note, str) else None,
        photo_path=photo_path if isinstance(photo_path, str) and photo_path else None,
        stickers=parse_stickers(row.get("sticker_state"), log),
        is_liked=bool(row.get("is_liked")),
        created_at=str(created_at) if created_at else None,
    )


class EntryDataProvider:

    def __init__(self, store, materializer: ImageMaterializer, log=logger):
        self.store = store
        self.materializer = materializer
        self.log = log

    # Classification

    def fetch_range(self, start: date, end: date) -> set[date]:
        """Dates in [start, end] holding displayable content. Store errors give an empty set."""
        try:
            rows = self.store.select(
                RANGE_COLUMNS,
                date_from=start.isoformat(),
                date_to=end.isoformat(),
            )
        except StoreError as e:
            self.log.error("Range query {}..{} failed: {}", start, end, e)
            return set()

        found = set()
        for row in rows:
            entry = entry_from_row(row, self.log)
            if entry and start <= entry.date <= end and has_content(entry):
                found.add(entry.date)
        self.log.debug("{} content dates between {} and {}", len(found), start, end)
        return found

    def dates_with_content(self, start: date, end: date) -> list[date]:
        return sorted(self.fetch_range(start, end))

    def weeks_with_content(self, start: date, end: date) -> list[date]:
        dates = self.fetch_range(start, end)
        return [m for m in week_anchors(start, end)
                if any(m + timedelta(days=i) in dates for i in range(7))]

    def months_with_content(self, start: date, end: date) -> list[tuple[int, int]]:
        dates = self.fetch_range(start, end)
        months = {(d.year, d.month) for d in dates}
        return [ym for ym in month_anchors(start, end) if ym in months]

    # Per-mode fetches

    def _query(self, unit: str, columns, **filters) -> list[Entry]:
        try:
            rows = self.store.select(columns, **filters)
        except StoreError as e:
            raise EntryFetchError(unit, str(e)) from e
        entries = [e for e in (entry_from_row(r, self.log) for r in rows) if e]
        return sorted(entries, key=lambda e: e.date)

    def _materialize(self, entry: Entry, stickers: bool = False) -> Entry:
        entry.photo = self.materializer.materialize(entry.photo_path)
        if stickers:
            for sticker in entry.stickers:
                if sticker.kind == "asset":
                    sticker.image = self.materializer.materialize(sticker.src)
        return entry

    def fetch_day(self, day: date) -> Entry:
        unit = day.isoformat()
        entries = self._query(unit, DAY_COLUMNS, date=unit)
        if not entries:
            raise EntryFetchError(unit, "no entry")
        return self._materialize(entries[0], stickers=True)

    def fetch_week(self, monday: date) -> list[Entry]:
        """Entries of the Monday-to-Sunday week, ascending; only content-bearing days."""
        sunday = monday + timedelta(days=6)
        entries = self._query(
            f"week of {monday.isoformat()}", DAY_COLUMNS,
            date_from=monday.isoformat(), date_to=sunday.isoformat(),
        )
        return [self._materialize(e) for e in entries if has_content(e)]

    def fetch_month(self, year: int, month: int) -> dict[date, Entry]:
        first = date(year, month, 1)
        last = first.replace(day=calendar.monthrange(year, month)[1])
        entries = self._query(
            f"{year:04d}-{month:02d}", DAY_COLUMNS,
            date_from=first.isoformat(), date_to=last.isoformat(),
        )
        return {e.date: self._materialize(e) for e in entries if has_content(e)}

    def fetch_favorites(self) -> list[Entry]:
        """Liked entries, newest first. Any date range is ignored on purpose."""
        try:
            rows = self.store.select(FAVORITE_COLUMNS, liked=True, descending=True)
        except StoreError as e:
            self.log.error("Favorites query failed: {}", e)
            return []
        entries = [e for e in (entry_from_row(r, self.log) for r in rows) if e and e.is_liked]
        entries.sort(key=lambda e: e.date, reverse=True)
        return [self._materialize(e) for e in entries]
