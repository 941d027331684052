"""
Export orchestration: turn (mode, from, to) into an ordered list of pages.

Units (days, weeks, months) are rendered one at a time and in order. A unit
whose entries cannot be fetched becomes a placeholder page; only a font
failure aborts the whole export.
"""
from dataclasses import replace
from datetime import date, datetime

from loguru import logger

import daypat.settings as settings
from daypat.errors import EntryFetchError, ExportCancelled
from daypat.layout import PAGE, WEEK, content_height, get_page_size, week_card_metrics
from daypat.pagination import measure_cards, paginate
from daypat.renderers import (
    PageImage, render_day_page, render_favorites_pages, render_month_page,
    render_placeholder_page, render_week_page, to_page_image,
)
from daypat.utils import parse_iso_date

EXPORT_MODES = ("day", "week", "month", "favorites")


def _parse_dates(from_date, to_date) -> tuple[date, date]:
    start = from_date if isinstance(from_date, date) else parse_iso_date(str(from_date))
    end = to_date if isinstance(to_date, date) else parse_iso_date(str(to_date))
    if start > end:
        raise ValueError(f"Start date {start} after end date {end}")
    return start, end


class _Run:
    """State of one export call: collaborators, page size and the cancellation hook."""

    def __init__(self, provider, fonts, log, should_cancel, export_date: date):
        self.provider = provider
        self.fonts = fonts
        self.log = log
        self.should_cancel = should_cancel
        self.export_date = export_date
        self.page_size = get_page_size()
        self.pages: list[PageImage] = []

    def emit(self, canvas, page_number: int = 1, total_pages: int = 1):
        if self.should_cancel and self.should_cancel():
            self.log.warning("Export cancelled after {} page(s)", len(self.pages))
            raise ExportCancelled(f"cancelled after {len(self.pages)} page(s)")
        self.pages.append(to_page_image(canvas, page_number, total_pages))

    def placeholder(self, error: EntryFetchError, message: str = "No entry for this date"):
        self.log.warning("{}; using a placeholder page", error)
        self.emit(render_placeholder_page(self.fonts, self.export_date, message, error.unit, self.page_size))

    # Modes

    def days(self, start: date, end: date):
        dates = self.provider.dates_with_content(start, end)
        self.log.info("Day export: {} date(s) with content", len(dates))
        stamp = self.provider.materializer.materialize(settings.STAMP_IMAGE_PATH) if dates else None
        for d in dates:
            try:
                entry = self.provider.fetch_day(d)
            except EntryFetchError as e:
                self.placeholder(e)
                continue
            self.log.debug("Rendering day {}", d)
            self.emit(render_day_page(entry, self.fonts, stamp, self.page_size))

    def weeks(self, start: date, end: date):
        anchors = self.provider.weeks_with_content(start, end)
        self.log.info("Week export: {} week(s) with content", len(anchors))
        metrics = week_card_metrics()
        available = content_height(self.page_size[1])
        caption_width = self.page_size[0] - PAGE["margin"] * 2 - WEEK["date_column_width"] - WEEK["card_padding"] * 3
        caption_font = self.fonts.font("medium", WEEK["caption_size"])

        for monday in anchors:
            try:
                entries = self.provider.fetch_week(monday)
            except EntryFetchError as e:
                self.placeholder(e, "No entries for this week")
                continue
            cards = measure_cards(entries, caption_font, metrics, caption_width)
            pages = paginate(cards, available, metrics)
            self.log.debug("Week of {}: {} card(s) on {} page(s)", monday, len(cards), len(pages))
            for i, slices in enumerate(pages, start=1):
                self.emit(
                    render_week_page(slices, monday, self.fonts, metrics, i, len(pages),
                                     self.export_date, self.page_size),
                    i, len(pages),
                )

    def months(self, start: date, end: date):
        months = self.provider.months_with_content(start, end)
        self.log.info("Month export: {} month(s) with content", len(months))
        for year, month in months:
            try:
                entries = self.provider.fetch_month(year, month)
            except EntryFetchError as e:
                self.placeholder(e, "No entries for this month")
                continue
            self.emit(render_month_page(year, month, entries, self.fonts, self.export_date, self.page_size))

    def favorites(self):
        entries = self.provider.fetch_favorites()
        self.log.info("Favorites export: {} liked entr{}", len(entries), "y" if len(entries) == 1 else "ies")
        canvases = render_favorites_pages(entries, self.fonts, self.export_date, self.page_size)
        for i, canvas in enumerate(canvases, start=1):
            self.emit(canvas, i, len(canvases))


def build_pages(mode: str, from_date, to_date, *, provider, fonts, log=logger,
                should_cancel=None, export_date: date | None = None) -> list[PageImage]:
    """
    Render every page for `mode` over the inclusive [from_date, to_date]
    range. Dates are ISO strings or date objects; favorites ignore them.
    Returns [] when nothing in the range has content.
    """
    mode = (mode or "").strip().lower()
    if mode not in EXPORT_MODES:
        raise ValueError(f"Unknown export mode {mode!r}; expected one of {', '.join(EXPORT_MODES)}")
    if mode != "favorites":
        start, end = _parse_dates(from_date, to_date)

    fonts.ready()

    export_date = export_date or datetime.now(tz=settings.TZ_LOCAL).date()
    run = _Run(provider, fonts, log, should_cancel, export_date)
    log.info("Export {} from {} to {}", mode, from_date, to_date)

    if mode == "day":
        run.days(start, end)
    elif mode == "week":
        run.weeks(start, end)
    elif mode == "month":
        run.months(start, end)
    else:
        run.favorites()

    total = len(run.pages)
    pages = [replace(p, page_number=i, total_pages=total) for i, p in enumerate(run.pages, start=1)]
    log.info("Export {} produced {} page(s)", mode, total)
    return pages

