from dataclasses import dataclass

from loguru import logger

import daypat.settings as settings

# A4 at 150 DPI
FALLBACK_PAGE_SIZE = (1240, 1754)

PAGE = {
    "margin": 60,
    "header_height": 100,
    "footer_reserve": 40,
}

# Day polaroid, drawn at 1x then scaled onto the page
POLAROID = {
    "width": 340,
    "height": 440,
    "padding": 16,
    "photo": (16, 16, 308, 280),          # x, y, width, height
    "comment": {
        "box": (16, 314, 308, 80),
        "font_size": 14,
        "line_height": 1.625,
        "max_lines": 4,
        "baseline_adjust": 2,
    },
    "footer_y": 424,
    "slogan_size": 11,
    "heart_size": 16,
    "watermark": (28, 28, 20),             # x, y, font size
    "sticker_size": 80,
    "emoji_size": 30,
    "stamp_size": 70,
    "stamp_margin": 10,
    "max_scale": 2.5,
}

WEEK = {
    "card_padding": 20,
    "photo_height": 200,
    "date_column_width": 80,
    "card_gap": 24,
    "card_radius": 16,
    "photo_radius": 12,
    "min_card_height": 120,
    "day_name_size": 14,
    "day_number_size": 36,
    "caption_size": 18,
    "line_height": 1.5,
    "continuation_gap": 8,
}

MONTH = {
    "grid_gap": 2,
    "cell_padding": 4,
    "header_height": 80,
    "weekday_height": 40,
    "title_size": 36,
    "weekday_size": 14,
    "day_number_size": 14,
}

FAVORITES = {
    "columns": 2,
    "card_gap": 24,
    "card_padding": 16,
    "photo_height": 320,
    "caption_height": 80,
    "date_size": 12,
    "caption_size": 14,
    "line_height": 1.5,
    "heart_size": 24,
    "rotations": (-2, 2, 1, -1, -2, 2),
    "max_caption_lines": 2,
}


def get_page_size() -> tuple[int, int]:
    """Page size in pixels from DOC_PAGE_DIMENSIONS ("WIDTHxHEIGHT")."""
    try:
        px_width, px_height = map(int, settings.PAGE_SIZE.lower().split("x"))
        if px_width <= 0 or px_height <= 0:
            raise ValueError("dimensions must be positive")
        return px_width, px_height
    except ValueError as e:
        logger.warning("Invalid DOC_PAGE_DIMENSIONS {!r}: {}. Using A4 at 150 DPI.", settings.PAGE_SIZE, e)
        return FALLBACK_PAGE_SIZE


def content_height(page_height: int) -> int:
    """Vertical space between the header zone and the footer zone."""
    return page_height - PAGE["margin"] * 2 - PAGE["header_height"] - PAGE["footer_reserve"]


def week_card_width(page_width: int) -> int:
    return page_width - PAGE["margin"] * 2


@dataclass(frozen=True)
class CardMetrics:
    """Vertical geometry of a week card, all in whole pixels."""
    line_height: int
    padding: int
    photo_height: int
    card_gap: int
    continuation_header: int
    min_card_height: int = 0

    @property
    def first_base(self) -> int:
        """Photo block plus the padding above the caption."""
        return self.padding * 2 + self.photo_height + self.padding

    @property
    def continuation_base(self) -> int:
        """Padding plus the "(continued)" header row."""
        return self.padding * 2 + self.continuation_header

    def first_slice_height(self, lines: int) -> int:
        base = self.padding * 2 + self.photo_height
        if lines > 0:
            base += lines * self.line_height + self.padding
        return base

    def continuation_slice_height(self, lines: int) -> int:
        return self.continuation_base + lines * self.line_height


def week_card_metrics() -> CardMetrics:
    line_height = round(WEEK["caption_size"] * WEEK["line_height"])
    return CardMetrics(
        line_height=line_height,
        padding=WEEK["card_padding"],
        photo_height=WEEK["photo_height"],
        card_gap=WEEK["card_gap"],
        continuation_header=line_height + WEEK["continuation_gap"],
        min_card_height=WEEK["min_card_height"],
    )
