"""
Week-card measurement and page slicing.

Cards are placed greedily. A card that cannot fit on any page is split
between caption lines: the first slice keeps the photo and date column,
later slices get a "(continued)" header instead. Lines are never dropped
and never cut in half.
"""
from dataclasses import dataclass

from loguru import logger

from daypat.entries import Entry, has_content
from daypat.layout import CardMetrics
from daypat.text_layout import wrap


@dataclass(frozen=True)
class CardMeasurement:
    entry: Entry
    caption_lines: tuple[str, ...]
    height: int

    @property
    def total_lines(self) -> int:
        return len(self.caption_lines)


@dataclass(frozen=True)
class CardSlice:
    card: CardMeasurement
    height: int
    caption_start_line: int
    caption_end_line: int
    is_first_slice: bool
    is_last_slice: bool

    @property
    def lines(self) -> tuple[str, ...]:
        return self.card.caption_lines[self.caption_start_line:self.caption_end_line]


def measure_cards(entries: list[Entry], font, metrics: CardMetrics, caption_width: float) -> list[CardMeasurement]:
    """One measurement per content-bearing entry, in the order given."""
    cards = []
    for entry in entries:
        if not has_content(entry):
            continue
        lines = tuple(wrap((entry.note or "").strip(), font, caption_width))
        height = max(metrics.first_slice_height(len(lines)), metrics.min_card_height)
        logger.log("VISUAL", "Card {}: {} lines, {}px", entry.date, len(lines), height)
        cards.append(CardMeasurement(entry, lines, height))
    return cards


def paginate(cards: list[CardMeasurement], available_height: int, metrics: CardMetrics) -> list[list[CardSlice]]:
    pages: list[list[CardSlice]] = []
    current: list[CardSlice] = []
    used = 0

    def gap() -> int:
        return metrics.card_gap if current else 0

    def close_page():
        nonlocal current, used
        if current:
            pages.append(current)
            logger.log("SLICES", "Closed page {} with {} slice(s), {}px used", len(pages), len(current), used)
        current = []
        used = 0

    def place(piece: CardSlice):
        nonlocal used
        used += gap() + piece.height
        current.append(piece)

    for card in cards:
        total = card.total_lines

        if used + gap() + card.height <= available_height:
            place(CardSlice(card, card.height, 0, total, True, True))
            continue

        if card.height <= available_height or total == 0:
            # fits a page of its own, or has no lines to split on
            close_page()
            place(CardSlice(card, card.height, 0, total, True, True))
            continue

        logger.log("SLICES", "Splitting card {} ({} lines, {}px)", card.entry.date, total, card.height)
        start = 0
        first = True
        while True:
            base = metrics.first_base if first else metrics.continuation_base
            remaining = available_height - used - gap()
            fitting = (remaining - base) // metrics.line_height

            if fitting <= 0 and current:
                close_page()
                continue
            if not current:
                # an empty page always takes something, or the loop would stall
                fitting = max(fitting, 1)

            end = min(start + fitting, total)
            count = end - start
            if first:
                height = metrics.first_slice_height(count)
            else:
                height = metrics.continuation_slice_height(count)
            last = end >= total
            place(CardSlice(card, height, start, end, first, last))
            logger.log("SLICES", "  slice lines [{}, {}) {}px", start, end, height)

            if last:
                break
            close_page()
            start = end
            first = False

    close_page()
    return pages
