import os
from datetime import date

import pytest
from PIL import Image, ImageFont

from daypat.drawing import cover_fit, emoji_image, paste_clipped, page_canvas
from daypat.entries import Entry, Sticker
from daypat.layout import FALLBACK_PAGE_SIZE, PAGE, MONTH, week_card_metrics
from daypat.materializer import MaterializedImage
from daypat.pagination import CardMeasurement, CardSlice
from daypat.renderers import (
    favorites_per_page, month_grid, render_day_page, render_favorites_pages,
    render_month_page, render_placeholder_page, render_week_page, to_page_image,
)
from daypat.utils import rgba

from conftest import png_bytes

EXPORTED = date(2025, 4, 1)


def photo(color="red", size=(40, 30)):
    return MaterializedImage(png_bytes(size, color), *size)


def test_cover_fit_fills_and_crops_center():
    img = Image.new("RGB", (300, 100), "red")
    img.paste(Image.new("RGB", (100, 100), "lime"), (100, 0))
    fitted = cover_fit(img, 100, 100)
    assert fitted.size == (100, 100)
    assert fitted.getpixel((50, 50)) == (0, 255, 0)
    assert fitted.getpixel((5, 50)) == (0, 255, 0)


def test_cover_fit_upscales_small_images():
    fitted = cover_fit(Image.new("RGB", (10, 40), "blue"), 200, 100)
    assert fitted.size == (200, 100)


def test_paste_clipped_circle_leaves_corners():
    canvas = Image.new("RGBA", (100, 100), (255, 255, 255, 255))
    paste_clipped(canvas, Image.new("RGB", (50, 50), "blue"), (0, 0, 100, 100), shape="circle")
    assert canvas.getpixel((50, 50)) == (0, 0, 255, 255)
    assert canvas.getpixel((1, 1)) == (255, 255, 255, 255)


def test_month_grid_is_monday_aligned():
    grid = month_grid(2025, 3, FALLBACK_PAGE_SIZE)
    # March 2025 starts on a Saturday and ends on a Monday: six rows
    assert len(grid) == 42
    assert grid[0][0] == date(2025, 2, 24)

    boxes = dict(grid)
    x, y, w, h = boxes[date(2025, 3, 15)]
    first_x, first_y, _, _ = boxes[date(2025, 2, 24)]
    assert w == h
    assert x == first_x + 5 * (w + MONTH["grid_gap"])
    assert y == first_y + 2 * (h + MONTH["grid_gap"])
    assert first_x == PAGE["margin"]


def test_month_page_places_photo_in_day_cell(fonts):
    entries = {date(2025, 3, 15): Entry(date=date(2025, 3, 15), photo_path="p.png", photo=photo("red"))}
    canvas = render_month_page(2025, 3, entries, fonts, EXPORTED)
    assert canvas.size == FALLBACK_PAGE_SIZE

    boxes = dict(month_grid(2025, 3, canvas.size))

    def center(d):
        x, y, w, h = boxes[d]
        return round(x + w * 0.75), round(y + h * 0.75)

    assert canvas.getpixel(center(date(2025, 3, 15)))[:3] == (255, 0, 0)
    assert canvas.getpixel(center(date(2025, 3, 14)))[:3] == rgba("#f9fafb")[:3]
    assert canvas.getpixel(center(date(2025, 2, 24)))[:3] == rgba("#f3f4f6")[:3]


def test_week_page_draws_slices(fonts):
    metrics = week_card_metrics()
    entry = Entry(date=date(2025, 3, 5), note="long day", photo_path="p.png", photo=photo("blue"))
    card = CardMeasurement(entry, ("long day",), metrics.first_slice_height(1))
    first = CardSlice(card, metrics.first_slice_height(1), 0, 1, True, False)
    more = CardSlice(card, metrics.continuation_slice_height(0), 1, 1, False, True)

    canvas = render_week_page([first, more], date(2025, 3, 3), fonts, metrics, 1, 2, EXPORTED)
    assert canvas.size == FALLBACK_PAGE_SIZE

    # photo column starts after the date column
    photo_x = PAGE["margin"] + metrics.padding + 80 + metrics.padding
    photo_y = PAGE["margin"] + PAGE["header_height"] + metrics.padding
    assert canvas.getpixel((photo_x + 50, photo_y + 100))[:3] == (0, 0, 255)


def test_placeholder_page(fonts):
    page = to_page_image(render_placeholder_page(fonts, EXPORTED, detail="2025-03-03"), 2, 5)
    assert (page.width, page.height) == FALLBACK_PAGE_SIZE
    assert (page.page_number, page.total_pages) == (2, 5)
    assert page.data.startswith(b"\x89PNG")
    assert page.to_data_url().startswith("data:image/png;base64,")


def test_page_canvas_uses_background():
    canvas = page_canvas((20, 10))
    assert canvas.getpixel((0, 0)) == rgba("#FFFDF8")


def test_favorites_pagination():
    # three rows of two cards fit an A4 page
    assert favorites_per_page(FALLBACK_PAGE_SIZE[1]) == 6


def test_favorites_pages(fonts, cairo):
    entries = [Entry(date=date(2025, 3, d), note=f"day {d}", is_liked=True, photo=photo()) for d in range(1, 9)]
    pages = render_favorites_pages(entries, fonts, EXPORTED)
    assert len(pages) == 2
    assert render_favorites_pages([], fonts, EXPORTED) == []


def test_day_page(fonts, cairo):
    entry = Entry(
        date=date(2025, 3, 3),
        note="A very long note " * 20,
        photo=photo("green", (300, 200)),
        stickers=[Sticker("/s.png", 0.3, 0.3, 1.5, 20, image=photo("yellow", (20, 20))),
                  Sticker("⭐", 0.7, 0.7, kind="emoji")],
        is_liked=True,
    )
    canvas = render_day_page(entry, fonts, stamp=photo("orange", (70, 70)))
    assert canvas.size == FALLBACK_PAGE_SIZE


EMOJI_FONTS = [
    "/usr/share/fonts/truetype/noto/NotoColorEmoji.ttf",
    "/usr/share/fonts/noto/NotoColorEmoji.ttf",
    "/usr/share/fonts/google-noto-emoji/NotoColorEmoji.ttf",
    "/System/Library/Fonts/Apple Color Emoji.ttc",
]


@pytest.fixture
def color_emoji_font():
    for path in EMOJI_FONTS:
        if os.path.exists(path):
            try:
                return ImageFont.truetype(path, 109 if path.endswith(".ttf") else 160)
            except OSError:
                continue
    pytest.skip("no color emoji font installed")


def test_emoji_is_drawn_in_color(color_emoji_font):
    img = emoji_image("🍀", color_emoji_font, 30)
    assert max(img.size) == 30
    colored = [p for p in img.getdata() if p[3] > 0 and len({p[0], p[1], p[2]}) > 1]
    assert colored


def test_emoji_without_glyph_is_blank_square(fonts):
    img = emoji_image(" ", fonts.font("emoji", 30), 30)
    assert img.size == (30, 30)
    assert img.getbbox() is None
