import base64
import math
from dataclasses import dataclass
from datetime import date, timedelta

from PIL import Image, ImageDraw
from loguru import logger

import daypat.settings as settings
from daypat.drawing import (
    GRID_BORDER, PLACEHOLDER, PLACEHOLDER_LIGHT, PLACEHOLDER_MARK,
    TEXT_BODY, TEXT_CAPTION, TEXT_DARK, TEXT_FAINT, TEXT_MUTED,
    composite, draw_footer, draw_glow_text, draw_heart, drop_shadow, emoji_image,
    encode_png, fill_rounded, page_canvas, paste_clipped, rounded_card,
)
from daypat.entries import Entry, Sticker
from daypat.layout import FAVORITES, MONTH, PAGE, POLAROID, WEEK, CardMetrics, content_height
from daypat.materializer import MaterializedImage
from daypat.pagination import CardSlice
from daypat.text_layout import line_height, truncate, wrap
from daypat.utils import format_short, month_cells, rgba, week_number

WEEKDAYS = ("MON", "TUE", "WED", "THU", "FRI", "SAT", "SUN")
WEEKDAYS_SHORT = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")


@dataclass(frozen=True)
class PageImage:
    data: bytes
    width: int
    height: int
    page_number: int
    total_pages: int

    def to_data_url(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.data).decode("ascii")


def to_page_image(canvas: Image.Image, page_number: int = 1, total_pages: int = 1) -> PageImage:
    return PageImage(encode_png(canvas), canvas.width, canvas.height, page_number, total_pages)


def _open(image: MaterializedImage | None) -> Image.Image | None:
    if image is None:
        return None
    try:
        return image.open()
    except OSError as e:
        logger.warning("Could not decode materialized image: {}", e)
        return None


# ========== DAY ==========

def _draw_sticker(card: Image.Image, sticker: Sticker, fonts, px: float, py: float, pw: float, ph: float, s: float):
    cx = px + sticker.x * pw
    cy = py + sticker.y * ph
    img = _open(sticker.image)
    if img is not None:
        side = max(1, round(POLAROID["sticker_size"] * sticker.scale * s))
        layer = img.convert("RGBA").resize((side, side), Image.Resampling.LANCZOS)
    elif sticker.kind == "emoji":
        size = max(1, round(POLAROID["emoji_size"] * sticker.scale * s))
        layer = emoji_image(sticker.src, fonts.font("emoji", size), size)
    else:
        return
    if sticker.rotation:
        # canvas rotation is clockwise, PIL's is counter-clockwise
        layer = layer.rotate(-sticker.rotation, resample=Image.Resampling.BICUBIC, expand=True)
    composite(card, layer, cx - layer.width / 2, cy - layer.height / 2)


def render_polaroid(entry: Entry, fonts, scale: float = 1.0, stamp: MaterializedImage | None = None) -> Image.Image:
    """The day card, drawn directly at `scale` so text stays sharp when enlarged."""
    def S(v):
        return round(v * scale)

    card = Image.new("RGBA", (S(POLAROID["width"]), S(POLAROID["height"])), rgba("white"))
    draw = ImageDraw.Draw(card)

    # Photo
    x, y, w, h = (S(v) for v in POLAROID["photo"])
    draw.rectangle((x, y, x + w - 1, y + h - 1), fill=rgba(PLACEHOLDER))
    photo = _open(entry.photo)
    if photo is not None:
        paste_clipped(card, photo, (x, y, w, h))

    for sticker in entry.stickers:
        _draw_sticker(card, sticker, fonts, x, y, w, h, scale)

    # Watermark
    wx, wy, wsize = POLAROID["watermark"]
    draw_glow_text(card, (S(wx), S(wy)), settings.BRAND_TEXT, fonts.font("brand", S(wsize)),
                   settings.BRAND_COLOR, glow=(255, 255, 255, 204), blur=3 * scale, anchor="lt")

    # Stamp
    stamp_img = _open(stamp) if entry.is_liked else None
    if stamp_img is not None:
        size, margin = S(POLAROID["stamp_size"]), S(POLAROID["stamp_margin"])
        sx, sy = x + w - size - margin, y + h - size - margin
        drop_shadow(card, (sx, sy, size, size), offset_y=6 * scale, blur=10 * scale, opacity=0.1, shape="circle")
        paste_clipped(card, stamp_img, (sx, sy, size, size), shape="circle")

    # Caption
    c = POLAROID["comment"]
    cx, cy, cw, ch = (S(v) for v in c["box"])
    font = fonts.font("medium", S(c["font_size"]))
    text = entry.note if (entry.note or "").strip() else settings.EMPTY_CAPTION
    color = TEXT_BODY if (entry.note or "").strip() else TEXT_FAINT
    max_width = cw - S(8)
    lines = truncate(wrap(text, font, max_width), font, c["max_lines"], max_width)
    step = line_height(c["font_size"] * scale, c["line_height"])

    box = Image.new("RGBA", (cw, ch), (0, 0, 0, 0))
    box_draw = ImageDraw.Draw(box)
    for i, line in enumerate(lines):
        box_draw.text((cw // 2, S(c["baseline_adjust"]) + i * step), line, font=font, fill=rgba(color), anchor="ma")
    composite(card, box, cx, cy)

    # Footer: slogan and heart
    fy = S(POLAROID["footer_y"])
    draw.text((S(POLAROID["padding"]), fy), settings.SLOGAN_TEXT,
              font=fonts.font("slogan", S(POLAROID["slogan_size"])), fill=rgba(settings.BRAND_COLOR), anchor="lm")
    heart = POLAROID["heart_size"]
    draw_heart(card, S(POLAROID["width"] - POLAROID["padding"] - heart / 2), fy, S(heart), filled=entry.is_liked)

    logger.log("VISUAL", "Polaroid {} at {:.2f}x: {} caption line(s), {} sticker(s)",
               entry.date, scale, len(lines), len(entry.stickers))
    return card


def render_day_page(entry: Entry, fonts, stamp: MaterializedImage | None = None,
                    page_size: tuple[int, int] | None = None) -> Image.Image:
    canvas = page_canvas(page_size)
    width, height = canvas.size
    margin = PAGE["margin"]

    max_w = width - margin * 2
    max_h = height - margin * 2 - PAGE["header_height"]
    scale = min(max_w / POLAROID["width"], max_h / POLAROID["height"], POLAROID["max_scale"])
    polaroid = render_polaroid(entry, fonts, scale, stamp)

    px = (width - polaroid.width) / 2
    py = margin + 80 + (max_h - polaroid.height) / 2
    drop_shadow(canvas, (px, py, polaroid.width, polaroid.height), offset_y=15, blur=30, opacity=0.15)
    composite(canvas, polaroid, px, py)

    draw = ImageDraw.Draw(canvas)
    draw.text((width / 2, margin + 40), entry.date.strftime("%Y.%m.%d"),
              font=fonts.font("bold", 36), fill=rgba(TEXT_DARK), anchor="ms")
    draw.text((width / 2, margin + 65), entry.date.strftime("%A"),
              font=fonts.font("medium", 18), fill=rgba(TEXT_MUTED), anchor="ms")
    return canvas


# ========== WEEK ==========

def _draw_week_slice(canvas: Image.Image, piece: CardSlice, fonts, metrics: CardMetrics, x: int, y: int, width: int):
    entry = piece.card.entry
    pad = metrics.padding
    date_col = WEEK["date_column_width"]
    height = piece.height

    rounded_card(canvas, (x, y, width, height), WEEK["card_radius"])
    draw = ImageDraw.Draw(canvas)

    date_x = x + pad
    photo_x = date_x + date_col + pad
    photo_w = width - date_col - pad * 3
    weekday = WEEKDAYS[entry.date.weekday()]
    caption_font = fonts.font("medium", WEEK["caption_size"])
    italic = fonts.font("italic", WEEK["caption_size"])

    if piece.is_first_slice:
        top = y + pad
        center = date_x + date_col / 2
        draw.text((center, top), weekday, font=fonts.font("bold", WEEK["day_name_size"]),
                  fill=rgba(TEXT_MUTED), anchor="mt")
        draw.text((center, top + 20), str(entry.date.day), font=fonts.font("bold", WEEK["day_number_size"]),
                  fill=rgba(TEXT_DARK), anchor="mt")

        box = (photo_x, top, photo_w, metrics.photo_height)
        photo = _open(entry.photo)
        if photo is not None:
            paste_clipped(canvas, photo, box, shape="rounded", radius=WEEK["photo_radius"])
        else:
            fill_rounded(canvas, box, WEEK["photo_radius"], PLACEHOLDER)
            draw.text((photo_x + photo_w / 2, top + metrics.photo_height / 2), "+",
                      font=fonts.font("bold", 48), fill=rgba(PLACEHOLDER_MARK), anchor="mm")
        caption_y = top + metrics.photo_height + pad
    else:
        draw.text((photo_x, y + pad), f"{weekday} {entry.date.day} (continued)",
                  font=italic, fill=rgba(TEXT_FAINT), anchor="la")
        caption_y = y + pad + metrics.continuation_header

    for i, line in enumerate(piece.lines):
        draw.text((photo_x, caption_y + i * metrics.line_height), line,
                  font=caption_font, fill=rgba(TEXT_CAPTION), anchor="la")

    if not piece.is_last_slice:
        draw.text((x + width - pad, y + height - pad - 10), "(continued…)",
                  font=italic, fill=rgba(TEXT_FAINT), anchor="ra")


def render_week_page(slices: list[CardSlice], monday: date, fonts, metrics: CardMetrics,
                     page_number: int, total_pages: int, export_date: date,
                     page_size: tuple[int, int] | None = None) -> Image.Image:
    canvas = page_canvas(page_size)
    width, _ = canvas.size
    margin = PAGE["margin"]
    sunday = monday + timedelta(days=6)

    draw = ImageDraw.Draw(canvas)
    draw.text((width / 2, margin + 35), f"Week {week_number(monday)}",
              font=fonts.font("bold", 32), fill=rgba(TEXT_DARK), anchor="ms")
    draw.text((width / 2, margin + 60), f"{monday:%b} {monday.day} - {format_short(sunday)}",
              font=fonts.font("medium", 16), fill=rgba(TEXT_MUTED), anchor="ms")
    if total_pages > 1:
        draw.text((width - margin, margin + 35), f"Page {page_number}/{total_pages}",
                  font=fonts.font("medium", 14), fill=rgba(TEXT_FAINT), anchor="rs")

    y = margin + PAGE["header_height"]
    card_width = width - margin * 2
    for piece in slices:
        _draw_week_slice(canvas, piece, fonts, metrics, margin, y, card_width)
        y += piece.height + metrics.card_gap

    draw_footer(canvas, fonts, format_short(export_date))
    return canvas


# ========== MONTH ==========

def month_grid(year: int, month: int, page_size: tuple[int, int]) -> list[tuple[date, tuple[float, float, float, float]]]:
    """Every calendar cell of the month page with its (x, y, w, h) box; cells are square."""
    width, height = page_size
    margin = PAGE["margin"]
    gap = MONTH["grid_gap"]
    cells = month_cells(year, month)
    rows = math.ceil(len(cells) / 7)

    grid_w = width - margin * 2
    cell = (grid_w - gap * 6) / 7
    grid_h = rows * cell + (rows - 1) * gap
    available = height - margin * 2 - MONTH["header_height"] - MONTH["weekday_height"] - 30
    top = margin + MONTH["header_height"] + MONTH["weekday_height"] + max(0, (available - grid_h) / 2)

    return [
        (d, (margin + (i % 7) * (cell + gap), top + (i // 7) * (cell + gap), cell, cell))
        for i, d in enumerate(cells)
    ]


def render_month_page(year: int, month: int, entries: dict[date, Entry], fonts, export_date: date,
                      page_size: tuple[int, int] | None = None) -> Image.Image:
    canvas = page_canvas(page_size)
    width, height = canvas.size
    margin = PAGE["margin"]
    draw = ImageDraw.Draw(canvas)

    draw.text((width / 2, margin + 45), date(year, month, 1).strftime("%B %Y"),
              font=fonts.font("bold", MONTH["title_size"]), fill=rgba(TEXT_DARK), anchor="ms")

    grid = month_grid(year, month, canvas.size)
    cell = grid[0][1][2]
    weekday_font = fonts.font("bold", MONTH["weekday_size"])
    for i, label in enumerate(WEEKDAYS_SHORT):
        cx = margin + i * (cell + MONTH["grid_gap"]) + cell / 2
        draw.text((cx, margin + MONTH["header_height"] + 25), label, font=weekday_font,
                  fill=rgba(TEXT_MUTED), anchor="ms")

    number_font = fonts.font("bold", MONTH["day_number_size"])
    pad = MONTH["cell_padding"]
    photos = 0
    for d, (x, y, w, h) in grid:
        in_month = d.month == month
        box = (round(x), round(y), round(x + w) - 1, round(y + h) - 1)
        if not in_month:
            draw.rectangle(box, fill=rgba(PLACEHOLDER))
            continue

        entry = entries.get(d)
        photo = _open(entry.photo) if entry else None
        if photo is not None:
            paste_clipped(canvas, photo, (x, y, w, h))
            draw_glow_text(canvas, (x + pad, y + pad), str(d.day), number_font, "white",
                           glow=(0, 0, 0, 128), blur=2, anchor="lt")
            photos += 1
        else:
            draw.rectangle(box, fill=rgba(PLACEHOLDER_LIGHT))
            draw.text((x + pad, y + pad), str(d.day), font=number_font, fill=rgba(TEXT_BODY), anchor="lt")

    left, top = grid[0][1][0], grid[0][1][1]
    right = grid[-1][1][0] + cell
    bottom = grid[-1][1][1] + cell
    ImageDraw.Draw(canvas).rectangle((round(left), round(top), round(right), round(bottom)),
                                     outline=rgba(GRID_BORDER), width=1)

    draw_footer(canvas, fonts, format_short(export_date))
    logger.log("VISUAL", "Month {}-{:02d}: {} cells, {} photos", year, month, len(grid), photos)
    return canvas


# ========== FAVORITES ==========

def favorites_card_height() -> int:
    """Row pitch used to decide how many rows fit; a little taller than the drawn card."""
    f = FAVORITES
    return f["card_padding"] * 2 + f["photo_height"] + f["caption_height"] + 20


def favorites_per_page(page_height: int) -> int:
    rows = content_height(page_height) // (favorites_card_height() + FAVORITES["card_gap"])
    return max(1, rows) * FAVORITES["columns"]


def _favorite_card(entry: Entry, fonts, width: int) -> tuple[Image.Image, int]:
    """The card on its own transparent layer (with room for its shadow), plus the shadow padding."""
    f = FAVORITES
    pad = f["card_padding"]
    card_h = pad * 2 + f["photo_height"] + f["caption_height"]
    shadow_pad = 24
    layer = Image.new("RGBA", (width + shadow_pad * 2, card_h + shadow_pad * 2), (0, 0, 0, 0))
    ox = oy = shadow_pad
    rounded_card(layer, (ox, oy, width, card_h), 16, shadow_blur=12, shadow_offset=6, shadow_opacity=0.15)

    photo_x, photo_y = ox + pad, oy + pad
    photo_w = width - pad * 2
    box = (photo_x, photo_y, photo_w, f["photo_height"])
    photo = _open(entry.photo)
    if photo is not None:
        paste_clipped(layer, photo, box, shape="rounded", radius=12)
    else:
        fill_rounded(layer, box, 12, PLACEHOLDER)

    heart = f["heart_size"]
    draw_heart(layer, photo_x + photo_w - heart / 2 - 12, photo_y + heart / 2 + 12, heart, filled=True)

    draw = ImageDraw.Draw(layer)
    text_y = photo_y + f["photo_height"] + pad
    draw.text((photo_x, text_y), format_short(entry.date), font=fonts.font("medium", f["date_size"]),
              fill=rgba(TEXT_FAINT), anchor="la")

    font = fonts.font("medium", f["caption_size"])
    caption_y = text_y + line_height(f["date_size"], f["line_height"]) + 4
    caption = entry.note if (entry.note or "").strip() else "No caption"
    lines = truncate(wrap(caption, font, photo_w), font, f["max_caption_lines"], photo_w)
    step = line_height(f["caption_size"], f["line_height"])
    for i, line in enumerate(lines):
        draw.text((photo_x, caption_y + i * step), line, font=font, fill=rgba(TEXT_BODY), anchor="la")
    return layer, shadow_pad


def render_favorites_pages(entries: list[Entry], fonts, export_date: date,
                           page_size: tuple[int, int] | None = None) -> list[Image.Image]:
    if not entries:
        return []

    f = FAVORITES
    first = page_canvas(page_size)
    width, height = first.size
    margin = PAGE["margin"]
    per_page = favorites_per_page(height)
    total = math.ceil(len(entries) / per_page)
    card_w = (width - margin * 2 - f["card_gap"] * (f["columns"] - 1)) // f["columns"]
    pitch = favorites_card_height() + f["card_gap"]
    logger.log("VISUAL", "Favorites: {} cards, {} per page, {} page(s)", len(entries), per_page, total)

    pages = []
    for page_idx in range(total):
        canvas = first if page_idx == 0 else page_canvas(page_size)
        draw = ImageDraw.Draw(canvas)
        draw.text((width / 2, margin + 45), "Favorite Moments", font=fonts.font("bold", 32),
                  fill=rgba(TEXT_DARK), anchor="ms")
        draw.text((width / 2, margin + 75), f"Exported {format_short(export_date)}",
                  font=fonts.font("medium", 16), fill=rgba(TEXT_MUTED), anchor="ms")
        draw.text((width / 2, margin + 100), f"{len(entries)} saved memories",
                  font=fonts.font("medium", 14), fill=rgba(TEXT_FAINT), anchor="ms")
        if total > 1:
            draw.text((width - margin, margin + 45), f"Page {page_idx + 1}/{total}",
                      font=fonts.font("medium", 14), fill=rgba(TEXT_FAINT), anchor="rs")

        start = page_idx * per_page
        chunk = entries[start:start + per_page]
        top = margin + PAGE["header_height"] + 30
        for offset, entry in enumerate(chunk):
            row, col = divmod(offset, f["columns"])
            rotation = f["rotations"][(start + offset) % len(f["rotations"])]
            layer, shadow_pad = _favorite_card(entry, fonts, card_w)
            card_x = margin + col * (card_w + f["card_gap"])
            card_y = top + row * pitch
            # rotate around the card's own center
            cx = card_x - shadow_pad + layer.width / 2
            cy = card_y - shadow_pad + layer.height / 2
            rotated = layer.rotate(-rotation, resample=Image.Resampling.BICUBIC, expand=True)
            composite(canvas, rotated, cx - rotated.width / 2, cy - rotated.height / 2)

        draw_footer(canvas, fonts, format_short(export_date))
        pages.append(canvas)
    return pages


# ========== PLACEHOLDER ==========

def render_placeholder_page(fonts, export_date: date, message: str = "No entry for this date",
                            detail: str | None = None, page_size: tuple[int, int] | None = None) -> Image.Image:
    """Stands in for a unit whose entries could not be fetched."""
    canvas = page_canvas(page_size)
    width, height = canvas.size
    draw = ImageDraw.Draw(canvas)
    draw.text((width / 2, height / 2), message, font=fonts.font("medium", 24),
              fill=rgba(TEXT_FAINT), anchor="ms")
    if detail:
        draw.text((width / 2, height / 2 + 36), detail, font=fonts.font("medium", 16),
                  fill=rgba(TEXT_FAINT), anchor="ms")
    draw_footer(canvas, fonts, format_short(export_date))
    return canvas
