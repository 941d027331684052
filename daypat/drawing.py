"""
Raster primitives shared by the page renderers. Everything draws onto an
RGBA Pillow image; translucent effects (shadows, glows, rotated cards) are
built on their own layer and alpha-composited in place.
"""
from functools import lru_cache
from io import BytesIO

from PIL import Image, ImageChops, ImageDraw, ImageFilter
from loguru import logger

import daypat.settings as settings
from daypat.layout import PAGE, get_page_size
from daypat.utils import rgba

# Font Awesome "heart" (solid), 512x512 viewbox
HEART_PATH = (
    "M241 87.1l15 20.7 15-20.7C296 52.5 336.2 32 378.9 32 452.4 32 512 91.6 512 165.1l0 2.6"
    "c0 112.2-139.9 242.5-212.9 298.2-12.4 9.4-27.6 14.1-43.1 14.1s-30.8-4.6-43.1-14.1"
    "C139.9 410.2 0 279.9 0 167.7l0-2.6C0 91.6 59.6 32 133.1 32 175.8 32 216 52.5 241 87.1z"
)
HEART_VIEWBOX = 512
LIKED_COLOR = "#ef4444"
UNLIKED_COLOR = "#9ca3af"

# Tailwind grays used across the pages
TEXT_DARK = "#1f2937"
TEXT_MUTED = "#6b7280"
TEXT_FAINT = "#9ca3af"
TEXT_BODY = "#374151"
TEXT_CAPTION = "#4b5563"
PLACEHOLDER = "#f3f4f6"
PLACEHOLDER_LIGHT = "#f9fafb"
PLACEHOLDER_MARK = "#d1d5db"
GRID_BORDER = "#e5e7eb"


def page_canvas(size: tuple[int, int] | None = None) -> Image.Image:
    width, height = size or get_page_size()
    return Image.new("RGBA", (width, height), rgba(settings.BACKGROUND_COLOR))


def encode_png(img: Image.Image) -> bytes:
    buf = BytesIO()
    img.convert("RGB").save(buf, format="PNG", optimize=True)
    return buf.getvalue()


def composite(canvas: Image.Image, layer: Image.Image, x: float, y: float) -> None:
    """Alpha-composite `layer` with its top-left at (x, y); parts off the canvas are clipped."""
    x, y = round(x), round(y)
    sx, sy = max(0, -x), max(0, -y)
    if sx >= layer.width or sy >= layer.height:
        return
    canvas.alpha_composite(layer, dest=(x + sx, y + sy), source=(sx, sy))


def cover_fit(img: Image.Image, width: int, height: int) -> Image.Image:
    """
    Scale `img` so it covers width x height completely, keeping its aspect
    ratio, and crop the overflow equally from both sides.
    """
    width, height = max(1, round(width)), max(1, round(height))
    scale = max(width / img.width, height / img.height)
    scaled_w = max(width, round(img.width * scale))
    scaled_h = max(height, round(img.height * scale))
    resized = img.resize((scaled_w, scaled_h), Image.Resampling.LANCZOS)
    left = (scaled_w - width) // 2
    top = (scaled_h - height) // 2
    return resized.crop((left, top, left + width, top + height))


def shape_mask(size: tuple[int, int], shape: str = "rect", radius: float = 0) -> Image.Image:
    mask = Image.new("L", size, 0)
    draw = ImageDraw.Draw(mask)
    box = (0, 0, size[0] - 1, size[1] - 1)
    if shape == "circle":
        draw.ellipse(box, fill=255)
    elif shape == "rounded" and radius > 0:
        draw.rounded_rectangle(box, radius=round(radius), fill=255)
    else:
        draw.rectangle(box, fill=255)
    return mask


def paste_clipped(canvas: Image.Image, img: Image.Image, box, shape: str = "rect", radius: float = 0) -> None:
    """Cover-fit `img` into box (x, y, w, h) clipped to a rectangle, rounded rectangle or circle."""
    x, y, w, h = (round(v) for v in box)
    fitted = cover_fit(img.convert("RGBA"), w, h)
    mask = shape_mask((w, h), shape, radius)
    fitted.putalpha(ImageChops.multiply(fitted.getchannel("A"), mask))
    composite(canvas, fitted, x, y)


def drop_shadow(canvas: Image.Image, box, radius: float = 0, offset_y: float = 4,
                blur: float = 10, opacity: float = 0.1, shape: str = "rounded") -> None:
    x, y, w, h = box
    # canvas shadowBlur is roughly twice the gaussian sigma
    sigma = max(1, round(blur / 2))
    pad = sigma * 3
    layer = Image.new("RGBA", (round(w) + pad * 2, round(h) + pad * 2), (0, 0, 0, 0))
    inner = (pad, pad, pad + round(w) - 1, pad + round(h) - 1)
    draw = ImageDraw.Draw(layer)
    color = (0, 0, 0, round(255 * opacity))
    if shape == "circle":
        draw.ellipse(inner, fill=color)
    else:
        draw.rounded_rectangle(inner, radius=round(radius), fill=color)
    layer = layer.filter(ImageFilter.GaussianBlur(sigma))
    composite(canvas, layer, x - pad, y - pad + offset_y)


def fill_rounded(canvas: Image.Image, box, radius: float, fill: str) -> None:
    x, y, w, h = box
    ImageDraw.Draw(canvas).rounded_rectangle(
        (round(x), round(y), round(x + w) - 1, round(y + h) - 1),
        radius=round(radius), fill=rgba(fill),
    )


def rounded_card(canvas: Image.Image, box, radius: float, fill: str = "white",
                 shadow_blur: float = 10, shadow_offset: float = 4, shadow_opacity: float = 0.1) -> None:
    drop_shadow(canvas, box, radius, offset_y=shadow_offset, blur=shadow_blur, opacity=shadow_opacity)
    fill_rounded(canvas, box, radius, fill)


@lru_cache(maxsize=32)
def heart_image(size: int, color: str) -> Image.Image:
    import cairosvg

    svg = (
        f'<svg xmlns="http://www.w3.org/2000/svg" width="{size}" height="{size}" '
        f'viewBox="0 0 {HEART_VIEWBOX} {HEART_VIEWBOX}">'
        f'<path fill="{color}" d="{HEART_PATH}"/></svg>'
    )
    png = cairosvg.svg2png(bytestring=svg.encode("utf-8"), output_width=size, output_height=size)
    img = Image.open(BytesIO(png))
    img.load()
    return img.convert("RGBA")


def draw_heart(canvas: Image.Image, cx: float, cy: float, size: float, filled: bool = True) -> None:
    """Heart icon centered on (cx, cy); red when filled (liked), gray otherwise."""
    size = max(1, round(size))
    icon = heart_image(size, LIKED_COLOR if filled else UNLIKED_COLOR)
    composite(canvas, icon, cx - size / 2, cy - size / 2)


def emoji_image(text: str, font, size: int) -> Image.Image:
    """
    Rasterize an emoji with a color font at the font's own size, trimmed to
    the drawn pixels and scaled so its longer side is `size`.
    """
    native = max(1, round(font.size))
    layer = Image.new("RGBA", (native * 3, native * 3), (0, 0, 0, 0))
    ImageDraw.Draw(layer).text((native, native), text, font=font, fill=rgba(TEXT_DARK), embedded_color=True)
    bbox = layer.getbbox()
    if bbox is None:
        logger.debug("Emoji {!r} drew nothing", text)
        return Image.new("RGBA", (size, size), (0, 0, 0, 0))
    layer = layer.crop(bbox)
    ratio = size / max(layer.size)
    return layer.resize((max(1, round(layer.width * ratio)), max(1, round(layer.height * ratio))),
                        Image.Resampling.LANCZOS)


def draw_glow_text(canvas: Image.Image, xy, text: str, font, fill: str,
                   glow: tuple[int, int, int, int], blur: float, anchor: str = "la") -> None:
    """Text over a blurred copy of itself, like a canvas shadow with no offset."""
    draw = ImageDraw.Draw(canvas)
    left, top, right, bottom = (round(v) for v in draw.textbbox(xy, text, font=font, anchor=anchor))
    if right > left:
        pad = max(1, round(blur)) * 3
        ox, oy = left - pad, top - pad
        layer = Image.new("RGBA", (right - left + pad * 2, bottom - top + pad * 2), (0, 0, 0, 0))
        ImageDraw.Draw(layer).text((xy[0] - ox, xy[1] - oy), text, font=font, fill=glow, anchor=anchor)
        composite(canvas, layer.filter(ImageFilter.GaussianBlur(max(1, blur / 2))), ox, oy)
    draw.text(xy, text, font=font, fill=rgba(fill), anchor=anchor)


def draw_footer(canvas: Image.Image, fonts, export_date: str) -> None:
    """Brand mark bottom-left and export date bottom-right, inside the footer reserve."""
    width, height = canvas.size
    margin = PAGE["margin"]
    y = height - margin + 20
    font = fonts.font("medium", 12)
    draw = ImageDraw.Draw(canvas)
    draw.text((margin, y), settings.FOOTER_TEXT, font=font, fill=rgba(TEXT_FAINT), anchor="ls")
    draw.text((width - margin, y), export_date, font=font, fill=rgba(TEXT_FAINT), anchor="rs")
    logger.log("VISUAL", "Footer at y={} ({})", y, export_date)
