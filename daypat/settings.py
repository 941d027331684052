import os
from dateutil import tz
from pathlib import Path

from daypat.utils import checked_color

# Project root
BASE_DIR = Path(__file__).resolve().parent.parent

# File paths
CONFIG_PATH = Path(os.getenv("APP_CONFIG_PATH", str(BASE_DIR / "config.yaml")))
OUTPUT_PNG  = os.getenv("APP_OUTPUT_PNG_DIR", "output/png")
STATIC_DIR  = Path(os.getenv("APP_STATIC_DIR", str(BASE_DIR / "public")))
FONTS_DIR   = Path(os.getenv("APP_FONTS_DIR", str(BASE_DIR / "fonts")))

TIMEZONE = os.getenv("TZ", "UTC")
TZ_LOCAL = tz.gettz(TIMEZONE) or tz.tzutc()

# Export request
EXPORT_MODE       = os.getenv("EXPORT_MODE", "day").strip().lower()
EXPORT_DATE_RANGE = os.getenv("EXPORT_DATE_RANGE", "today")

# Network
FETCH_TIMEOUT = float(os.getenv("APP_FETCH_TIMEOUT", "15"))
PHOTO_BUCKET  = os.getenv("APP_PHOTO_BUCKET", "entry-photos")

# Branding
BRAND_TEXT       = os.getenv("DOC_BRAND_TEXT", "DayPat")
SLOGAN_TEXT      = os.getenv("DOC_SLOGAN_TEXT", "EVERY DAY DESERVES A PAT.")
FOOTER_TEXT      = os.getenv("DOC_FOOTER_TEXT", BRAND_TEXT)
BRAND_COLOR      = checked_color(os.getenv("DOC_BRAND_COLOR", "#F27430"), "#F27430")
BACKGROUND_COLOR = checked_color(os.getenv("DOC_BACKGROUND_COLOR", "#FFFDF8"), "#FFFDF8")
STAMP_IMAGE_PATH = os.getenv("DOC_STAMP_IMAGE_PATH", "/image/seal-image.jpg")
EMPTY_CAPTION    = os.getenv("DOC_EMPTY_CAPTION", "Give your day a pat.")

# Page size in pixels (A4 at 150 DPI, the document assembler scales it)
PAGE_SIZE = os.getenv("DOC_PAGE_DIMENSIONS", "1240x1754")
