import base64
import binascii
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path
from urllib.parse import unquote

import requests
from PIL import Image, ImageOps
from loguru import logger

import daypat.settings as settings
from daypat.errors import StoreError

# Longest edge kept after decoding; nothing on a page is drawn larger.
MAX_EDGE = 2048


@dataclass(frozen=True)
class MaterializedImage:
    """A fetched asset re-encoded as PNG, independent of where it came from."""
    data: bytes
    width: int
    height: int

    def to_data_url(self) -> str:
        return "data:image/png;base64," + base64.b64encode(self.data).decode("ascii")

    def open(self) -> Image.Image:
        img = Image.open(BytesIO(self.data))
        img.load()
        return img


def decode_data_url(url: str) -> bytes:
    header, sep, payload = url.partition(",")
    if not sep or not header.startswith("data:"):
        raise ValueError("malformed data URL")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=True)
        except binascii.Error as e:
            raise ValueError(f"bad base64 payload: {e}") from e
    return unquote(payload).encode("utf-8")


def _looks_like_svg(ref: str, raw: bytes) -> bool:
    if ref.lower().split("?")[0].endswith(".svg") or ref.startswith("data:image/svg"):
        return True
    head = raw[:256].lstrip()
    return head.startswith(b"<svg") or (head.startswith(b"<?xml") and b"<svg" in raw[:1024])


class ImageMaterializer:
    """
    Turns an asset reference into a MaterializedImage, or None.

    References are data URLs, local static paths ("/image/seal.jpg", served
    from STATIC_DIR), http(s) URLs, or blob-store paths. Local assets are
    re-encoded as well so a page never points back at the filesystem.
    """

    def __init__(self, blob_store, static_dir: Path | None = None, timeout: float | None = None, log=logger):
        self.blob_store = blob_store
        self.static_dir = Path(static_dir or settings.STATIC_DIR).resolve()
        self.timeout = timeout if timeout is not None else settings.FETCH_TIMEOUT
        self.log = log

    def materialize(self, ref: str | None) -> MaterializedImage | None:
        if not ref:
            return None
        try:
            raw = self._fetch(ref)
            return self._encode(ref, raw)
        except Exception as e:
            self.log.warning("Could not materialize {}: {}", _short(ref), e)
            return None

    def _fetch(self, ref: str) -> bytes:
        if ref.startswith("data:"):
            return decode_data_url(ref)
        if ref.startswith("/"):
            target = (self.static_dir / ref.lstrip("/")).resolve()
            if not target.is_relative_to(self.static_dir):
                raise StoreError(f"static path escapes {self.static_dir}")
            return target.read_bytes()
        if ref.startswith(("http://", "https://")):
            resp = requests.get(ref, timeout=self.timeout)
            resp.raise_for_status()
            return resp.content
        return self.blob_store.download(ref)

    def _encode(self, ref: str, raw: bytes) -> MaterializedImage:
        if _looks_like_svg(ref, raw):
            import cairosvg
            raw = cairosvg.svg2png(bytestring=raw)
        img = Image.open(BytesIO(raw))
        img.load()
        img = ImageOps.exif_transpose(img)
        img = img.convert("RGBA" if _has_alpha(img) else "RGB")
        img.thumbnail((MAX_EDGE, MAX_EDGE), Image.Resampling.LANCZOS)

        buf = BytesIO()
        img.save(buf, format="PNG")
        self.log.debug("Materialized {} ({}x{})", _short(ref), img.width, img.height)
        return MaterializedImage(buf.getvalue(), img.width, img.height)


def _has_alpha(img: Image.Image) -> bool:
    return img.mode in ("RGBA", "LA", "PA") or (img.mode == "P" and "transparency" in img.info)


def _short(ref: str) -> str:
    return ref if len(ref) <= 64 else ref[:61] + "..."
