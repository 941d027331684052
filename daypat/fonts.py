"""
Font faces used by the page drawers.

Font files are not bundled. Put these files in APP_FONTS_DIR (default
`fonts/` at the project root) or in `daypat/fonts/`:

    NotoSansKR-Regular.ttf, NotoSansKR-Medium.ttf, NotoSansKR-Bold.ttf
    NotoSans-MediumItalic.ttf, Caveat-SemiBold.ttf, OpenSans-Medium.ttf
    NotoColorEmoji.ttf

All are available from Google Fonts under the OFL.
"""
from pathlib import Path

from PIL import ImageFont
from loguru import logger

from daypat.errors import FontsNotReadyError
from daypat.settings import FONTS_DIR

# role -> file name
FONT_FILES = {
    "regular": "NotoSansKR-Regular.ttf",
    "medium":  "NotoSansKR-Medium.ttf",
    "bold":    "NotoSansKR-Bold.ttf",
    "italic":  "NotoSans-MediumItalic.ttf",
    "brand":   "Caveat-SemiBold.ttf",
    "slogan":  "OpenSans-Medium.ttf",
    "emoji":   "NotoColorEmoji.ttf",
}

# color bitmap faces only load at their strike size; callers scale the glyph
BITMAP_SIZES = {"emoji": 109}


class FontService:
    """
    Font readiness as an explicit capability. `ready()` must succeed once per
    export run before anything is measured or drawn; `font()` refuses to hand
    out faces before that so text can never be laid out with fallback metrics.
    """

    def __init__(self, fonts_dir: Path | None = None, files: dict[str, str] | None = None):
        self.candidates = []
        if fonts_dir:
            self.candidates.append(Path(fonts_dir))
        self.candidates.append(Path(FONTS_DIR))
        self.candidates.append(Path(__file__).resolve().parent / "fonts")
        self.files = dict(files or FONT_FILES)
        self._paths: dict[str, Path] = {}
        self._cache: dict[tuple[str, int], ImageFont.FreeTypeFont] = {}

    @property
    def is_ready(self) -> bool:
        return len(self._paths) == len(self.files)

    def ready(self) -> None:
        if self.is_ready:
            return
        for role, fname in self.files.items():
            for base in self.candidates:
                font_path = (base / fname).resolve()
                if font_path.is_file():
                    try:
                        ImageFont.truetype(str(font_path), BITMAP_SIZES.get(role, 12))
                    except OSError as e:
                        msg = f"Font '{fname}' at {font_path} could not be loaded: {e}"
                        logger.error("{}", msg)
                        raise FontsNotReadyError(msg) from e
                    logger.debug("Loading font {} from {}", role, str(font_path))
                    self._paths[role] = font_path
                    break
            else:
                msg = (
                    f"Font '{fname}' not found in: "
                    f"{', '.join(str(p) for p in self.candidates)} (set APP_FONTS_DIR)"
                )
                logger.error("{}", msg)
                raise FontsNotReadyError(msg)

    def font(self, role: str, size: int):
        if not self.is_ready:
            raise FontsNotReadyError("font() called before ready()")
        key = (role, int(size))
        if key not in self._cache:
            self._cache[key] = self._load(role, int(size))
        return self._cache[key]

    def _load(self, role: str, size: int):
        return ImageFont.truetype(str(self._paths[role]), BITMAP_SIZES.get(role, size))
