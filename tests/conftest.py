from io import BytesIO
from pathlib import Path

import pytest
from PIL import Image, ImageFont

from daypat.errors import FontsNotReadyError, StoreError
from daypat.fonts import FontService
from daypat.materializer import MaterializedImage
from daypat.stores import LocalEntryStore


class FakeFontService(FontService):
    """Pillow's built-in scalable face for every role."""

    def __init__(self, fail: bool = False):
        super().__init__()
        self.fail = fail
        self.ready_calls = 0

    def ready(self):
        self.ready_calls += 1
        if self.fail:
            raise FontsNotReadyError("fonts unavailable")
        self._paths = {role: Path(name) for role, name in self.files.items()}

    def _load(self, role, size):
        return ImageFont.load_default(size)


class StubFont:
    """Every character is `advance` pixels wide."""

    def __init__(self, advance: int = 10):
        self.advance = advance

    def getlength(self, text):
        return len(text) * self.advance


def png_bytes(size=(40, 30), color="red") -> bytes:
    buf = BytesIO()
    Image.new("RGB", size, color).save(buf, format="PNG")
    return buf.getvalue()


class FakeMaterializer:
    """Any non-empty reference becomes a small solid image."""

    def __init__(self, color="red"):
        self.color = color
        self.calls = []

    def materialize(self, ref):
        self.calls.append(ref)
        if not ref:
            return None
        return MaterializedImage(png_bytes(color=self.color), 40, 30)


class FailingStore:
    def select(self, columns, **filters):
        raise StoreError("connection refused")


class FlakyStore(LocalEntryStore):
    """Fails single-date lookups for `failing_dates` and range queries starting on `failing_from`."""

    def __init__(self, rows, failing_dates=(), failing_from=()):
        super().__init__(rows=rows)
        self.failing_dates = set(failing_dates)
        self.failing_from = set(failing_from)

    def select(self, columns, **filters):
        if filters.get("date") in self.failing_dates or filters.get("date_from") in self.failing_from:
            raise StoreError("timeout")
        return super().select(columns, **filters)


class FakeBlobStore:
    def __init__(self, blobs=None):
        self.blobs = blobs or {}

    def download(self, path):
        if path not in self.blobs:
            raise StoreError(f"missing blob {path}")
        return self.blobs[path]


@pytest.fixture
def fonts():
    service = FakeFontService()
    service.ready()
    return service


@pytest.fixture
def stub_font():
    return StubFont()


@pytest.fixture
def cairo():
    try:
        import cairosvg
    except (ImportError, OSError) as e:
        pytest.skip(f"cairosvg unavailable: {e}")
    return cairosvg
