import sys
import os

from loguru import logger

import daypat.settings as settings
from daypat.config import load_config
from daypat.entries import EntryDataProvider
from daypat.errors import DaypatError, FontsNotReadyError
from daypat.export import build_pages
from daypat.fonts import FontService
from daypat.logger import configure_logging
from daypat.materializer import ImageMaterializer
from daypat.stores import build_stores
from daypat.utils import parse_date_range


def main():
    # 0) Set up logs
    configure_logging()

    # 1) Resolve the export request
    mode = settings.EXPORT_MODE
    logger.debug("Timezone: {}", settings.TIMEZONE)
    try:
        start, end = parse_date_range(settings.EXPORT_DATE_RANGE, settings.TZ_LOCAL)
    except ValueError as e:
        logger.error("Invalid EXPORT_DATE_RANGE {!r}: {}", settings.EXPORT_DATE_RANGE, e)
        sys.exit(2)

    # 2) Wire up stores, images and fonts
    try:
        config = load_config()
        entry_store, blob_store = build_stores(config)
    except (OSError, ValueError) as e:
        logger.error("Could not load configuration from {}: {}", settings.CONFIG_PATH, e)
        sys.exit(2)

    materializer = ImageMaterializer(blob_store)
    provider = EntryDataProvider(entry_store, materializer)
    fonts = FontService()

    # 3) Render
    try:
        pages = build_pages(mode, start, end, provider=provider, fonts=fonts, log=logger)
    except FontsNotReadyError as e:
        logger.error("Fonts are not available, nothing was rendered: {}", e)
        sys.exit(1)
    except (DaypatError, ValueError) as e:
        logger.error("Export failed: {}", e)
        sys.exit(1)

    if not pages:
        logger.info("Nothing to export for {} between {} and {}", mode, start, end)
        return

    # 4) Write one PNG per page
    out_dir = settings.OUTPUT_PNG
    os.makedirs(out_dir, exist_ok=True)
    for page in pages:
        path = os.path.join(out_dir, f"daypat_{mode}_{page.page_number:03d}.png")
        with open(path, "wb") as f:
            f.write(page.data)
        logger.debug("Wrote page {}/{} to {}", page.page_number, page.total_pages, path)

    logger.info("✅ Wrote {} page(s) to {}", len(pages), out_dir)


if __name__ == '__main__':
    main()
