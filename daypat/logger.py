import sys
import os
from loguru import logger

CONSOLE_FORMAT = (
    "<green>{time:YYYY-MM-DD HH:mm:ss}</green> | "
    "<level>{level: <7}</level> | "
    "{message}"
)
FILE_FORMAT = "{time:YYYY-MM-DD HH:mm:ss.SSS} | {level: <7} | {name}:{function}:{line} | {message}"

# name -> (number, icon); both sit below DEBUG
TRACE_LEVELS = {
    "VISUAL": (8, "🔍"),   # layout geometry
    "SLICES": (9, "📄"),   # week card placement and splits
}


def configure_logging(*, level: str = "INFO", colorize: bool = True, format: str = CONSOLE_FORMAT,
                      log_file: str | None = None):
    """
    Console logging for an export run, plus an optional plain-text file.

    APP_LOG_LEVEL, APP_LOG_COLORIZE, APP_LOG_FORMAT and APP_LOG_FILE override
    the arguments. The file sink always records from DEBUG so a failed
    export can be traced after the fact; it rotates at 10 MB.
    """
    level = os.getenv("APP_LOG_LEVEL", "").upper() or level or "INFO"
    env_colorize = os.getenv("APP_LOG_COLORIZE", "").lower()
    if env_colorize:
        colorize = env_colorize in ("1", "true", "yes")
    format = os.getenv("APP_LOG_FORMAT", "") or format
    log_file = os.getenv("APP_LOG_FILE", "") or log_file

    logger.remove()
    register_levels()

    logger.add(sys.stdout, level=level, colorize=colorize, format=format, enqueue=True)
    if log_file:
        logger.add(log_file, level="DEBUG", format=FILE_FORMAT, rotation="10 MB", retention=5,
                   encoding="utf-8", enqueue=True)


def register_levels() -> None:
    """Loguru rejects re-registering a level, so only add the ones it lacks."""
    for name, (no, icon) in TRACE_LEVELS.items():
        try:
            logger.level(name)
        except ValueError:
            logger.level(name, no=no, icon=icon, color="<magenta>")
