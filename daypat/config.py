import os

import yaml
from loguru import logger

import daypat.settings as settings

DEFAULT_CONFIG = {
    "entry_store": {"type": "local", "path": "entries.yaml"},
    "blob_store": {"type": "local", "path": "photos"},
}


def load_config(path=None) -> dict:
    """
    Load store configuration. `${VAR}` references in string values are
    expanded from the environment so credentials can stay out of the file.
    """
    path = path or settings.CONFIG_PATH
    if not os.path.exists(path):
        logger.warning("No configuration at {}, using local stores", path)
        return {key: dict(value) for key, value in DEFAULT_CONFIG.items()}
    with open(path, 'r', encoding='utf-8') as f:
        logger.debug("Loading configuration from {}", path)
        config = yaml.safe_load(f) or {}
    if not isinstance(config, dict):
        raise ValueError(f"Configuration in {path} must be a mapping")

    merged = {key: dict(value) for key, value in DEFAULT_CONFIG.items()}
    for section, values in config.items():
        if isinstance(values, dict):
            merged[section] = _expand(values)
        else:
            merged[section] = values

    return merged


def _expand(values: dict) -> dict:
    return {
        key: os.path.expandvars(value) if isinstance(value, str) else value
        for key, value in values.items()
    }
