"""Persistent user preferences shared across invocations.

Stored keys:
    - `proxySettings`: last detected proxy settings (or `None`).
    - `lastOutputDir` / `lastJsonDir`: directories used by the last run.
    - `defaultApi`: API chosen in the last interactive session.
    - `geminiApiKey`: Gemini key the user chose to remember.

Persistence:
    A single `config.json` in `provider_config.config_directory()`. The file is
    read at start and rewritten whole on every `save_config` call.

Concurrency:
    No cross-process coordination. Concurrent invocations may race on the file.

Failure handling:
    An unreadable or corrupt file is logged and treated as empty so a broken
    store never blocks image generation. Write errors propagate.
"""

import os
import json
import logging

from imagegen.config.provider_config import DEFAULT_API, config_directory


logger = logging.getLogger(__name__)


CONFIG_FILENAME = "config.json"

DEFAULTS = {
    "proxySettings": None,
    "lastOutputDir": "./images",
    "lastJsonDir": "./output",
    "defaultApi": DEFAULT_API,
    "geminiApiKey": None,
}

# Keys written only when the new value is truthy.
_TRUTHY_KEYS = ("lastOutputDir", "lastJsonDir", "defaultApi", "geminiApiKey")


def config_path() -> str:
    return os.path.join(config_directory(), CONFIG_FILENAME)


def _read_store() -> dict:
    path = config_path()
    if not os.path.exists(path):
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, ValueError):
        logger.exception("Failed to load preferences from %s", path)
        return {}

    return data if isinstance(data, dict) else {}


def get_config() -> dict:
    """Return stored preferences merged over `DEFAULTS`."""
    config = dict(DEFAULTS)
    stored = _read_store()
    for key in DEFAULTS:
        if key in stored:
            config[key] = stored[key]
    return config


def save_config(values: dict) -> dict:
    """Merge `values` into the store and persist it.

    Write rules:
        - `proxySettings` is written whenever the key is present, even as `None`.
        - Every other known key is written only when its value is truthy.
        - Unknown keys are ignored.

    Returns:
        The stored preferences after the update.
    """
    stored = _read_store()

    if "proxySettings" in values:
        stored["proxySettings"] = values["proxySettings"]

    for key in _TRUTHY_KEYS:
        if values.get(key):
            stored[key] = values[key]

    os.makedirs(config_directory(), exist_ok=True)
    with open(config_path(), "w", encoding="utf-8") as f:
        json.dump(stored, f, indent=2, ensure_ascii=False)

    return stored
