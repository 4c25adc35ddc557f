"""
Durable UI state, kept in a small JSON file next to the configuration.
"""

from __future__ import annotations

import json
import os
from pathlib import Path
from typing import Any, Dict

from tocedit.configs.settings import settings
from tocedit.utils.logger import logger

RUNTIME_SETTINGS_PATH = Path(
    os.getenv("TE_RUNTIME_SETTINGS_PATH", "config/runtime_settings.json")
)
PANE_PROPORTION_KEY = "pane_proportion"


def _load_all(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        with open(path, "r", encoding="utf-8") as fh:
            return json.load(fh)
    except (json.JSONDecodeError, OSError) as exc:
        logger.warning("Failed to load runtime settings, using defaults: %s", exc)
        return {}


def _save_all(path: Path, payload: Dict[str, Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "w", encoding="utf-8") as fh:
        json.dump(payload, fh, ensure_ascii=False, indent=2)


def _valid_proportion(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and 0 < value < 100


def get_pane_proportion(path: Path | None = None) -> float:
    value = _load_all(path or RUNTIME_SETTINGS_PATH).get(PANE_PROPORTION_KEY)
    if value is None:
        return settings.layout.default_pane_proportion
    if not _valid_proportion(value):
        logger.warning("Ignoring invalid pane proportion in runtime settings: %r", value)
        return settings.layout.default_pane_proportion
    return float(value)


def save_pane_proportion(value: float, path: Path | None = None) -> float:
    if not _valid_proportion(value):
        raise ValueError(f"pane proportion must be between 0 and 100, got {value!r}")
    target = path or RUNTIME_SETTINGS_PATH
    data = _load_all(target)
    data[PANE_PROPORTION_KEY] = float(value)
    _save_all(target, data)
    logger.info("Pane proportion saved: %.2f", value)
    return float(value)
