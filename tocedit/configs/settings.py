"""
Application settings loader.

The configuration file (`config.yaml`) is optional; when absent we fall back to
defaults that match the editor's documented behaviour. Environment variables can
override individual sections using the `TE__` prefix
(e.g. `TE__PREVIEW__DEBOUNCE_MS=200`).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import yaml
from dotenv import load_dotenv

load_dotenv()

CONFIG_PATH = os.getenv("TE_CONFIG_PATH", "config.yaml")
ENV_PREFIX = "TE__"


def _apply_env_overrides(base: Dict[str, Any]) -> Dict[str, Any]:
    """
    Flattened env overrides use the format `TE__SECTION__KEY=value`.
    Nested objects are created on demand.
    """
    result: Dict[str, Any] = dict(base)
    for key, value in os.environ.items():
        if not key.startswith(ENV_PREFIX):
            continue
        parts = key[len(ENV_PREFIX) :].lower().split("__")
        cursor = result
        for part in parts[:-1]:
            cursor = cursor.setdefault(part, {})
        cursor[parts[-1]] = _cast_env_value(value)
    return result


def _cast_env_value(raw: str) -> Any:
    lowered = raw.lower()
    if lowered in {"true", "false"}:
        return lowered == "true"
    try:
        if "." in raw:
            return float(raw)
        return int(raw)
    except ValueError:
        return raw


@dataclass(slots=True)
class PreviewConfig:
    debounce_ms: int = 150
    render_scale: float = 2.0


@dataclass(slots=True)
class EditorConfig:
    default_toc: str = "1: First page"


@dataclass(slots=True)
class OutputConfig:
    producer: str = "PyMuPDF"
    filename_suffix: str = "_toc"


@dataclass(slots=True)
class LimitsConfig:
    max_file_mb: int = 100


@dataclass(slots=True)
class LayoutConfig:
    default_pane_proportion: float = 50.0


@dataclass(slots=True)
class Settings:
    preview: PreviewConfig = field(default_factory=PreviewConfig)
    editor: EditorConfig = field(default_factory=EditorConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
    limits: LimitsConfig = field(default_factory=LimitsConfig)
    layout: LayoutConfig = field(default_factory=LayoutConfig)

    @classmethod
    def load(cls, path: Optional[str] = None) -> "Settings":
        path_to_use = path or CONFIG_PATH
        data: Dict[str, Any] = {}
        if os.path.exists(path_to_use):
            with open(path_to_use, "r", encoding="utf-8") as fh:
                data = yaml.safe_load(fh) or {}
        merged = _apply_env_overrides(data)
        return cls(
            preview=PreviewConfig(**merged.get("preview", {})),
            editor=EditorConfig(**merged.get("editor", {})),
            output=OutputConfig(**merged.get("output", {})),
            limits=LimitsConfig(**merged.get("limits", {})),
            layout=LayoutConfig(**merged.get("layout", {})),
        )


settings = Settings.load()
