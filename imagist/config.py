from __future__ import annotations

import copy
import os
from pathlib import Path
from typing import Any

import yaml

from imagist.constants import (
    BACKEND_AUTO,
    DEFAULT_QUALITY,
    ENGINE_AUTO,
    FIT_INSIDE,
    FIT_OUTSIDE,
    OPTIMIZE_MAX_HEIGHT,
    OPTIMIZE_MAX_WIDTH,
    OPTIMIZE_QUALITY,
    SCALE_ANY,
)

DEFAULT_CONFIG: dict[str, Any] = {
    "backend": BACKEND_AUTO,
    "quality": DEFAULT_QUALITY,
    "fit": FIT_INSIDE,
    "scale": SCALE_ANY,
    "name_template": "{stem}.{ext}",
    "skip_existing": False,
    "demo": {
        "resize_width": 300,
        "resize_height": 300,
        "fit": FIT_OUTSIDE,
        "scale": SCALE_ANY,
        "crop_left": "center",
        "crop_top": "middle",
        "crop_width": 200,
        "crop_height": 200,
    },
    "watermark": {
        "horizontal": "right",
        "vertical": "bottom",
        "padding_x": 10,
        "padding_y": 10,
        "opacity": 100,
    },
    "optimizer": {
        "engine": ENGINE_AUTO,
        "max_width": OPTIMIZE_MAX_WIDTH,
        "max_height": OPTIMIZE_MAX_HEIGHT,
        "quality": OPTIMIZE_QUALITY,
    },
}


def get_user_data_dir() -> Path:
    xdg_config_home = os.environ.get("XDG_CONFIG_HOME")
    if xdg_config_home:
        return Path(xdg_config_home) / "Imagist"
    return Path.home() / ".config" / "Imagist"


def get_config_path() -> Path:
    return get_user_data_dir() / "config.yaml"


def _deep_merge(base: dict[str, Any], incoming: dict[str, Any]) -> dict[str, Any]:
    merged = copy.deepcopy(base)
    for key, value in incoming.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _deep_merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def load_config(path: Path | None = None) -> dict[str, Any]:
    cfg_path = path or get_config_path()
    if not cfg_path.exists():
        return copy.deepcopy(DEFAULT_CONFIG)

    text = cfg_path.read_text(encoding="utf-8")
    loaded = yaml.safe_load(text) or {}
    if not isinstance(loaded, dict):
        loaded = {}
    return _deep_merge(DEFAULT_CONFIG, loaded)


def write_default_config(path: Path | None = None, force: bool = False) -> Path:
    cfg_path = path or get_config_path()
    cfg_path.parent.mkdir(parents=True, exist_ok=True)
    if cfg_path.exists() and not force:
        return cfg_path
    cfg_path.write_text(yaml.safe_dump(DEFAULT_CONFIG, sort_keys=False, allow_unicode=True), encoding="utf-8")
    return cfg_path
