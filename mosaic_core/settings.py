"""Helpers for loading and working with mosaic settings."""
from __future__ import annotations

import copy
import json
import os
from pathlib import Path
from typing import Any, Dict, Optional

from .fade import FADE_STEP
from .propagation import DEFAULT_HEAD_COUNT, PropagationConfig

DEFAULT_SETTINGS: Dict[str, Any] = {
    # Lattice
    "rows": 60,
    "cols": 80,
    "distance": 0.05,
    "padding_ratio": 0.1,

    # Propagation
    "heads": DEFAULT_HEAD_COUNT,
    "hue_step": 0.0002,
    "head_hue_offset": 0.01,
    "head_saturation": 0.7,
    "head_lightness": 0.5,
    "fade_step": FADE_STEP,
    "seed": None,

    # Display
    "width": 1280,
    "height": 800,
    "tick_ms": 50,
    "fov": 25.0,
    "camera_distance": 7.0,
    "pointer_sway": 4.0,
    "background_color": (0, 0, 0),

    # Recording
    "save_frames_dir": "frames",
    "record_dir": "frames_out",
    "record_scale": 1.0,
    "record_fps": 20,
    "record_codec": "libx264",
}


def _coerce_value(value, default):
    """Best-effort coercion of JSON-loaded values to match defaults."""

    if isinstance(default, tuple):
        return tuple(value) if isinstance(value, (list, tuple)) else default
    if isinstance(default, bool):
        return bool(value)
    if isinstance(default, int) and isinstance(value, (int, float)):
        return int(value)
    if isinstance(default, float) and isinstance(value, (int, float)):
        return float(value)
    return value


def load_settings(settings_path: Path | str | None = None) -> Dict[str, Any]:
    """Load the settings file if it exists, otherwise return defaults."""
    data: Dict[str, Any] = copy.deepcopy(DEFAULT_SETTINGS)
    if settings_path is None:
        return data
    settings_path = Path(settings_path)
    if not settings_path.exists():
        return data
    try:
        loaded = json.loads(settings_path.read_text(encoding="utf-8"))
    except json.JSONDecodeError as exc:
        raise RuntimeError(f"Failed to parse settings file {settings_path}: {exc}") from exc
    if not isinstance(loaded, dict):
        raise RuntimeError(f"Settings file {settings_path} must contain a JSON object")
    for key, value in loaded.items():
        if key in data and data[key] is not None:
            data[key] = _coerce_value(value, data[key])
        else:
            data[key] = value
    _check_fade_step(data, settings_path)
    return data


def _check_fade_step(settings: Dict[str, Any], source: object = "settings") -> float:
    """A non-positive step would keep trails lit forever."""
    try:
        step = float(settings["fade_step"])
    except (TypeError, ValueError) as exc:
        raise RuntimeError(f"Invalid fade_step in {source}: {settings['fade_step']!r}") from exc
    if step <= 0:
        raise RuntimeError(f"fade_step in {source} must be positive, got {step}")
    return step


def resolve_path(path_value: Optional[str], base_dir: str) -> Optional[str]:
    if path_value in (None, ""):
        return path_value
    path_str = str(path_value)
    if os.path.isabs(path_str):
        return path_str
    return os.path.abspath(os.path.join(base_dir, path_str))


def lattice_params(settings: Dict[str, Any]) -> Dict[str, Any]:
    """Arguments for ``build_lattice`` derived from the settings."""
    distance = float(settings["distance"])
    return {
        "rows": int(settings["rows"]),
        "cols": int(settings["cols"]),
        "distance": distance,
        "padding": distance * float(settings["padding_ratio"]),
    }


def propagation_config(settings: Dict[str, Any]) -> PropagationConfig:
    return PropagationConfig(
        head_count=int(settings["heads"]),
        hue_step=float(settings["hue_step"]),
        head_hue_offset=float(settings["head_hue_offset"]),
        saturation=float(settings["head_saturation"]),
        lightness=float(settings["head_lightness"]),
        fade_step=_check_fade_step(settings),
    )


__all__ = [
    "DEFAULT_SETTINGS",
    "load_settings",
    "resolve_path",
    "lattice_params",
    "propagation_config",
]
