"""Per-triangle colour state that darkens towards black."""
from __future__ import annotations

import colorsys
from dataclasses import dataclass
from typing import Tuple

FADE_STEP = 0.001


@dataclass
class HSLColor:
    hue: float
    saturation: float
    lightness: float

    def copy(self) -> "HSLColor":
        return HSLColor(self.hue, self.saturation, self.lightness)

    def offset(self, hue: float = 0.0, saturation: float = 0.0, lightness: float = 0.0) -> "HSLColor":
        """Return a shifted copy; hue wraps, saturation and lightness clamp to [0, 1]."""
        return HSLColor(
            (self.hue + hue) % 1.0,
            min(1.0, max(0.0, self.saturation + saturation)),
            min(1.0, max(0.0, self.lightness + lightness)),
        )

    def to_rgb(self) -> Tuple[float, float, float]:
        return colorsys.hls_to_rgb(self.hue, self.lightness, self.saturation)


class AnimatedTriangle:
    """A vacated triangle fading out, tied to its slot in the flat buffers."""

    def __init__(self, triangle: int, index: int, color: HSLColor, fade_step: float = FADE_STEP):
        self.triangle = triangle
        self.index = index
        self.color = color
        self.fade_step = fade_step

    def __repr__(self) -> str:
        return f"AnimatedTriangle(triangle={self.triangle}, lightness={self.color.lightness:.4f})"

    def animate(self) -> None:
        self.color = self.color.offset(lightness=-self.fade_step)
        # close enough to black: snap the rest of the way
        if self.is_faded():
            self.color = HSLColor(self.color.hue, self.color.saturation, 0.0)

    def is_faded(self) -> bool:
        return self.color.lightness < self.fade_step

    @property
    def rgb(self) -> Tuple[float, float, float]:
        if self.is_faded():
            return (0.0, 0.0, 0.0)
        return self.color.to_rgb()


__all__ = ["FADE_STEP", "HSLColor", "AnimatedTriangle"]
