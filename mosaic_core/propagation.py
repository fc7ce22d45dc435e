"""Light heads walking the triangle graph, leaving fading trails behind."""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence, Tuple

import numpy as np

from .fade import FADE_STEP, AnimatedTriangle, HSLColor
from .lattice import Lattice, Triangle

LOG = logging.getLogger("mosaic_core.propagation")

# Favour weights for candidate moves. Ratios are tuned for visual pacing.
FAVOUR_ABSENT = 0
FAVOUR_PREVIOUS = 1
FAVOUR_FADING = 2
FAVOUR_FRESH = 20

DEFAULT_HEAD_COUNT = 9


@dataclass
class PropagationConfig:
    head_count: int = DEFAULT_HEAD_COUNT
    hue_step: float = 0.0002
    head_hue_offset: float = 0.01
    saturation: float = 0.7
    lightness: float = 0.5
    fade_step: float = FADE_STEP


@dataclass
class Head:
    """A head resident on a triangle, with the colour it paints there."""

    triangle: int
    color: HSLColor


@dataclass
class PropagationState:
    lattice: Lattice
    config: PropagationConfig
    base_color: HSLColor
    rng: random.Random
    heads: List[Head] = field(default_factory=list)
    previous: List[Optional[Head]] = field(default_factory=list)
    fading: Dict[int, AnimatedTriangle] = field(default_factory=dict)
    ticks: int = 0


def candidate_favours(
    triangle: Triangle,
    previous: Optional[int],
    fading: Dict[int, AnimatedTriangle],
) -> List[Tuple[str, Optional[int], int]]:
    """Return (slot, neighbour, favour) for the left, right and back edges."""
    candidates = []
    for slot in triangle.neighbor_slots():
        neighbor = triangle.neighbor(slot)
        if neighbor is None:
            favour = FAVOUR_ABSENT
        elif neighbor == previous:
            favour = FAVOUR_PREVIOUS
        elif neighbor in fading:
            favour = FAVOUR_FADING
        else:
            favour = FAVOUR_FRESH
        candidates.append((slot, neighbor, favour))
    return candidates


def weighted_choice(weights: Sequence[float], rng: random.Random) -> Optional[int]:
    """Pick an index with probability proportional to its weight.

    Returns None when every weight is zero.
    """
    total = sum(weights)
    if total <= 0:
        return None
    draw = rng.random() * total
    cumulative = 0.0
    for idx, weight in enumerate(weights):
        cumulative += weight
        if draw < cumulative:
            return idx
    # float rounding can leave the draw on the last boundary
    return max(i for i, w in enumerate(weights) if w > 0)


def init_heads(
    lattice: Lattice,
    head_count: Optional[int] = None,
    config: Optional[PropagationConfig] = None,
    rng: Optional[random.Random] = None,
) -> PropagationState:
    """Seed the heads on uniformly random triangles with a random base hue."""
    config = config or PropagationConfig()
    if head_count is not None:
        config = replace(config, head_count=head_count)
    rng = rng or random.Random()
    base = HSLColor(rng.random(), config.saturation, config.lightness)
    state = PropagationState(lattice=lattice, config=config, base_color=base, rng=rng)
    if not lattice.triangles:
        LOG.debug("No triangles to seed; heads stay empty")
        return state
    for _ in range(max(0, config.head_count)):
        idx = rng.randrange(len(lattice.triangles))
        state.heads.append(Head(idx, base.copy()))
        state.previous.append(None)
    LOG.debug("Seeded %d heads at %s", len(state.heads), [h.triangle for h in state.heads])
    return state


def _next_triangle(state: PropagationState, h: int) -> int:
    head = state.heads[h]
    tri = state.lattice.triangles[head.triangle]
    prev = state.previous[h]
    candidates = candidate_favours(tri, prev.triangle if prev is not None else None, state.fading)
    choice = weighted_choice([favour for _, _, favour in candidates], state.rng)
    if choice is None:
        return head.triangle
    return candidates[choice][1]


def _write_color(colors: np.ndarray, index: int, rgb: Tuple[float, float, float]) -> None:
    colors[index * 9:index * 9 + 9] = rgb * 3


def tick(state: PropagationState, positions: np.ndarray, colors: np.ndarray) -> PropagationState:
    """Advance every head one step and sweep the fading set into the buffers."""
    config = state.config
    triangles = state.lattice.triangles
    for h, head in enumerate(state.heads):
        nxt = _next_triangle(state, h)
        state.previous[h] = head
        # replace any earlier entry so the fade restarts from full colour
        state.fading[head.triangle] = AnimatedTriangle(
            head.triangle, head.triangle, head.color.copy(), config.fade_step
        )
        state.heads[h] = Head(nxt, state.base_color.offset(hue=config.head_hue_offset * h))

    state.base_color = state.base_color.offset(hue=config.hue_step)

    for tri_idx, anim in list(state.fading.items()):
        anim.animate()
        _write_color(colors, anim.index, anim.rgb)
        positions[anim.index * 9:anim.index * 9 + 9] = triangles[tri_idx].position
        if anim.is_faded():
            del state.fading[tri_idx]

    for head in state.heads:
        _write_color(colors, head.triangle, head.color.to_rgb())

    state.ticks += 1
    return state


__all__ = [
    "FAVOUR_ABSENT",
    "FAVOUR_PREVIOUS",
    "FAVOUR_FADING",
    "FAVOUR_FRESH",
    "DEFAULT_HEAD_COUNT",
    "PropagationConfig",
    "Head",
    "PropagationState",
    "candidate_favours",
    "weighted_choice",
    "init_heads",
    "tick",
]
