#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Triangle Mosaic Animator
------------------------
Light heads wander a triangular lattice and leave trails fading to black.
Camera tilts with the mouse; F2 shows the hotkeys.
"""
from __future__ import annotations

import argparse
import logging
import os
import random
import time
from typing import Any, Callable, Dict, Optional, Tuple

import imageio.v2 as imageio
import numpy as np
import pygame
from PIL import Image

from mosaic_core.angles import compute_angular_relationships
from mosaic_core.camera import PerspectiveCamera, pointer_camera_position
from mosaic_core.lattice import Lattice, allocate_buffers, build_lattice
from mosaic_core.propagation import PropagationState, init_heads, tick
from mosaic_core.settings import lattice_params, load_settings, propagation_config, resolve_path

LOG = logging.getLogger("triangle_mosaic")

SCRIPT_DIR = os.path.dirname(os.path.abspath(__file__))
DEFAULT_CONFIG_PATH = os.path.join(SCRIPT_DIR, "config.json")

if hasattr(Image, "Resampling"):
    RESAMPLE = Image.Resampling.LANCZOS
else:  # pragma: no cover - Pillow < 9 fallback
    RESAMPLE = Image.LANCZOS


def prepare_runtime_config(config_path: Optional[str] = None, output_root: Optional[str] = None) -> Dict:
    """Load settings and resolve output folders against the config or output dir."""

    config_path = config_path or DEFAULT_CONFIG_PATH
    config_dir = os.path.dirname(os.path.abspath(config_path))
    output_dir = os.path.abspath(output_root) if output_root else config_dir

    config = load_settings(config_path)
    config["save_frames_dir"] = resolve_path(config.get("save_frames_dir") or "frames", output_dir)
    config["record_dir"] = resolve_path(config.get("record_dir") or "frames_out", output_dir)
    return config


def parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Triangle Mosaic Animator")
    parser.add_argument("--config", default=DEFAULT_CONFIG_PATH, help="Path to a JSON config file")
    parser.add_argument(
        "--output-dir",
        help="Base directory for screenshots/recordings (overrides save/record paths)",
    )
    parser.add_argument("--seed", type=int, default=None, help="Seed for the head walk")
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging verbosity (e.g. DEBUG, INFO, WARNING)",
    )
    return parser.parse_args()


# ---------------------- Help overlay --------------------------
def _draw_help_overlay(screen, width, height):
    """Draw an in-app help window listing hotkeys. F2 toggles."""
    pad = 16
    max_w = min(560, int(width * 0.8))
    max_h = min(360, int(height * 0.8))
    surf = pygame.Surface((max_w, max_h), pygame.SRCALPHA)
    surf.fill((0, 0, 0, 200))
    title_font = pygame.font.Font(None, 30)
    item_font = pygame.font.Font(None, 22)

    y = pad
    surf.blit(title_font.render("Triangle Mosaic - Help (F2 to close)", True, (230, 230, 235)), (pad, y))
    y += 36
    items = [
        ("Space", "Pause / Resume"),
        ("R", "Reseed heads"),
        ("F3", "Toggle debug overlay"),
        ("F4", "Screenshot"),
        ("F5", "PNG sequence on/off"),
        ("F6", "MP4 writer on/off"),
        ("Mouse", "Tilt camera"),
        ("Esc", "Quit"),
    ]
    for key, desc in items:
        surf.blit(item_font.render(f"{key:>6}  -  {desc}", True, (235, 235, 240)), (pad, y))
        y += 24

    dst = screen.get_rect()
    screen.blit(surf, (dst.centerx - max_w // 2, dst.centery - max_h // 2))


# ------------------------ Drawing -----------------------------
def draw_mosaic(
    screen,
    camera: PerspectiveCamera,
    positions: np.ndarray,
    colors: np.ndarray,
    background: Tuple[int, int, int],
) -> int:
    """Draw the triangles over ``background``; returns how many were drawn.

    On a black background only lit triangles are drawn. Any other background
    gets every triangle, with unlit ones in black, so the gaps between
    triangles stay visible.
    """
    width, height = screen.get_size()
    screen.fill(background)
    tri_colors = colors.reshape(-1, 9)[:, :3]
    if any(background[:3]):
        shown = np.arange(tri_colors.shape[0])
    else:
        shown = np.flatnonzero(tri_colors.sum(axis=1) > 0.0)
    if shown.size == 0:
        return 0
    verts = positions.reshape(-1, 3, 3)[shown].reshape(-1, 3)
    screen_pts = camera.project(verts, width, height).reshape(-1, 3, 2)
    rgb = np.clip(tri_colors[shown] * 255.0, 0, 255).astype(np.uint8)
    drawn = 0
    for pts, col in zip(screen_pts, rgb):
        if np.isnan(pts).any():
            continue
        pygame.draw.polygon(screen, tuple(int(c) for c in col), [(float(x), float(y)) for x, y in pts])
        drawn += 1
    return drawn


def grab_frame(screen) -> np.ndarray:
    return pygame.surfarray.array3d(screen).swapaxes(0, 1)


def save_screenshot(screen, directory: str) -> Optional[str]:
    """Save ``screen`` as a timestamped PNG; returns the path, or None on failure."""
    path = os.path.join(directory, f"mosaic_{int(time.time() * 1000)}.png")
    try:
        os.makedirs(directory, exist_ok=True)
        pygame.image.save(screen, path)
    except (OSError, pygame.error) as exc:
        LOG.error("Screenshot failed (%s): %s", path, exc)
        return None
    LOG.info("Saved screenshot: %s", path)
    return path


# ----------------------- Recording ----------------------------
class FrameRecorder:
    """PNG sequence and MP4 output for rendered frames.

    A failing write turns that output off and logs the error; the animation
    keeps running.
    """

    def __init__(
        self,
        record_dir: str,
        fps: int = 20,
        codec: str = "libx264",
        scale: float = 1.0,
        writer_factory: Optional[Callable[..., Any]] = None,
    ):
        self.record_dir = record_dir
        self.fps = int(fps)
        self.codec = codec
        self.scale = float(scale)
        self.writer_factory = writer_factory or imageio.get_writer
        self.record_png = False
        self.png_index = 0
        self.writer = None

    @property
    def active(self) -> bool:
        return self.record_png or self.writer is not None

    def toggle_png(self) -> bool:
        if not self.record_png:
            try:
                os.makedirs(self.record_dir, exist_ok=True)
            except OSError as exc:
                LOG.error("Could not create record dir %s: %s", self.record_dir, exc)
                return False
        self.record_png = not self.record_png
        LOG.info("[REC] PNG frames: %s -> %s", "ON" if self.record_png else "OFF", self.record_dir)
        return self.record_png

    def start_writer(self) -> bool:
        if self.writer is not None:
            return True
        out_path = os.path.join(self.record_dir, time.strftime("mosaic_%Y%m%d_%H%M%S.mp4"))
        try:
            os.makedirs(self.record_dir, exist_ok=True)
            self.writer = self.writer_factory(out_path, fps=self.fps, codec=self.codec, quality=8)
        except (OSError, RuntimeError, ValueError) as exc:
            LOG.error("Could not start MP4 writer at %s: %s", out_path, exc)
            self.writer = None
            return False
        LOG.info("[REC] MP4 writer ON -> %s", out_path)
        return True

    def stop_writer(self) -> None:
        if self.writer is None:
            return
        writer, self.writer = self.writer, None
        try:
            writer.close()
        except (OSError, RuntimeError, ValueError) as exc:
            LOG.error("MP4 writer did not finalize cleanly: %s", exc)
            return
        LOG.info("[REC] MP4 writer OFF (file finalized)")

    def toggle_writer(self) -> bool:
        if self.writer is None:
            return self.start_writer()
        self.stop_writer()
        return False

    def _save_png(self, frame: np.ndarray) -> None:
        img = Image.fromarray(frame)
        if self.scale != 1.0:
            size = (max(1, int(img.width * self.scale)), max(1, int(img.height * self.scale)))
            img = img.resize(size, RESAMPLE)
        img.save(os.path.join(self.record_dir, f"mosaic_{self.png_index:06d}.png"))
        self.png_index += 1

    def write(self, frame: np.ndarray) -> None:
        if self.record_png:
            try:
                self._save_png(frame)
            except (OSError, ValueError) as exc:
                LOG.error("[REC] PNG frame failed, sequence stopped: %s", exc)
                self.record_png = False
        if self.writer is not None:
            try:
                self.writer.append_data(frame)
            except (OSError, RuntimeError, ValueError) as exc:
                LOG.error("[REC] MP4 writer failed, recording stopped: %s", exc)
                self.stop_writer()

    def frame_size_changed(self) -> None:
        """An MP4 stream keeps the size of its first frame."""
        if self.writer is not None:
            LOG.warning("[REC] Window resized; MP4 writer stopped")
            self.stop_writer()

    def close(self) -> None:
        self.stop_writer()
        self.record_png = False


# -------------------------- Main ------------------------------
def main():
    args = parse_args()
    log_level_name = str(args.log_level).upper()
    logging.basicConfig(
        level=getattr(logging, log_level_name, logging.INFO),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )
    config = prepare_runtime_config(args.config, args.output_dir)
    seed = args.seed if args.seed is not None else config.get("seed")
    rng = random.Random(seed)

    lattice: Lattice = build_lattice(**lattice_params(config))
    compute_angular_relationships(lattice.triangles)
    positions, colors = allocate_buffers(lattice)
    LOG.info(
        "Lattice %dx%d ready: %d triangles (seed=%s)",
        lattice.rows, lattice.cols, len(lattice.triangles), seed,
    )

    def reseed() -> PropagationState:
        colors.fill(0.0)
        return init_heads(lattice, config=propagation_config(config), rng=rng)

    state = reseed()

    pygame.init()
    flags = pygame.DOUBLEBUF | pygame.RESIZABLE
    screen = pygame.display.set_mode((config["width"], config["height"]), flags)
    pygame.display.set_caption("Triangle Mosaic")
    clock = pygame.time.Clock()
    debug_font = pygame.font.Font(None, 22)

    width, height = screen.get_size()
    camera = PerspectiveCamera(
        fov=float(config["fov"]),
        aspect=width / max(1, height),
        position=(lattice.center[0], lattice.center[1], float(config["camera_distance"])),
        target=(lattice.center[0], lattice.center[1], 0.0),
    )
    background = tuple(config["background_color"])
    tick_ms = max(1, int(config["tick_ms"]))

    paused = False
    debug = False
    help_visible = False
    recorder = FrameRecorder(
        config["record_dir"],
        fps=config["record_fps"],
        codec=config["record_codec"],
        scale=config["record_scale"],
    )

    next_tick_at = pygame.time.get_ticks()
    running = True
    try:
        while running:
            for event in pygame.event.get():
                if event.type == pygame.QUIT:
                    running = False
                elif event.type == pygame.VIDEORESIZE:
                    screen = pygame.display.set_mode(event.size, flags)
                    camera.aspect = event.w / max(1, event.h)
                    recorder.frame_size_changed()
                elif event.type == pygame.KEYDOWN:
                    if event.key == pygame.K_ESCAPE:
                        running = False
                    elif event.key == pygame.K_SPACE:
                        paused = not paused
                    elif event.key == pygame.K_F2:
                        help_visible = not help_visible
                    elif event.key == pygame.K_F3:
                        debug = not debug
                    elif event.key == pygame.K_F4:
                        save_screenshot(screen, config["save_frames_dir"])
                    elif event.key == pygame.K_F5:
                        recorder.toggle_png()
                    elif event.key == pygame.K_F6:
                        recorder.toggle_writer()
                    elif event.key == pygame.K_r:
                        state = reseed()
                        LOG.info("Reseeded %d heads", len(state.heads))

            now = pygame.time.get_ticks()
            ticked = False
            if not paused and now >= next_tick_at:
                tick(state, positions, colors)
                next_tick_at = now + tick_ms
                ticked = True

            width, height = screen.get_size()
            pointer = pygame.mouse.get_pos() if pygame.mouse.get_focused() else (width / 2, height / 2)
            camera.position = pointer_camera_position(
                lattice.center,
                pointer,
                (width, height),
                float(config["pointer_sway"]),
                float(config["camera_distance"]),
            )
            drawn = draw_mosaic(screen, camera, positions, colors, background)

            if ticked and recorder.active:
                recorder.write(grab_frame(screen))

            if debug:
                text = f"tick {state.ticks}  fading {len(state.fading)}  drawn {drawn}  fps {clock.get_fps():.0f}"
                screen.blit(debug_font.render(text, True, (200, 200, 210)), (10, 10))
            if help_visible:
                _draw_help_overlay(screen, width, height)
            pygame.display.flip()
            clock.tick(60)
    finally:
        recorder.close()
        pygame.quit()


if __name__ == "__main__":
    main()
