"""Headless frame driver that ties the engine, forces and buffer pool together."""

import time
import numpy as np
from dataclasses import dataclass, replace
from typing import Callable, Optional

from config import boids as config
from boids import BoidEngine, Uniform, make_uniform_buffer
from .buffer_pool import BufferManager
from .forces import ForceField, ForceMode


@dataclass
class Frame:
    """What a renderer receives after a completed step."""
    index: int
    positions: np.ndarray    # read-only (n, 4) float32
    velocities: np.ndarray   # read-only (n, 4) float32
    uniform: bytes           # serialized Uniform record


class Application:
    """Advances the simulation one frame per render_frame() call."""

    def __init__(self, num_boids: Optional[int] = None, engine: Optional[BoidEngine] = None,
                 seed: Optional[int] = None, device_name: Optional[str] = None,
                 on_present: Optional[Callable[[Frame], None]] = None):
        num_boids = config.BOIDS["count"] if num_boids is None else num_boids
        seed = config.BOIDS["seed"] if seed is None else seed
        device_name = config.BOIDS["device"] if device_name is None else device_name
        rng = np.random.default_rng(seed)

        # Simulation
        self.engine = engine if engine is not None else BoidEngine(device_name=device_name)
        self.engine.initialize(num_boids, config.BOIDS["spawn_range"], rng=rng)
        self.default_uniform = Uniform.from_config(num_boids, config.UNIFORM)

        self.force_field = ForceField(
            bounds=(self.default_uniform.x_bounds,
                    self.default_uniform.y_bounds,
                    self.default_uniform.z_bounds),
            rng=rng,
        )

        self.uniform_buffers = BufferManager(
            self.engine.device,
            inflight_count=config.FRAME["inflight_count"],
            create_buffer=make_uniform_buffer,
        )
        self.uniform_buffers.create_buffers()

        # State
        self.on_present = on_present
        self.paused = False
        self.last_render_time: Optional[float] = None
        self.frames_presented = 0
        self.frames_skipped = 0

    @property
    def force_mode(self) -> ForceMode:
        return self.force_field.mode

    def cycle_force_mode(self) -> ForceMode:
        mode = self.force_field.cycle()
        print(f"[Boids] Force mode: {mode.value} ({len(self.force_field.forces)} forces)")
        return mode

    def toggle_pause(self):
        self.paused = not self.paused

    def _build_uniform(self, delta_time: float) -> Uniform:
        return replace(
            self.default_uniform,
            delta_time=delta_time,
            show_point_light=self.force_field.show_point_light,
            model_transform=self.default_uniform.model_transform.copy(),
        )

    def render_frame(self, now: float) -> Optional[Frame]:
        """
        Run one frame at time `now` (seconds).

        Returns the presented Frame, or None when nothing new was produced
        (paused, first frame, no free uniform slot, or a skipped step).
        """
        if self.paused:
            return None

        uniform_buffer = self.uniform_buffers.next_sync(timeout=config.FRAME["acquire_timeout"])
        if uniform_buffer is None:
            self.frames_skipped += 1
            return None

        try:
            if self.last_render_time is None:
                self.last_render_time = now
                return None

            # Clamp in case the app was paused since the last update
            delta_time = min(config.FRAME["max_delta_time"], now - self.last_render_time)
            self.last_render_time = now

            forces = self.force_field.update()
            uniform = self._build_uniform(delta_time)
            uniform.num_forces = len(forces)

            if not self.engine.step(uniform, forces, uniform_buffer=uniform_buffer):
                self.frames_skipped += 1
                return None

            # The buffers just written become the current ones
            self.engine.swap_buffers()
            frame = Frame(
                index=self.engine.frame_count,
                positions=self.engine.current_position_buffer(),
                velocities=self.engine.current_velocity_buffer(),
                uniform=uniform_buffer.array.tobytes(),
            )
        finally:
            self.uniform_buffers.release()

        self.frames_presented += 1
        if self.on_present is not None:
            self.on_present(frame)
        return frame

    def run(self, frames: Optional[int] = None, cycle_every: Optional[int] = None):
        """
        Main loop. Runs until `frames` frames are presented or Ctrl+C.

        While paused the loop idles without stepping; toggle_pause() from a
        callback or another thread resumes it.

        cycle_every advances the force mode every that many presented frames.
        """
        interval = config.FRAME["status_interval"]
        start = time.perf_counter()
        window_start = start
        window_frames = 0

        try:
            while frames is None or self.frames_presented < frames:
                if self.paused:
                    time.sleep(config.FRAME["pause_poll"])
                    continue

                frame = self.render_frame(time.perf_counter())
                if frame is None:
                    continue

                window_frames += 1
                if cycle_every and self.frames_presented % cycle_every == 0:
                    self.cycle_force_mode()

                if window_frames >= interval:
                    now = time.perf_counter()
                    fps = window_frames / max(now - window_start, 1e-9)
                    print(f"[Boids] Frame {frame.index}  |  FPS: {fps:.0f}  |  "
                          f"Forces: {self.force_mode.value}")
                    window_start = now
                    window_frames = 0
        except KeyboardInterrupt:
            pass

        elapsed = time.perf_counter() - start
        print(f"[Boids] {self.frames_presented} frames in {elapsed:.1f}s "
              f"({self.frames_skipped} skipped)")
