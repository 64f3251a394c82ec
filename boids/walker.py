"""Smooth random motion for attractor/repellor origins."""

import numpy as np
from typing import Optional, Tuple

Range = Tuple[float, float]


def random_unit_vector(rng: np.random.Generator) -> np.ndarray:
    """Uniform sample in [-1, 1]^3, normalized (resampled if degenerate)."""
    while True:
        v = rng.uniform(-1.0, 1.0, 3).astype(np.float32)
        length = float(np.linalg.norm(v))
        if length > 1e-6:
            return v / np.float32(length)


class RandomWalker:
    """
    Wandering 3D point confined to a box.

    Each update steers the heading a little toward a fresh random direction
    and advances the position by ``velocity * speed``. When the point leaves
    the box, the first violated side in the order x-low, x-high, y-low,
    y-high, z-low, z-high gets its velocity component forced back inward.
    Only that one axis is corrected per update.
    """

    def __init__(
        self,
        speed: float,
        start_position,
        x_bounds: Range,
        y_bounds: Range,
        z_bounds: Range,
        rng: Optional[np.random.Generator] = None,
        steer_weight: float = 0.1,
        push_back: float = 5.0,
    ):
        self.speed = np.float32(speed)
        self.bounds = (x_bounds, y_bounds, z_bounds)
        self.steer_weight = np.float32(steer_weight)
        self.push_back = np.float32(push_back)
        self._rng = rng if rng is not None else np.random.default_rng()

        self.position = np.array(start_position, dtype=np.float32)
        self.velocity = random_unit_vector(self._rng)

    def update(self) -> np.ndarray:
        """Advance one step and return a copy of the new position."""
        v = random_unit_vector(self._rng)
        self.velocity = self.velocity * (1 - self.steer_weight) + v * self.steer_weight
        self.position = self.position + self.velocity * self.speed

        for axis, (low, high) in enumerate(self.bounds):
            if self.position[axis] < low:
                self.velocity[axis] = self.push_back
                break
            if self.position[axis] > high:
                self.velocity[axis] = -self.push_back
                break

        return self.position.copy()
