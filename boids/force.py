"""Attractor/repellor record shared with the step kernel."""

import numpy as np
from dataclasses import dataclass, field
from typing import Sequence, Tuple


# Matches the Metal struct:
#   struct Force { float radius; float strength; float2 padding; float3 pos; };
# float3 aligns on 16 bytes, so pos starts at offset 16 and the stride is 32.
FORCE_DTYPE = np.dtype({
    "names": ["radius", "strength", "pad0", "pad1", "x", "y", "z"],
    "formats": ["<f4"] * 7,
    "offsets": [0, 4, 8, 12, 16, 20, 24],
    "itemsize": 32,
})


@dataclass
class Force:
    """
    A point of attraction (positive strength) or repulsion (negative strength).

    Attributes:
        radius: Boids further than this from the force are unaffected
        strength: Signed magnitude, scaled down with distance in the kernel
        position: World-space centre of the force
    """
    radius: float
    strength: float
    position: Tuple[float, float, float] = field(default=(0.0, 0.0, 0.0))

    @property
    def is_attractor(self) -> bool:
        return self.strength > 0


def pack_forces(forces: Sequence[Force]) -> np.ndarray:
    """
    Pack forces into a kernel-ready array.

    The array always holds at least one slot, the kernel expects a bound
    buffer even when no forces are active. The active count travels
    separately in the Uniform.
    """
    packed = np.zeros(max(1, len(forces)), dtype=FORCE_DTYPE)
    for i, force in enumerate(forces):
        packed["radius"][i] = force.radius
        packed["strength"][i] = force.strength
        packed["x"][i], packed["y"][i], packed["z"][i] = force.position
    return packed


def force_rows(packed: np.ndarray) -> np.ndarray:
    """Flatten packed records into (n, 5) float32 rows: radius, strength, x, y, z."""
    rows = np.empty((len(packed), 5), dtype=np.float32)
    rows[:, 0] = packed["radius"]
    rows[:, 1] = packed["strength"]
    rows[:, 2] = packed["x"]
    rows[:, 3] = packed["y"]
    rows[:, 4] = packed["z"]
    return rows
