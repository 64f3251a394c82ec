"""Per-frame simulation parameters passed through to the step kernel."""

import numpy as np
from dataclasses import dataclass, field


# Matches the Metal struct: 15 float scalars, one pad float so the float4x4
# (16-byte aligned) starts at offset 64, then the matrix. Stride 128 bytes.
_SCALAR_FIELDS = [
    "num_boid",
    "num_forces",
    "neighbour_radius",
    "neighbour_radius_sq",
    "alignment_weight",
    "separation_weight",
    "cohesion_weight",
    "delta_time",
    "x_bounds",
    "y_bounds",
    "z_bounds",
    "bounds_weight",
    "boid_speed",
    "reaction_factor",
    "show_point_light",
    "pad0",
]

UNIFORM_DTYPE = np.dtype({
    "names": _SCALAR_FIELDS + ["model_transform"],
    "formats": ["<f4"] * len(_SCALAR_FIELDS) + [("<f4", (4, 4))],
    "offsets": [4 * i for i in range(len(_SCALAR_FIELDS))] + [64],
    "itemsize": 128,
})


def _identity():
    return np.identity(4, dtype=np.float32)


@dataclass
class Uniform:
    """
    Tunable coefficients for one simulation step.

    Attributes:
        num_boid: Number of boids, fixed after initialization
        num_forces: Number of active attractors/repellors
        neighbour_radius: Boids within this distance influence each other
        alignment_weight: Priority of matching neighbour heading
        separation_weight: Priority of moving away from close neighbours
        cohesion_weight: Priority of staying near the neighbour centre
        delta_time: Seconds since the previous frame
        x_bounds, y_bounds, z_bounds: Half-extents of the world box around 0
        bounds_weight: How quickly boids turn back inside the bounds
        boid_speed: Distance travelled per second along the heading
        reaction_factor: 0 adopts the new heading at once, 1 never turns
        show_point_light: Auxiliary render flag, marshaled as 1.0/0.0
        model_transform: 4x4 transform applied to every rendered boid
    """
    num_boid: int = 0
    num_forces: int = 0
    neighbour_radius: float = 1.5
    alignment_weight: float = 2.0
    separation_weight: float = 2.0
    cohesion_weight: float = 4.0
    delta_time: float = 0.0
    x_bounds: float = 15.0
    y_bounds: float = 6.0
    z_bounds: float = 1.5
    bounds_weight: float = 2.0
    boid_speed: float = 7.0
    reaction_factor: float = 0.9
    show_point_light: bool = False
    model_transform: np.ndarray = field(default_factory=_identity)

    @classmethod
    def from_config(cls, num_boid: int, settings: dict) -> "Uniform":
        return cls(num_boid=num_boid, **settings)

    @property
    def neighbour_radius_sq(self) -> float:
        return self.neighbour_radius * self.neighbour_radius

    def write_into(self, out: np.ndarray):
        """Copy every field into a 1-element UNIFORM_DTYPE array in place."""
        if out.dtype != UNIFORM_DTYPE or out.shape != (1,):
            raise ValueError(f"Expected a (1,) array of UNIFORM_DTYPE, got {out.shape} {out.dtype}")
        for name in _SCALAR_FIELDS[:-1]:
            out[name][0] = float(getattr(self, name))
        out["pad0"][0] = 0.0
        # simd/Metal matrices are column-major
        out["model_transform"][0] = np.asarray(self.model_transform, dtype=np.float32).T

    def to_array(self) -> np.ndarray:
        out = np.zeros(1, dtype=UNIFORM_DTYPE)
        self.write_into(out)
        return out

    def to_bytes(self) -> bytes:
        return self.to_array().tobytes()
