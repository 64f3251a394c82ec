import sys
from pathlib import Path

import numpy as np
import pytest

ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from boids import BoidEngine, Uniform  # noqa: E402
from boids.backend import CPUComputeDevice  # noqa: E402


@pytest.fixture(scope="session")
def cpu_device():
    return CPUComputeDevice()


@pytest.fixture
def make_engine(cpu_device):
    def _make(positions, velocities):
        engine = BoidEngine(device=cpu_device)
        engine.set_buffers(np.asarray(positions, dtype=np.float32),
                           np.asarray(velocities, dtype=np.float32))
        return engine
    return _make


def plain_uniform(num_boid: int, **overrides) -> Uniform:
    """Unit weights, unit speed/time, no smoothing, bounds far away."""
    settings = dict(
        num_boid=num_boid,
        neighbour_radius=1.5,
        alignment_weight=1.0,
        separation_weight=1.0,
        cohesion_weight=1.0,
        delta_time=1.0,
        x_bounds=100.0,
        y_bounds=100.0,
        z_bounds=100.0,
        bounds_weight=0.0,
        boid_speed=1.0,
        reaction_factor=0.0,
    )
    settings.update(overrides)
    return Uniform(**settings)
