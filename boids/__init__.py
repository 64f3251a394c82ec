"""Boid flocking simulation core."""

from .backend import Backend, DeviceBuffer, create_device, detect_backend, make_uniform_buffer
from .engine import BoidEngine, generate_random_positions, generate_random_velocities
from .errors import BoidError, ComputeDeviceError, EngineStateError, KernelCompileError
from .force import FORCE_DTYPE, Force, pack_forces
from .uniform import UNIFORM_DTYPE, Uniform
from .walker import RandomWalker

__all__ = [
    "Backend", "DeviceBuffer", "create_device", "detect_backend", "make_uniform_buffer",
    "BoidEngine", "generate_random_positions", "generate_random_velocities",
    "BoidError", "ComputeDeviceError", "EngineStateError", "KernelCompileError",
    "FORCE_DTYPE", "Force", "pack_forces",
    "UNIFORM_DTYPE", "Uniform",
    "RandomWalker",
]
