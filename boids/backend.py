"""
Compute Device Detection and Selection
======================================

Picks the parallel compute device that runs the boid step kernel:
1. Metal (Apple Silicon / macOS) - native compute shader via PyObjC
2. CPU (fallback) - Numba parallel kernel

Both expose the same small surface used by BoidEngine:
- make_buffer(shape, dtype) -> DeviceBuffer
- dispatch(pos_in, vel_in, forces, pos_out, vel_out, uniform) -> bool
"""

import os
import numpy as np
from enum import Enum
from typing import Optional, Tuple

from .errors import ComputeDeviceError, KernelCompileError
from .force import force_rows
from .uniform import UNIFORM_DTYPE


class Backend(Enum):
    METAL = "metal"
    CPU = "cpu"


class DeviceBuffer:
    """
    A device-visible memory region plus its numpy view.

    handle is whatever the device binds when dispatching (an MTLBuffer for
    Metal, None on the CPU where the array itself is the memory).
    """

    def __init__(self, array: np.ndarray, handle=None):
        self.array = array
        self.handle = handle

    @property
    def nbytes(self) -> int:
        return self.array.nbytes

    def read_only(self) -> np.ndarray:
        view = self.array.view()
        view.flags.writeable = False
        return view


# =============================================================================
# CPU IMPLEMENTATION (Numba)
# =============================================================================

class CPUComputeDevice:
    """Runs the step kernel on all CPU cores through Numba's prange."""

    backend = Backend.CPU

    def __init__(self):
        try:
            from . import kernels
            kernels.warmup()
        except Exception as e:
            raise KernelCompileError(f"Failed to compile Numba step kernel: {e}") from e

        self._kernels = kernels
        self.name = _get_cpu_info()
        print(f"[CPU] Compiled step kernel ({self.name})")

    def make_buffer(self, shape, dtype) -> Optional[DeviceBuffer]:
        return DeviceBuffer(np.zeros(shape, dtype=dtype))

    def dispatch(self, pos_in: DeviceBuffer, vel_in: DeviceBuffer, forces: np.ndarray,
                 pos_out: DeviceBuffer, vel_out: DeviceBuffer, uniform: DeviceBuffer) -> bool:
        """Run one step synchronously. The CPU path never skips a frame."""
        u = uniform.array[0]
        num_boids = pos_in.array.shape[0]

        self._kernels.step_boids(
            pos_in.array,
            vel_in.array,
            force_rows(forces),
            int(u["num_forces"]),
            pos_out.array,
            vel_out.array,
            float(u["neighbour_radius_sq"]),
            float(u["alignment_weight"]),
            float(u["separation_weight"]),
            float(u["cohesion_weight"]),
            float(u["delta_time"]),
            float(u["x_bounds"]),
            float(u["y_bounds"]),
            float(u["z_bounds"]),
            float(u["bounds_weight"]),
            float(u["boid_speed"]),
            float(u["reaction_factor"]),
            num_boids
        )
        return True


def _get_cpu_info() -> str:
    """Get CPU info for logging."""
    import platform
    cores = os.cpu_count() or 1
    return f"{platform.processor() or 'Unknown CPU'} ({cores} cores)"


# =============================================================================
# DETECTION
# =============================================================================

def _check_metal() -> Tuple[bool, str]:
    """Check if the native Metal device is usable."""
    try:
        from .metal import is_metal_available
    except ImportError:
        return False, ""
    return is_metal_available()


def detect_backend() -> Tuple[Backend, str]:
    """Detect the best available compute backend."""
    metal_available, metal_info = _check_metal()
    if metal_available:
        return Backend.METAL, metal_info

    return Backend.CPU, _get_cpu_info()


def create_device(name: Optional[str] = None):
    """
    Create a compute device.

    Args:
        name: "metal", "cpu" or None to auto-detect

    Raises:
        ComputeDeviceError: the requested device is unknown or unavailable
        KernelCompileError: the step kernel failed to build on the device
    """
    if name is None:
        backend, info = detect_backend()
        print(f"[Device] Using backend: {backend.value} - {info}")
    else:
        try:
            backend = Backend(name.lower())
        except ValueError:
            raise ComputeDeviceError(f"Unknown compute device: {name!r}") from None

    if backend == Backend.METAL:
        available, info = _check_metal()
        if not available:
            raise ComputeDeviceError(info or "Metal not available")
        from .metal import MetalComputeDevice
        return MetalComputeDevice()

    return CPUComputeDevice()


def make_uniform_buffer(device) -> Optional[DeviceBuffer]:
    """Allocate one Uniform-sized buffer on a device."""
    return device.make_buffer((1,), UNIFORM_DTYPE)
