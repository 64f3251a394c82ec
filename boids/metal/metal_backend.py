"""
Metal Boid Backend for Apple Silicon
====================================

Uses the stepBoid compute shader in boids.metal. All buffers are created
with MTLResourceStorageModeShared, so numpy views over buffer contents are
the buffers themselves (no upload/readback copies).
"""

import numpy as np
from pathlib import Path
from typing import Optional, Tuple

from ..backend import Backend, DeviceBuffer
from ..errors import ComputeDeviceError, KernelCompileError

# Check for Metal availability
_METAL_AVAILABLE = False
_METAL_ERROR = None

try:
    import Metal
    from Metal import (
        MTLCreateSystemDefaultDevice,
        MTLResourceStorageModeShared,
        MTLCommandBufferStatusError,
        MTLSize,
    )
    _METAL_AVAILABLE = True
except ImportError as e:
    _METAL_ERROR = str(e)
except Exception as e:
    _METAL_ERROR = str(e)


KERNEL_NAME = "stepBoid"
SHADER_PATH = Path(__file__).parent / "boids.metal"


def is_metal_available() -> Tuple[bool, str]:
    """Check if Metal backend is available."""
    if not _METAL_AVAILABLE:
        return False, f"Metal not available: {_METAL_ERROR}"

    try:
        device = MTLCreateSystemDefaultDevice()
        if device is None:
            return False, "No Metal device found"

        name = device.name()
        max_buffer = device.maxBufferLength()
        return True, f"{name} (max buffer: {max_buffer // (1024**3)}GB)"
    except Exception as e:
        return False, f"Metal initialization failed: {e}"


class MetalComputeDevice:
    """Runs stepBoid on the default Metal device and waits for completion."""

    backend = Backend.METAL

    def __init__(self):
        if not _METAL_AVAILABLE:
            raise ComputeDeviceError(f"Metal not available: {_METAL_ERROR}")

        self.device = MTLCreateSystemDefaultDevice()
        if self.device is None:
            raise ComputeDeviceError("Failed to create Metal device")

        self.name = str(self.device.name())
        self.command_queue = self.device.newCommandQueue()
        if self.command_queue is None:
            raise ComputeDeviceError("Failed to create Metal command queue")

        self._compile_shader()
        print(f"[Metal] Compiled {KERNEL_NAME} on {self.name}")

    def _compile_shader(self):
        """Compile boids.metal and build the step pipeline."""
        if not SHADER_PATH.exists():
            raise KernelCompileError(f"Metal shader not found: {SHADER_PATH}")

        source = SHADER_PATH.read_text()

        library, error = self.device.newLibraryWithSource_options_error_(source, None, None)
        if library is None:
            raise KernelCompileError(f"Failed to compile Metal shader: {error}")

        function = library.newFunctionWithName_(KERNEL_NAME)
        if function is None:
            raise KernelCompileError(f"Kernel {KERNEL_NAME} not found in {SHADER_PATH.name}")

        pipeline, error = self.device.newComputePipelineStateWithFunction_error_(function, None)
        if pipeline is None:
            raise KernelCompileError(f"Failed to create pipeline for {KERNEL_NAME}: {error}")

        self.library = library
        self.pipeline = pipeline

    # -------------------------------------------------------------------------
    # Buffers
    # -------------------------------------------------------------------------

    def make_buffer(self, shape, dtype) -> Optional[DeviceBuffer]:
        """Allocate a shared MTLBuffer and wrap its contents in a numpy view."""
        dtype = np.dtype(dtype)
        nbytes = int(np.prod(shape)) * dtype.itemsize
        # Metal refuses zero-length buffers
        buffer = self.device.newBufferWithLength_options_(max(nbytes, dtype.itemsize),
                                                          MTLResourceStorageModeShared)
        if buffer is None:
            return None
        return DeviceBuffer(self._view(buffer, shape, dtype), handle=buffer)

    def _view(self, buffer, shape, dtype) -> np.ndarray:
        count = int(np.prod(shape))
        mv = buffer.contents().as_buffer(buffer.length())
        return np.frombuffer(mv, dtype=dtype, count=count).reshape(shape)

    def _buffer_with_array(self, array: np.ndarray):
        array = np.ascontiguousarray(array)
        return self.device.newBufferWithBytes_length_options_(
            array.tobytes(), array.nbytes, MTLResourceStorageModeShared)

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    def dispatch(self, pos_in: DeviceBuffer, vel_in: DeviceBuffer, forces: np.ndarray,
                 pos_out: DeviceBuffer, vel_out: DeviceBuffer, uniform: DeviceBuffer) -> bool:
        """
        Encode, commit and wait for one stepBoid pass.

        Returns False (skipped frame) if anything needed for the pass could
        not be created, or the command buffer finished in error. The input
        buffers are never written, so a skipped frame leaves state intact.
        """
        num_boids = pos_in.array.shape[0]

        # Even with 0 active forces the kernel gets a 1-slot buffer
        force_buffer = self._buffer_with_array(forces)
        if force_buffer is None:
            return False

        uniform_handle = uniform.handle
        if uniform_handle is None:
            uniform_handle = self._buffer_with_array(uniform.array)
            if uniform_handle is None:
                return False

        cmd_buffer = self.command_queue.commandBuffer()
        if cmd_buffer is None:
            return False
        encoder = cmd_buffer.computeCommandEncoder()
        if encoder is None:
            return False

        encoder.setComputePipelineState_(self.pipeline)
        encoder.setBuffer_offset_atIndex_(pos_in.handle, 0, 0)
        encoder.setBuffer_offset_atIndex_(vel_in.handle, 0, 1)
        encoder.setBuffer_offset_atIndex_(force_buffer, 0, 2)
        encoder.setBuffer_offset_atIndex_(pos_out.handle, 0, 3)
        encoder.setBuffer_offset_atIndex_(vel_out.handle, 0, 4)
        encoder.setBuffer_offset_atIndex_(uniform_handle, 0, 5)

        threadgroup = min(self.pipeline.maxTotalThreadsPerThreadgroup(), num_boids)
        grid_size = MTLSize(num_boids, 1, 1)
        threads_per_group = MTLSize(threadgroup, 1, 1)

        encoder.dispatchThreads_threadsPerThreadgroup_(grid_size, threads_per_group)
        encoder.endEncoding()

        # Submit and wait
        cmd_buffer.commit()
        cmd_buffer.waitUntilCompleted()

        if cmd_buffer.status() == MTLCommandBufferStatusError:
            print(f"[Metal] Step failed: {cmd_buffer.error()}")
            return False
        return True
