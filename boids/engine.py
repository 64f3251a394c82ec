"""Double-buffered flocking engine driving the step kernel once per frame."""

import numpy as np
from typing import Callable, Optional, Sequence, Tuple, Union

from .backend import DeviceBuffer, create_device, make_uniform_buffer
from .errors import EngineStateError
from .force import Force, pack_forces
from .uniform import Uniform
from .walker import random_unit_vector

Range = Tuple[float, float]
PositionRange = Union[float, Tuple[Range, Range, Range]]


# ============================================================================
# INITIAL STATE GENERATORS
# ============================================================================

def generate_random_positions(count: int, x_range: Range, y_range: Range, z_range: Range,
                              rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Independent uniform samples per axis, as a (count, 3) float32 array."""
    rng = rng if rng is not None else np.random.default_rng()
    positions = np.empty((count, 3), dtype=np.float32)
    for axis, (low, high) in enumerate((x_range, y_range, z_range)):
        positions[:, axis] = rng.uniform(low, high, count)
    return positions


def generate_random_velocities(count: int, rng: Optional[np.random.Generator] = None) -> np.ndarray:
    """Random unit-length headings, as a (count, 3) float32 array."""
    rng = rng if rng is not None else np.random.default_rng()
    velocities = np.empty((count, 3), dtype=np.float32)
    for i in range(count):
        velocities[i] = random_unit_vector(rng)
    return velocities


def _axis_ranges(position_range: PositionRange) -> Tuple[Range, Range, Range]:
    if np.isscalar(position_range):
        r = float(position_range)
        return (-r, r), (-r, r), (-r, r)
    x_range, y_range, z_range = position_range
    return tuple(x_range), tuple(y_range), tuple(z_range)


# ============================================================================
# ENGINE
# ============================================================================

class BoidEngine:
    """
    Owns boid state and runs one kernel step per call.

    State lives in two pairs of device buffers. step() reads the "current"
    pair and writes the "next" pair, swap_buffers() flips their roles.
    Callers must swap exactly once after each completed step; that order is
    what makes step k read the result of step k-1.

    Not thread-safe: step() blocks until the kernel finishes and must only be
    called from the one thread driving frames.
    """

    def __init__(self, device=None, device_name: Optional[str] = None):
        # Raises ComputeDeviceError / KernelCompileError: fatal at startup
        self.device = device if device is not None else create_device(device_name)

        self.num_boid = 0
        self.frame_count = 0
        self._pos = [None, None]
        self._vel = [None, None]
        self._current = 0

    @property
    def is_initialized(self) -> bool:
        return self._pos[0] is not None

    def initialize(self, num_boid: int, position_range: PositionRange = 2.5,
                   rng: Optional[np.random.Generator] = None,
                   velocity_generator: Optional[Callable[[int, np.random.Generator], np.ndarray]] = None):
        """
        Allocate state for num_boid boids with random positions and headings.

        Args:
            num_boid: Number of boids, fixed for the engine's lifetime
            position_range: Half-extent of the spawn cube, or ((x0, x1), (y0, y1), (z0, z1))
            rng: Random source, pass a seeded Generator for reproducible runs
            velocity_generator: Replaces generate_random_velocities
        """
        if num_boid < 0:
            raise ValueError(f"num_boid must be >= 0, got {num_boid}")

        rng = rng if rng is not None else np.random.default_rng()
        velocity_generator = velocity_generator or generate_random_velocities

        x_range, y_range, z_range = _axis_ranges(position_range)
        positions = generate_random_positions(num_boid, x_range, y_range, z_range, rng)
        velocities = velocity_generator(num_boid, rng)
        self.set_buffers(positions, velocities)

    def set_buffers(self, positions: np.ndarray, velocities: np.ndarray):
        """Load explicit (n, 3) initial state into fresh read buffers."""
        positions = np.asarray(positions, dtype=np.float32)
        velocities = np.asarray(velocities, dtype=np.float32)
        if positions.ndim != 2 or positions.shape[1] != 3 or positions.shape != velocities.shape:
            raise ValueError(f"Expected matching (n, 3) arrays, got {positions.shape} and {velocities.shape}")

        n = positions.shape[0]
        pos = [self._alloc_state(n), self._alloc_state(n)]
        vel = [self._alloc_state(n), self._alloc_state(n)]
        pos[0].array[:, :3] = positions
        vel[0].array[:, :3] = velocities

        self.num_boid = n
        self.frame_count = 0
        self._pos = pos
        self._vel = vel
        self._current = 0

        print(f"[Boids] Initialized {n:,} boids on {self.device.name}")

    def _alloc_state(self, n: int) -> DeviceBuffer:
        # float3 occupies 16 bytes on the device, so state is (n, 4)
        buffer = self.device.make_buffer((n, 4), np.float32)
        if buffer is None:
            raise MemoryError(f"Failed to allocate state buffer for {n:,} boids")
        return buffer

    def step(self, uniform: Uniform, forces: Sequence[Force] = (),
             uniform_buffer: Optional[DeviceBuffer] = None) -> bool:
        """
        Compute the next state from the current one and wait for it.

        Args:
            uniform: Parameters for this step
            forces: Active attractors/repellors, len must equal uniform.num_forces
            uniform_buffer: Per-frame slot to marshal the uniform into
                (from a BufferManager). A fresh buffer is used when omitted.

        Returns:
            True if the next buffers now hold the new state, False if the frame
            was skipped (nothing was written that callers can observe).
        """
        if not self.is_initialized:
            raise EngineStateError("step() called before initialize()")
        if int(uniform.num_boid) != self.num_boid:
            raise ValueError(f"uniform.num_boid={uniform.num_boid} but engine has {self.num_boid} boids")
        if int(uniform.num_forces) != len(forces):
            raise ValueError(f"uniform.num_forces={uniform.num_forces} but {len(forces)} forces were given")

        if self.num_boid == 0:
            return True

        if uniform_buffer is None:
            uniform_buffer = make_uniform_buffer(self.device)
            if uniform_buffer is None:
                return False
        uniform.write_into(uniform_buffer.array)

        cur, nxt = self._current, 1 - self._current
        completed = self.device.dispatch(
            self._pos[cur], self._vel[cur],
            pack_forces(forces),
            self._pos[nxt], self._vel[nxt],
            uniform_buffer,
        )
        if completed:
            self.frame_count += 1
        return completed

    def swap_buffers(self):
        """Make the buffers written by the last step the current ones."""
        if not self.is_initialized:
            raise EngineStateError("swap_buffers() called before initialize()")
        self._current = 1 - self._current

    # ------------------------------------------------------------------------
    # Read access for renderers
    # ------------------------------------------------------------------------

    def current_position_buffer(self) -> np.ndarray:
        """Read-only (n, 4) float32 view of the current positions."""
        if not self.is_initialized:
            raise EngineStateError("Engine has no state before initialize()")
        return self._pos[self._current].read_only()

    def current_velocity_buffer(self) -> np.ndarray:
        """Read-only (n, 4) float32 view of the current velocities."""
        if not self.is_initialized:
            raise EngineStateError("Engine has no state before initialize()")
        return self._vel[self._current].read_only()

    def get_positions(self) -> np.ndarray:
        return self.current_position_buffer()[:, :3].copy()

    def get_velocities(self) -> np.ndarray:
        return self.current_velocity_buffer()[:, :3].copy()
