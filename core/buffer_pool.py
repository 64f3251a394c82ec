"""Rotating pool of per-frame device buffers (triple buffering)."""

import threading
from typing import Callable, List, Optional

from boids import DeviceBuffer


class BufferManager:
    """
    Hands out N device buffers in rotation, one per frame.

    next_sync() blocks while all N buffers are still in flight, so the frame
    thread can prepare frame K+1 while the device reads frame K but never
    overwrites a buffer the device has not finished with. Every acquired
    buffer must be released exactly once, after the device work using it has
    been submitted (or has completed, for a synchronous device).
    """

    def __init__(self, device, inflight_count: int = 3,
                 create_buffer: Optional[Callable[[object], Optional[DeviceBuffer]]] = None):
        if inflight_count < 2:
            raise ValueError(f"inflight_count must be >= 2, got {inflight_count}")

        self.device = device
        self.inflight_count = inflight_count
        self._create_buffer = create_buffer
        self._buffers: List[DeviceBuffer] = []
        self._index = 0
        self._in_flight = 0
        self._semaphore = threading.Semaphore(inflight_count)
        self._lock = threading.Lock()

    def create_buffers(self):
        if self._create_buffer is None:
            raise ValueError("BufferManager needs a create_buffer callable")

        buffers = []
        for i in range(self.inflight_count):
            buffer = self._create_buffer(self.device)
            if buffer is None:
                raise MemoryError(f"Failed to create in-flight buffer {i}")
            buffers.append(buffer)
        self._buffers = buffers

    @property
    def in_flight(self) -> int:
        return self._in_flight

    def next_sync(self, blocking: bool = True, timeout: Optional[float] = None) -> Optional[DeviceBuffer]:
        """
        Wait for a free slot and return the next buffer in the rotation.

        Returns None when blocking is False or timeout expires and every slot
        is still in flight. Callers treat that as a skipped frame.
        """
        if not self._buffers:
            self.create_buffers()

        if not self._semaphore.acquire(blocking, timeout if blocking else None):
            return None

        with self._lock:
            buffer = self._buffers[self._index]
            self._index = (self._index + 1) % self.inflight_count
            self._in_flight += 1
        return buffer

    def release(self):
        """Signal that the oldest acquired buffer is no longer needed."""
        with self._lock:
            if self._in_flight == 0:
                raise RuntimeError("release() called without a matching next_sync()")
            self._in_flight -= 1
        self._semaphore.release()
