"""Exceptions raised by the flocking engine."""


class BoidError(RuntimeError):
    """Base class for engine failures."""


class ComputeDeviceError(BoidError):
    """No usable parallel compute device (fatal at startup)."""


class KernelCompileError(BoidError):
    """The step kernel could not be resolved or compiled (fatal at startup)."""


class EngineStateError(BoidError):
    """The engine was used out of order, e.g. step() before initialize()."""
