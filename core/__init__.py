"""Frame driver components."""

from .buffer_pool import BufferManager
from .forces import ForceField, ForceMode
from .application import Application, Frame

__all__ = ["BufferManager", "ForceField", "ForceMode", "Application", "Frame"]
