"""
Metal GPU Backend for Apple Silicon
====================================

Native Metal compute shader for the boid step, using Apple Silicon's
Unified Memory Architecture (UMA) for zero-copy CPU-GPU data sharing.
"""

from .metal_backend import MetalComputeDevice, is_metal_available

__all__ = ['MetalComputeDevice', 'is_metal_available']
