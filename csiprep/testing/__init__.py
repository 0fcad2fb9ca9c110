"""
Testing utilities for csiprep.

Synthetic capture generators for tests and demos. Do NOT feed their output
into real experiments.
"""

from .mock_csi_generator import MockCSIGenerator

__all__ = [
    "MockCSIGenerator",
]
