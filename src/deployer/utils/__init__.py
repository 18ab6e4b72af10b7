"""Utility functions for the deployment engine."""

from deployer.utils.rng import Draw, RandomSource

__all__ = [
    "Draw",
    "RandomSource",
]
