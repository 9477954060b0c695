"""Small numeric helpers."""

from .running import runmean

__all__ = ["runmean"]
