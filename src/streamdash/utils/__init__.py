"""Utility helpers for streamdash."""

from .clock import Clock, monotonic_ms

__all__ = [
    "Clock",
    "monotonic_ms",
]
