"""User interaction helpers."""

from .progress import RichProgressSink

__all__ = ["RichProgressSink"]
