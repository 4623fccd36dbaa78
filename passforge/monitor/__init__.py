"""Terminal rendering of builds and verification reports."""

from passforge.monitor.renderer import BuildRenderer

__all__ = ["BuildRenderer"]
