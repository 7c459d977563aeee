"""Shaded ASCII cube for the terminal."""

from .renderer import CubeEngine, TerminalController, Vec3

__version__ = "0.1.0"

__all__ = ["CubeEngine", "TerminalController", "Vec3", "__version__"]
