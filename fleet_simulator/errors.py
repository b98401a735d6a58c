"""Exceptions raised by the fleet simulator."""

from __future__ import annotations

__all__ = ["BootstrapError"]


class BootstrapError(RuntimeError):
    """The simulator cannot start: invalid settings or downstream never ready."""
