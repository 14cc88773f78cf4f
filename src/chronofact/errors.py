"""Exceptions raised by the temporal fact store."""

from __future__ import annotations


class ChronofactError(Exception):
    """Base exception for store failures."""


class ValidationError(ChronofactError, ValueError):
    """Raised when a write or read is rejected before touching any state."""
