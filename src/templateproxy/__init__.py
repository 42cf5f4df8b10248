"""Caching proxy for a remote page-builder template library."""

from __future__ import annotations

__version__ = "0.1.0"
