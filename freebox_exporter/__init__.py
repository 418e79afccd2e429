"""Freebox exporter: authentication against the Freebox OS API."""

from __future__ import annotations

from .const import VERSION

__version__ = VERSION
