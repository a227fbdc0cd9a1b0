"""CLI module for slidekit.

Provides commands to check whether slides open, detect vendors, and dump
property catalogs.
"""

from __future__ import annotations

from slidekit.cli.main import app

__all__ = ["app"]
