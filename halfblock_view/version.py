#!/usr/bin/env python3
# halfblock_view/version.py
"""
Version and build metadata for the half-block viewer.
"""

__version__ = "1.0.0"
__build__ = "2026-10-19"
__license__ = "MIT"

def version_info() -> str:
    """Return human-readable version string."""
    return f"halfblock-view v{__version__} (build {__build__})"
