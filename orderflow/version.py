"""
Version information for orderflow.

Single source of truth: pyproject.toml
Runtime access via importlib.metadata with fallback.
"""

from __future__ import annotations

import os
import sys
from typing import Any

# Fallback version if package metadata unavailable (dev mode)
_FALLBACK_VERSION = "0.1.0"


def get_version() -> str:
    """Get the package version from metadata or fallback."""
    from importlib.metadata import PackageNotFoundError, version

    try:
        return version("orderflow")
    except PackageNotFoundError:
        return _FALLBACK_VERSION


VERSION = get_version()


def version_info() -> dict[str, Any]:
    """
    Get version information for the root endpoint and logs.

    Returns:
        dict with version, python_version, git commit and environment
    """
    commit = os.environ.get("GIT_COMMIT")

    return {
        "version": VERSION,
        "python_version": f"{sys.version_info.major}.{sys.version_info.minor}.{sys.version_info.micro}",
        "git_commit": commit[:8] if commit else None,
        "environment": os.environ.get("ENVIRONMENT", "development"),
    }
