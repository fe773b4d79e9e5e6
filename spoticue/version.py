"""
SpotiCue Version Information
"""

# Semantic Versioning: MAJOR.MINOR.PATCH
VERSION = "1.0.0"

APP_NAME = "SpotiCue"


def get_version() -> str:
    return VERSION


def get_app_info() -> str:
    """Application name and version, e.g. "SpotiCue v1.0.0"."""
    return f"{APP_NAME} v{get_version()}"
