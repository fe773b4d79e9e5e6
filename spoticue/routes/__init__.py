"""
SpotiCue Route Blueprints
"""

from .health import health_bp
from .music import music_bp
from .schedules import schedules_bp

__all__ = [
    "health_bp",
    "music_bp",
    "schedules_bp",
]
