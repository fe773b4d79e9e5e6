"""Central constants for SpotiCue.

Only put small, stable primitives here – runtime tunables live in
``config_schema.SchedulerSettings``.
"""

# Trigger fires only within the first seconds of the scheduled minute
TRIGGER_WINDOW_SECONDS: int = 2

# Progress this close to the track length counts as "track ended"
TRACK_END_TOLERANCE_MS: int = 1000

# Upper bound for any completion monitor (10 minutes)
MAX_MONITOR_SECONDS: int = 600

DEFAULT_VOLUME: int = 50
DEFAULT_TRACK_NAME = "Unknown Track"
DEFAULT_ARTIST_NAME = "Unknown Artist"

CATCHUP_POLICIES = ("latest", "all", "none")
