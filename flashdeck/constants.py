"""
Review engine constants.

Static defaults only; runtime overrides live in flashdeck.config.
"""

# Seconds during which a second write for the same pass is ignored.
DEDUP_WINDOW_SECONDS: int = 60

# Dedup entries older than this are pruned.
DEDUP_RETENTION_SECONDS: int = 300

# Upper bound on a single session record write.
SUBMIT_TIMEOUT_SECONDS: float = 10.0

# Lifetime of a resolved media display URL.
MEDIA_URL_TTL_SECONDS: int = 60 * 60

MAX_SCORE: int = 100
