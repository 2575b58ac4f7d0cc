"""Internal constants shared across the library."""

READSB_BASE_URL = "https://api.airplanes.live"
OPENSKY_BASE_URL = "https://opensky-network.org/api"
USER_AGENT = "pyflighttrack"

SOURCE_KIND_READSB = "readsb"
SOURCE_KIND_OPENSKY = "opensky"
SOURCE_KINDS: frozenset[str] = frozenset({SOURCE_KIND_READSB, SOURCE_KIND_OPENSKY})

# ------------------------------------------------------------------
# Timing defaults (seconds)
# ------------------------------------------------------------------

DEFAULT_REFRESH_INTERVAL = 30.0
DEFAULT_FRESH_WINDOW = 60.0
DEFAULT_AGING_WINDOW = 300.0
DEFAULT_CALL_TIMEOUT = 10.0

# ------------------------------------------------------------------
# Coordinate bounds (degrees)
# ------------------------------------------------------------------

MAX_LATITUDE = 90.0
MAX_LONGITUDE = 180.0
FULL_CIRCLE = 360.0
