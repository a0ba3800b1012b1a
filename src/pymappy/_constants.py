"""Internal constants shared across the library."""

DEFAULT_POLL_INTERVAL_MS = 50
DEFAULT_STARTUP_DELAY_MS = 1000
DEFAULT_ZONE_SETTLE_SECONDS = 3
DEFAULT_SETTLE_INTERVAL_MS = 1000

DEFAULT_WEBSOCKET_URL = "wss://xivapi.local/socket"
DEFAULT_MQTT_PORT = 1883
DEFAULT_MQTT_TOPIC = "mappy/out"
DEFAULT_MQTT_SUBSCRIBE_TOPIC = "mappy/in"

# ------------------------------------------------------------------
# Wire protocol keys  (KEY::value)
# ------------------------------------------------------------------

MESSAGE_SEPARATOR = "::"
KEY_PLAYER_NAME = "PLAYER_NAME"
KEY_PLAYER_MAP_ID = "PLAYER_MAP_ID"
KEY_PLAYER_POSITION = "PLAYER_POSITION"

# ------------------------------------------------------------------
# Daemon status labels
# ------------------------------------------------------------------

STATUS_INITIALIZING = "Initializing"
STATUS_SCANNING = "Scanning Memory"
STATUS_ZONING = "Zoning"
STATUS_INVALID_ZONE = "Scanning Ignored due to Map ID = 0"
STATUS_STOPPED = "Stopped"

BANNER: tuple[str, ...] = (
    "================================================",
    "FINAL FANTASY XIV MAPPY",
    "Source: https://github.com/xivapi/xivapi-mappy",
    "================================================",
)
