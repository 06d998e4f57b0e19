"""UniPager control protocol constants (frame keys, envelope kinds, limits).

UniPager Control Protocol
=========================

The control socket carries one UTF-8 JSON document per text frame.

Inbound frames (server -> client) are objects whose keys name the kind of
message. A single frame may carry more than one key, and every key is
processed.

Outbound envelopes (client -> server) come in two shapes:
    - bare tags, serialized as a JSON string: "GetVersion"
    - payload envelopes, serialized as a single-key object: {"Authenticate": "..."}
"""

DEFAULT_SERVER_PORT = 8055

# ============================================================================
# Inbound Frame Keys (Server -> Client)
# ============================================================================

F_LOG = "Log"  # [levelCode, text] - appended to the log history
F_VERSION = "Version"  # str - replaces the stored version string
F_CONFIG = "Config"  # object - replaces the configuration document wholesale
F_TELEMETRY = "Telemetry"  # object - replaces telemetry wholesale
F_TELEMETRY_UPDATE = "TelemetryUpdate"  # object - replaces only the named top-level keys
F_TIMESLOT = "Timeslot"  # int - replaces the timeslot counter
F_AUTHENTICATED = "Authenticated"  # bool - handshake reply
F_MESSAGE = "Message"  # any - appended to the message history

INBOUND_KEYS = frozenset(
    {
        F_LOG,
        F_VERSION,
        F_CONFIG,
        F_TELEMETRY,
        F_TELEMETRY_UPDATE,
        F_TIMESLOT,
        F_AUTHENTICATED,
        F_MESSAGE,
    }
)

# ============================================================================
# Outbound Envelope Kinds (Client -> Server)
# ============================================================================

E_AUTHENTICATE = "Authenticate"  # payload: secret (str)
E_SET_CONFIG = "SetConfig"  # payload: configuration document (object)
E_SEND_MESSAGE = "SendMessage"  # payload: page request (object)

E_DEFAULT_CONFIG = "DefaultConfig"
E_GET_VERSION = "GetVersion"
E_GET_CONFIG = "GetConfig"
E_GET_TELEMETRY = "GetTelemetry"
E_GET_TIMESLOT = "GetTimeslot"
E_TEST = "Test"

PAYLOAD_KINDS = frozenset({E_AUTHENTICATE, E_SET_CONFIG, E_SEND_MESSAGE})
BARE_KINDS = frozenset(
    {E_DEFAULT_CONFIG, E_GET_VERSION, E_GET_CONFIG, E_GET_TELEMETRY, E_GET_TIMESLOT, E_TEST}
)

# Sent in this order once the server confirms authentication
POST_AUTH_QUERIES = (E_GET_VERSION, E_GET_CONFIG, E_GET_TELEMETRY, E_GET_TIMESLOT)

# ============================================================================
# Log Level Codes (Log record element 0)
# ============================================================================

LOG_LEVEL_CODES = {
    1: "error",
    2: "warn",
    3: "info",
    4: "debug",
    5: "trace",
}

# ============================================================================
# Telemetry
# ============================================================================

TELEMETRY_KEYS = ("node", "config", "messages")

# ============================================================================
# Client Limits and Timing
# ============================================================================

HISTORY_LIMIT = 50  # entries kept in each history buffer
RECONNECT_DELAY_S = 1.0  # fixed delay between a close and the next attempt

# ============================================================================
# Page Request Defaults
# ============================================================================

DEFAULT_PAGE_ID = "test"
DEFAULT_PAGE_PROTOCOL = "pocsag"
DEFAULT_PAGE_PRIORITY = 5
DEFAULT_PAGE_SPEED = 1200
DEFAULT_PAGE_FUNC = 3

# ============================================================================
# Operator Log Lines
# ============================================================================

MSG_CONNECTED = "Connected to UniPager."
MSG_DISCONNECTED = "Disconnected from UniPager."
