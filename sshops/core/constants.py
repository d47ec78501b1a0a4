"""
Project constants definitions
"""

# ============================================================
# Configuration Files
# ============================================================

DEFAULT_CONFIG_DIR = "~/.config/sshops"
CONFIG_FILE_NAME = "connections.json"
SETTINGS_FILE_NAME = "settings.toml"
CONFIG_PATH_ENV = "SSHOPS_CONFIG"
SETTINGS_ENV_PREFIX = "SSHOPS_"

# ============================================================
# Connection Sources
# ============================================================

SSH_CONNECTIONS_ENV = "SSH_CONNECTIONS"
BINARYLANE_TOKEN_ENV = "BINARYLANE_API_TOKEN"
BINARYLANE_API_URL = "https://api.binarylane.com.au/v2/servers?per_page=100"
DEFAULT_DISCOVERY_USERNAME = "root"

# ============================================================
# Default Values
# ============================================================

DEFAULT_SSH_PORT = 22
DEFAULT_PRIVATE_KEY_PATH = "~/.ssh/id_ed25519"
DEFAULT_KEY_NAMES = ("id_ed25519", "id_rsa")

# Timeouts (seconds)
DEFAULT_CONNECT_TIMEOUT = 10
DEFAULT_COMMAND_TIMEOUT = 30
DEFAULT_TRANSFER_TIMEOUT = 300
PROBE_TIMEOUT = 10

# ============================================================
# Transport
# ============================================================

CHANNEL_READ_SIZE = 32768
CHANNEL_POLL_INTERVAL = 0.01
# Grace period for a dropping transport to report itself inactive
TRANSPORT_SETTLE_TIME = 0.2

# Oldest telemetry records are dropped beyond this many
TELEMETRY_MAX_RECORDS = 10000
REDACTED = "***"
