"""
op-session constants.

The config directory honours ``OP_CONFIG_DIR`` the same way the op CLI does.
"""
import os

OP_BINARY = "op"

# session tokens are exported by ``op signin`` as OP_SESSION_<account>
ENV_PREFIX = "OP_SESSION_"

CONFIG_DIR = os.environ.get("OP_CONFIG_DIR", "~/.op")
CONFIG_FILE = os.path.join(CONFIG_DIR, "config")

SECURE_NOTE_CATEGORY = "Secure Note"
