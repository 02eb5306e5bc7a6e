"""op-session — typed access to 1Password through the op CLI.

Security Note (Threat Model):
    Session tokens, passwords and secret keys live in process memory for the
    lifetime of an ``Op``. Tokens are handed to child processes through
    their environment only; the parent's ``os.environ`` is left untouched.
    Anyone able to inspect the process or its children can read them. This
    is an accepted limitation of driving a CLI tool.
"""

from .version import __version__
from .account import AccountResolver, ConfigReader, OpConfigFile
from .classify import OutputKind, classify, is_auth_required, is_not_found
from .config import OpConfig, SignInMode
from .exceptions import (
    OpError,
    ConfigurationError,
    SignInError,
    SubprocessError,
    AuthRequiredError,
    NotFoundError,
    ItemFieldError,
    SerializationError,
)
from .items import Item, ItemDetails, ItemField, ItemStore, encode_details, decode_details
from .op import (
    Op,
    get_user_pass,
    get_totp,
    get_user_pass_totp,
    get_secure_note,
    set_secure_note,
)
from .runner import CommandRunner
from .session import Session, SessionTokenStore, session_env_key

__all__ = [
    "__version__",
    "Op",
    "OpConfig",
    "SignInMode",
    "get_user_pass",
    "get_totp",
    "get_user_pass_totp",
    "get_secure_note",
    "set_secure_note",
    "AccountResolver",
    "ConfigReader",
    "OpConfigFile",
    "Session",
    "SessionTokenStore",
    "session_env_key",
    "CommandRunner",
    "OutputKind",
    "classify",
    "is_auth_required",
    "is_not_found",
    "Item",
    "ItemDetails",
    "ItemField",
    "ItemStore",
    "encode_details",
    "decode_details",
    "OpError",
    "ConfigurationError",
    "SignInError",
    "SubprocessError",
    "AuthRequiredError",
    "NotFoundError",
    "ItemFieldError",
    "SerializationError",
]
