"""
Session Configuration — validated options for an op session.

Reads optional defaults from environment variables:
    OP_ACCOUNT, OP_PASSWORD, OP_EMAIL, OP_SECRET_KEY, OP_URL, OP_UID

Security Note:
    Never log the password or secret key. Both are held as ``SecretStr``
    so they stay masked in reprs and validation errors.
"""
import os
import logging
import subprocess
from enum import Enum
from typing import Any, Callable, Optional

from pydantic import BaseModel, Field, SecretStr, field_validator

logger = logging.getLogger("op_session")


class SignInMode(Enum):
    """How ``op signin`` is driven."""

    INTERACTIVE = "interactive"
    PASSWORD = "password"
    CONFIG_FREE = "config_free"


class OpConfig(BaseModel):
    """Validated op session configuration.

    ``url``, ``email`` and ``secret_key`` together select a config-free
    sign-in that does not need ``~/.op/config``; they take precedence over
    ``account`` for the sign-in command itself.

    ``runner`` is the process factory used for every op invocation. It is
    called like :class:`subprocess.Popen` and must return an object with
    ``communicate()``, ``returncode`` and ``stdin``.
    """

    account: str = ""
    password: SecretStr = SecretStr("")
    uid: Optional[int] = Field(default=None, ge=0)
    email: str = ""
    secret_key: SecretStr = SecretStr("")
    url: str = ""
    runner: Callable[..., Any] = subprocess.Popen

    model_config = {"arbitrary_types_allowed": True, "frozen": True}

    @field_validator("account", "email", "url")
    @classmethod
    def strip_value(cls, v: str) -> str:
        """Drop surrounding whitespace."""
        return v.strip()

    @field_validator("account")
    @classmethod
    def validate_account(cls, v: str) -> str:
        """Account names become part of an environment variable name."""
        if "=" in v or "\x00" in v:
            raise ValueError(f"Invalid account name: {v!r}")
        return v

    @property
    def signin_mode(self) -> SignInMode:
        if self.url and self.email and self.secret_key.get_secret_value():
            return SignInMode.CONFIG_FREE
        if self.password.get_secret_value():
            return SignInMode.PASSWORD
        return SignInMode.INTERACTIVE

    @classmethod
    def from_env(cls, **overrides: Any) -> "OpConfig":
        """Create OpConfig from ``OP_*`` environment variables.

        Keyword arguments override values read from the environment.

        Returns:
            Populated OpConfig instance.
        """
        values: dict[str, Any] = {}
        for field, env_name in (
            ("account", "OP_ACCOUNT"),
            ("password", "OP_PASSWORD"),
            ("email", "OP_EMAIL"),
            ("secret_key", "OP_SECRET_KEY"),
            ("url", "OP_URL"),
            ("uid", "OP_UID"),
        ):
            value = os.environ.get(env_name)
            if value:
                values[field] = value
        values.update(overrides)
        logger.debug(
            "Loaded op config from environment: %s", sorted(values.keys())
        )
        return cls(**values)
