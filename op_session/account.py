"""
Account Resolver — decide which 1Password account to sign in to.

An explicit account name always wins. Otherwise the op CLI config file
(``~/.op/config`` by default) is consulted:

1. ``latest_signin`` if present,
2. the only configured account,
3. an error if several accounts are configured or none is.
"""
import os
import logging
from typing import Optional

import orjson
from pydantic import BaseModel, ValidationError

from .conf import CONFIG_FILE
from .exceptions import ConfigurationError

logger = logging.getLogger("op_session")


class AccountRecord(BaseModel):
    shorthand: str = ""


class OpConfigFile(BaseModel):
    """The part of the op CLI config file we care about."""

    latest_signin: Optional[str] = None
    accounts: list[AccountRecord] = []


class ConfigReader:
    """Reads the raw op config file.

    Any object with a ``read() -> bytes`` method can stand in for this
    when constructing an :class:`AccountResolver`.
    """

    def __init__(self, path: str = CONFIG_FILE):
        self.path = path

    def read(self) -> bytes:
        """Return the config file contents.

        Raises:
            ConfigurationError: If the file does not exist or can't be read.
        """
        path = os.path.expanduser(self.path)
        try:
            with open(path, "rb") as fp:
                return fp.read()
        except FileNotFoundError as err:
            raise ConfigurationError(
                f"the op config file {self.path} does not exist. "
                "Please sign-in first."
            ) from err
        except OSError as err:
            raise ConfigurationError(
                f"unable to read op config file {self.path}: {err}"
            ) from err


class AccountResolver:
    """Resolves which account to sign in to."""

    def __init__(self, reader: Optional[ConfigReader] = None):
        self._reader = reader or ConfigReader()

    def load(self) -> OpConfigFile:
        """Read and parse the op config file.

        Raises:
            ConfigurationError: If the file is missing or malformed.
        """
        data = self._reader.read()
        try:
            return OpConfigFile.model_validate(orjson.loads(data))
        except (orjson.JSONDecodeError, ValidationError) as err:
            raise ConfigurationError(
                f"unable to parse op config data: {err}"
            ) from err

    def resolve(self, explicit_account: str = "") -> str:
        """Return the account to operate against.

        Args:
            explicit_account: Account supplied by the caller. Returned as is
                when non-empty; it is not checked against the config file.

        Returns:
            Account shorthand.

        Raises:
            ConfigurationError: If no single account can be determined.
        """
        if explicit_account:
            return explicit_account

        config = self.load()
        if config.latest_signin is not None:
            logger.debug("Using latest sign-in account %s", config.latest_signin)
            return config.latest_signin

        count = len(config.accounts)
        if count > 1:
            raise ConfigurationError(
                f"found {count} accounts - please supply an explicit name"
            )
        if count == 1:
            return config.accounts[0].shorthand
        raise ConfigurationError(
            "cannot determine which 1password account to use"
        )
