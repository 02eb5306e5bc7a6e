"""
op-session errors.

Every error raised by this package derives from :class:`OpError`. Errors that
come from a finished ``op`` process carry the command and its raw output so
callers can inspect what the tool actually printed.
"""
from typing import Sequence


class OpError(Exception):
    """Base class for errors raised by op-session."""


class ConfigurationError(OpError):
    """The op config file is missing, unreadable, malformed or ambiguous."""


class SignInError(OpError):
    """``op signin`` failed, or did not print a session token."""


class SerializationError(OpError):
    """Item JSON could not be encoded or decoded."""


class SubprocessError(OpError):
    """An ``op`` command exited non-zero.

    Args:
        command: Arguments passed to the op binary.
        output: Combined stdout/stderr of the process.
        returncode: Exit status, or None if the process never started.
    """

    def __init__(
        self,
        message: str,
        command: Sequence[str] = (),
        output: bytes = b"",
        returncode: int | None = None,
    ):
        super().__init__(message)
        self.command = list(command)
        self.output = output
        self.returncode = returncode

    @property
    def text(self) -> str:
        return self.output.decode("utf-8", errors="replace")


class AuthRequiredError(SubprocessError):
    """The session token is stale or no session is active."""


class NotFoundError(SubprocessError):
    """The referenced item does not exist."""


class ItemFieldError(NotFoundError):
    """An item exists but lacks the fields the caller asked for."""
