"""
Output Classifier — map free-text op output onto failure kinds.

The op CLI reports every failure with the same exit status, so the only way
to tell a stale session from a missing item is to match the text it prints.
All of those patterns live here.
"""
import re
from enum import Enum
from typing import Union

_AUTH_REQUIRED = re.compile(r"(not currently|Authentication)")
_NOT_FOUND = re.compile(r"(doesn't seem to be an item|no item found|not found)")


class OutputKind(Enum):
    """Failure kinds recognised in op output."""

    AUTH_REQUIRED = "auth_required"
    NOT_FOUND = "not_found"
    GENERIC = "generic"


def _as_text(raw: Union[str, bytes]) -> str:
    if isinstance(raw, bytes):
        return raw.decode("utf-8", errors="replace")
    return raw


def is_auth_required(raw: Union[str, bytes]) -> bool:
    """True if the output says no session is active or auth is needed."""
    return _AUTH_REQUIRED.search(_as_text(raw)) is not None


def is_not_found(raw: Union[str, bytes]) -> bool:
    """True if the output says the referenced item does not exist."""
    return _NOT_FOUND.search(_as_text(raw)) is not None


def classify(raw: Union[str, bytes]) -> OutputKind:
    """Classify the output of a failed op command.

    The auth check wins when both patterns match.

    Args:
        raw: Captured output of the failed command.

    Returns:
        The matching OutputKind, GENERIC if nothing matched.
    """
    if is_auth_required(raw):
        return OutputKind.AUTH_REQUIRED
    if is_not_found(raw):
        return OutputKind.NOT_FOUND
    return OutputKind.GENERIC
