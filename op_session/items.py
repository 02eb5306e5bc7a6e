"""
Item Store — fetch, create and delete items through the op CLI.

Item payloads travel as JSON: ``op get item`` prints the full item, and
``op create item`` takes the details object JSON-encoded and then URL-safe
base64 encoded (no ``=`` padding) as a positional argument.

The op CLI has no upsert, and refuses to create a second item with the same
title, so replacing an item means deleting it first. Deleting an item that
does not exist is not an error.

Security Note:
    Never log item payloads or field values. Only log item names.
"""
import base64
import binascii
import logging

import orjson
from pydantic import BaseModel, Field, ValidationError

from .classify import OutputKind, classify, is_not_found
from .exceptions import (
    AuthRequiredError,
    NotFoundError,
    SerializationError,
    SubprocessError,
)
from .runner import CommandRunner
from .session import Session

logger = logging.getLogger("op_session")


# ---------------------------------------------------------------------------
# Item models
# ---------------------------------------------------------------------------

class ItemField(BaseModel):
    """One named value of an item."""

    name: str = ""
    value: str = ""

    model_config = {"frozen": True}


class ItemDetails(BaseModel):
    """Ordered fields plus an optional plain-text note."""

    item_fields: tuple[ItemField, ...] = Field(default=(), alias="fields")
    notes_plain: str = Field(default="", alias="notesPlain")

    model_config = {"frozen": True, "populate_by_name": True}

    def get(self, name: str, default: str = "") -> str:
        """Value of the last field called name, or default."""
        value = default
        for item_field in self.item_fields:
            if item_field.name == name:
                value = item_field.value
        return value


class Item(BaseModel):
    """A fetched item. Read-only snapshot of what op returned."""

    title: str = ""
    details: ItemDetails = ItemDetails()

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Payload encoding
# ---------------------------------------------------------------------------

def encode_details(details: ItemDetails) -> str:
    """Encode details for ``op create``.

    Empty values are left out of the JSON, as the op CLI expects.

    Returns:
        URL-safe base64 of the JSON document, without padding.

    Raises:
        SerializationError: If the details can't be JSON encoded.
    """
    try:
        payload = orjson.dumps(
            details.model_dump(by_alias=True, exclude_defaults=True)
        )
    except orjson.JSONEncodeError as err:
        raise SerializationError(f"unable to encode item details: {err}") from err
    return base64.urlsafe_b64encode(payload).rstrip(b"=").decode("ascii")


def decode_details(encoded: str) -> ItemDetails:
    """Inverse of :func:`encode_details`.

    Raises:
        SerializationError: If the text is not valid encoded details.
    """
    padded = encoded + "=" * (-len(encoded) % 4)
    try:
        data = orjson.loads(base64.urlsafe_b64decode(padded))
        return ItemDetails.model_validate(data)
    except (binascii.Error, orjson.JSONDecodeError, ValidationError) as err:
        raise SerializationError(f"unable to decode item details: {err}") from err


def parse_item(output: bytes) -> Item:
    """Parse ``op get item`` output.

    Raises:
        SerializationError: If the output is not an item document.
    """
    try:
        return Item.model_validate(orjson.loads(output))
    except (orjson.JSONDecodeError, ValidationError) as err:
        raise SerializationError(f"unable to unmarshal item data: {err}") from err


# ---------------------------------------------------------------------------
# Store
# ---------------------------------------------------------------------------

class ItemStore:
    """Item operations bound to one session."""

    def __init__(self, runner: CommandRunner, session: Session):
        self._runner = runner
        self._session = session

    def _run(self, *args: str, fetch: bool = False) -> bytes:
        """Run a command, turning known failure output into typed errors.

        Missing items only become NotFoundError for fetches; other commands
        let the SubprocessError through.
        """
        try:
            return self._runner.run(self._session, *args)
        except SubprocessError as err:
            kind = classify(err.output)
            if kind is OutputKind.AUTH_REQUIRED:
                raise AuthRequiredError(
                    f"found stale {self._session.env_key} variable in environment",
                    command=err.command,
                    output=err.output,
                    returncode=err.returncode,
                ) from err
            if fetch and kind is OutputKind.NOT_FOUND:
                raise NotFoundError(
                    f"{args[1]} {args[-1]!r} not found",
                    command=err.command,
                    output=err.output,
                    returncode=err.returncode,
                ) from err
            raise

    def get(self, item_type: str, name: str) -> Item:
        """Fetch an item.

        Args:
            item_type: op object type, normally ``"item"``.
            name: Item title or UUID.

        Raises:
            AuthRequiredError: If the session is stale.
            NotFoundError: If the item doesn't exist.
            SerializationError: If op printed something that isn't an item.
            SubprocessError: For any other op failure.
        """
        output = self._run("get", item_type, name, fetch=True)
        return parse_item(output)

    def get_totp(self, name: str) -> str:
        """Current one-time code of an item, as computed by op."""
        output = self._run("get", "totp", name, fetch=True)
        try:
            return output.decode("utf-8")
        except UnicodeDecodeError as err:
            raise SerializationError(
                f"unable to decode totp output for {name!r}"
            ) from err

    def delete(self, item_type: str, name: str) -> None:
        """Delete an item; a missing item counts as deleted."""
        try:
            self._run("delete", item_type, name)
        except AuthRequiredError:
            raise
        except SubprocessError as err:
            if is_not_found(err.output):
                logger.debug("Nothing to delete for %s %s", item_type, name)
                return
            raise

    def create(
        self,
        item_type: str,
        name: str,
        category: str,
        details: ItemDetails,
    ) -> None:
        """Create an item titled name.

        The op CLI refuses duplicate titles; delete first to replace.
        """
        encoded = encode_details(details)
        self._run("create", item_type, category, encoded, "--title", name)
        logger.debug("Created %s %r", category, name)
