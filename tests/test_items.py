"""
Tests for ItemStore and item payload encoding.

Tests cover:
- Fetching and parsing items
- Failure classification (stale session, missing item, generic)
- Idempotent delete
- Create command construction
- Detail payload encoding
"""
import base64

import orjson
import pytest
from pydantic import ValidationError

from op_session import (
    AuthRequiredError,
    CommandRunner,
    Item,
    ItemDetails,
    ItemField,
    ItemStore,
    NotFoundError,
    SerializationError,
    Session,
    SubprocessError,
    decode_details,
    encode_details,
)

LOGIN_ITEM = orjson.dumps({
    "uuid": "abc123",
    "title": "GitHub",
    "details": {
        "fields": [
            {"designation": "username", "name": "username", "type": "T", "value": "octocat"},
            {"designation": "password", "name": "password", "type": "P", "value": "hunter2"},
        ],
        "notesPlain": "",
    },
})

STALE = b"[ERROR] 2021/01/01 12:00:00 You are not currently signed in.\n"
MISSING = b'[ERROR] 2021/01/01 12:00:00 "GitHub" doesn\'t seem to be an item.\n'


@pytest.fixture
def store(config, environ):
    return ItemStore(
        CommandRunner(config, environ), Session(account="my", token="tok123"),
    )


# --- Test get ---

class TestGet:
    """Tests for fetching items."""

    def test_get_item(self, store, fake_op):
        """Test an item is fetched and parsed."""
        fake_op.respond(stdout=LOGIN_ITEM + b"\n")
        item = store.get("item", "GitHub")
        assert isinstance(item, Item)
        assert item.title == "GitHub"
        assert [f.name for f in item.details.item_fields] == ["username", "password"]
        assert item.details.get("password") == "hunter2"
        assert fake_op.commands() == [["get", "item", "GitHub"]]

    def test_token_injected(self, store, fake_op):
        """Test the session token reaches the child environment."""
        fake_op.respond(stdout=LOGIN_ITEM)
        store.get("item", "GitHub")
        assert fake_op.calls[0].env["OP_SESSION_my"] == "tok123"

    def test_item_is_read_only(self, store, fake_op):
        """Test fetched items can't be modified."""
        fake_op.respond(stdout=LOGIN_ITEM)
        item = store.get("item", "GitHub")
        with pytest.raises(ValidationError):
            item.title = "changed"

    def test_bad_json(self, store, fake_op):
        """Test unparseable output is a SerializationError."""
        fake_op.respond(stdout=b"not json")
        with pytest.raises(SerializationError, match="unable to unmarshal"):
            store.get("item", "GitHub")

    def test_wrong_shape(self, store, fake_op):
        """Test JSON that isn't an item is a SerializationError."""
        fake_op.respond(stdout=b'{"details": {"fields": "nope"}}')
        with pytest.raises(SerializationError):
            store.get("item", "GitHub")

    def test_stale_session(self, store, fake_op):
        """Test auth failures raise AuthRequiredError."""
        fake_op.respond(stdout=STALE, returncode=1)
        with pytest.raises(AuthRequiredError, match="stale OP_SESSION_my") as exc:
            store.get("item", "GitHub")
        assert exc.value.output == STALE

    def test_missing_item(self, store, fake_op):
        """Test missing items raise NotFoundError."""
        fake_op.respond(stdout=MISSING, returncode=1)
        with pytest.raises(NotFoundError, match="'GitHub' not found"):
            store.get("item", "GitHub")

    def test_generic_failure(self, store, fake_op):
        """Test other failures raise plain SubprocessError."""
        fake_op.respond(stdout=b"[ERROR] connection refused\n", returncode=1)
        with pytest.raises(SubprocessError) as exc:
            store.get("item", "GitHub")
        assert type(exc.value) is SubprocessError

    def test_get_totp(self, store, fake_op):
        """Test the one-time code comes straight from op get totp."""
        fake_op.respond(stdout=b"123456\n")
        assert store.get_totp("GitHub") == "123456"
        assert fake_op.commands() == [["get", "totp", "GitHub"]]

    def test_get_totp_undecodable(self, store, fake_op):
        """Test output that isn't UTF-8 is a SerializationError."""
        fake_op.respond(stdout=b"\xff\xfe\n")
        with pytest.raises(SerializationError, match="unable to decode totp"):
            store.get_totp("GitHub")


# --- Test delete ---

class TestDelete:
    """Tests for deleting items."""

    def test_delete(self, store, fake_op):
        """Test the delete command."""
        store.delete("item", "GitHub")
        assert fake_op.commands() == [["delete", "item", "GitHub"]]

    def test_delete_missing_is_success(self, store, fake_op):
        """Test deleting a nonexistent item is not an error."""
        fake_op.respond(stdout=MISSING, returncode=1)
        assert store.delete("item", "GitHub") is None

    def test_delete_generic_failure(self, store, fake_op):
        """Test unknown failures are raised."""
        fake_op.respond(stdout=b"[ERROR] permission denied\n", returncode=1)
        with pytest.raises(SubprocessError):
            store.delete("item", "GitHub")

    def test_delete_stale_session(self, store, fake_op):
        """Test a stale session is not mistaken for a missing item."""
        fake_op.respond(stdout=STALE, returncode=1)
        with pytest.raises(AuthRequiredError):
            store.delete("item", "GitHub")


# --- Test create ---

class TestCreate:
    """Tests for creating items."""

    def test_create_command(self, store, fake_op):
        """Test the create command line."""
        details = ItemDetails(notes_plain="hello")
        store.create("item", "deploy", "Secure Note", details)
        assert fake_op.commands() == [
            ["create", "item", "Secure Note", encode_details(details), "--title", "deploy"],
        ]

    def test_create_not_found_output_not_suppressed(self, store, fake_op):
        """Test create failures are raised even if they mention 'not found'."""
        fake_op.respond(stdout=b"[ERROR] vault not found\n", returncode=1)
        with pytest.raises(SubprocessError) as exc:
            store.create("item", "deploy", "Secure Note", ItemDetails())
        assert not isinstance(exc.value, NotFoundError)


# --- Test encoding ---

class TestEncoding:
    """Tests for detail payload encoding."""

    def test_encoded_json(self):
        """Test the payload is unpadded URL-safe base64 of the JSON."""
        encoded = encode_details(ItemDetails(notes_plain="hi"))
        assert "=" not in encoded
        padded = encoded + "=" * (-len(encoded) % 4)
        assert orjson.loads(base64.urlsafe_b64decode(padded)) == {"notesPlain": "hi"}

    def test_empty_values_omitted(self):
        """Test empty notes and empty field values are left out."""
        details = ItemDetails(item_fields=(ItemField(name="username"),))
        encoded = encode_details(details)
        padded = encoded + "=" * (-len(encoded) % 4)
        data = orjson.loads(base64.urlsafe_b64decode(padded))
        assert data == {"fields": [{"name": "username"}]}

    def test_url_safe_alphabet(self):
        """Test + and / never appear in the payload."""
        details = ItemDetails(notes_plain="~~~???>>>" * 10)
        encoded = encode_details(details)
        assert "+" not in encoded and "/" not in encoded

    def test_round_trip(self):
        """Test fields keep their order and the note survives unchanged."""
        details = ItemDetails(
            item_fields=(
                ItemField(name="username", value="octocat"),
                ItemField(name="password", value="p@ss/+word"),
                ItemField(name="pin", value="0000"),
            ),
            notes_plain="line one\nline two\n",
        )
        assert decode_details(encode_details(details)) == details

    def test_decode_garbage(self):
        """Test invalid payloads raise SerializationError."""
        with pytest.raises(SerializationError):
            decode_details("bm90IGpzb24")

    def test_details_by_alias(self):
        """Test details accept op's wire names."""
        details = ItemDetails.model_validate(
            {"fields": [{"name": "a", "value": "1"}], "notesPlain": "n"}
        )
        assert details.get("a") == "1"
        assert details.notes_plain == "n"
