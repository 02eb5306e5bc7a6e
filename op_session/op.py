"""
Op — the session facade.

Usage:
    from op_session import Op

    op = Op.create(account="my")
    user, password = op.get_user_pass("GitHub")
    code = op.get_totp("GitHub")
    op.set_secure_note("deploy notes", "rotate keys on friday")

    # one-shot helpers build a session per call
    from op_session import get_secure_note
    note = get_secure_note("deploy notes", password=os.environ["OP_PW"])

An Op signs in once, when it is created, and reuses the token for every
command. Nothing is retried: a stale token raises AuthRequiredError and the
caller decides whether to create a fresh Op.
"""
import logging
from typing import Any, Mapping, Optional
from urllib.parse import urlsplit

from pydantic import ValidationError

from .account import AccountResolver
from .conf import SECURE_NOTE_CATEGORY
from .config import OpConfig, SignInMode
from .exceptions import ConfigurationError, ItemFieldError, SubprocessError
from .items import ItemDetails, ItemStore
from .runner import CommandRunner
from .session import Session, SessionTokenStore

logger = logging.getLogger("op_session")


def account_from_url(url: str) -> str:
    """Account shorthand op assigns to a sign-in address.

    ``https://my.1password.com`` and ``my.1password.com`` both give ``my``.
    """
    host = urlsplit(url if "//" in url else f"//{url}").hostname or ""
    shorthand = host.split(".")[0]
    if not shorthand:
        raise ConfigurationError(f"cannot derive an account name from {url!r}")
    return shorthand


class Op:
    """A signed-in op session.

    Use :meth:`create` to build one; the constructor takes an already
    established session.
    """

    def __init__(self, config: OpConfig, session: Session, runner: CommandRunner):
        self._config = config
        self._session = session
        self._runner = runner
        self._items = ItemStore(runner, session)

    def __repr__(self) -> str:
        return f"<Op account={self.account!r} mode={self._config.signin_mode.value}>"

    # ------------------------------------------------------------------
    # Construction
    # ------------------------------------------------------------------

    @classmethod
    def create(
        cls,
        config: Optional[OpConfig] = None,
        *,
        resolver: Optional[AccountResolver] = None,
        environ: Optional[Mapping[str, str]] = None,
        **options: Any,
    ) -> "Op":
        """Resolve the account, sign in if needed and return an Op.

        Args:
            config: Session configuration. Built from ``options`` if omitted.
            resolver: Account resolver; the default reads ``~/.op/config``.
            environ: Base environment for sign-in lookup and every command.
                Defaults to ``os.environ``.
            **options: OpConfig fields (account, password, uid, email,
                secret_key, url, runner). Override ``config`` values.

        Raises:
            ConfigurationError: If the options are invalid or no account
                can be determined.
            SignInError: If sign-in fails.
        """
        try:
            if config is None:
                config = OpConfig(**options)
            elif options:
                config = OpConfig(**{**dict(config), **options})
        except ValidationError as err:
            raise ConfigurationError(f"invalid op options: {err}") from err

        account = cls._resolve_account(config, resolver)
        logger.debug(
            "Using account %s (%s sign-in)", account, config.signin_mode.value
        )
        runner = CommandRunner(config, environ)
        session = SessionTokenStore(config, runner).ensure(account)
        return cls(config, session, runner)

    @staticmethod
    def _resolve_account(
        config: OpConfig, resolver: Optional[AccountResolver]
    ) -> str:
        if config.account:
            return config.account
        if config.signin_mode is SignInMode.CONFIG_FREE:
            # no config file to consult in this mode
            return account_from_url(config.url)
        return (resolver or AccountResolver()).resolve(config.account)

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def account(self) -> str:
        return self._session.account

    @property
    def session(self) -> Session:
        return self._session

    @property
    def items(self) -> ItemStore:
        return self._items

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def get_user_pass(self, item: str) -> tuple[str, str]:
        """Username and password of a login item.

        Raises:
            ItemFieldError: If either field is missing or empty.
        """
        details = self._items.get("item", item).details
        user = details.get("username")
        password = details.get("password")
        if not user or not password:
            raise ItemFieldError(
                f"couldn't find username and password in '{item}'"
            )
        return user, password

    def get_totp(self, item: str) -> str:
        """Current one-time code of an item.

        Command failures are re-raised as the same error class with the
        item named in the message.
        """
        try:
            return self._items.get_totp(item)
        except SubprocessError as err:
            raise type(err)(
                f"cannot get totp for {item}: {err}",
                command=err.command,
                output=err.output,
                returncode=err.returncode,
            ) from err

    def get_user_pass_totp(self, item: str) -> tuple[str, str, str]:
        """Username, password and one-time code; stops at the first failure."""
        user, password = self.get_user_pass(item)
        totp = self.get_totp(item)
        return user, password, totp

    def get_secure_note(self, item: str) -> str:
        """Note body of an item; empty if it has none."""
        return self._items.get("item", item).details.notes_plain

    def set_secure_note(self, item: str, note: str) -> None:
        """Create or replace a secure note titled item."""
        # op won't create a second item with the same title
        self._items.delete("item", item)
        details = ItemDetails(notes_plain=note)
        self._items.create("item", item, SECURE_NOTE_CATEGORY, details)


# ----------------------------------------------------------------------
# One-shot helpers
# ----------------------------------------------------------------------

def get_user_pass(item: str, **options: Any) -> tuple[str, str]:
    """Sign in with ``options`` and return an item's username and password."""
    return Op.create(**options).get_user_pass(item)


def get_totp(item: str, **options: Any) -> str:
    """Sign in with ``options`` and return an item's one-time code."""
    return Op.create(**options).get_totp(item)


def get_user_pass_totp(item: str, **options: Any) -> tuple[str, str, str]:
    """Sign in with ``options`` and return username, password and code."""
    return Op.create(**options).get_user_pass_totp(item)


def get_secure_note(item: str, **options: Any) -> str:
    """Sign in with ``options`` and return an item's note body."""
    return Op.create(**options).get_secure_note(item)


def set_secure_note(item: str, note: str, **options: Any) -> None:
    """Sign in with ``options`` and create or replace a secure note."""
    Op.create(**options).set_secure_note(item, note)
