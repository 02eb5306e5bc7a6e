"""
Session Token Store — find or obtain an op session token.

A token exported by an earlier ``eval $(op signin)`` in the same shell is
reused as is. Otherwise ``op signin`` is run and the token is read back from
the ``export OP_SESSION_<account>="<token>"`` line it prints.

Tokens are held in the returned :class:`Session` only; they are never written
back to ``os.environ``. A stale token is not detected here: it surfaces as an
``AuthRequiredError`` from the first command that uses it.

Security Note:
    Never log the token, password or secret key. Only log account names.
"""
import re
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Mapping, Optional

from .conf import ENV_PREFIX
from .config import OpConfig, SignInMode
from .exceptions import SignInError, SubprocessError

if TYPE_CHECKING:
    from .runner import CommandRunner

logger = logging.getLogger("op_session")


def session_env_key(account: str) -> str:
    """Environment variable holding the session token for an account."""
    return f"{ENV_PREFIX}{account}"


@dataclass(frozen=True)
class Session:
    """An (account, token) pair for one op session."""

    account: str
    token: str = field(repr=False)

    @property
    def env_key(self) -> str:
        return session_env_key(self.account)


class SessionTokenStore:
    """Produces the Session for an account, signing in if needed."""

    def __init__(self, config: OpConfig, runner: "CommandRunner"):
        self._config = config
        self._runner = runner

    def cached_token(self, account: str) -> Optional[str]:
        """Return the token already exported for account, if any."""
        environ: Mapping[str, str] = self._runner.environ
        return environ.get(session_env_key(account)) or None

    def ensure(self, account: str) -> Session:
        """Return a session for account.

        Args:
            account: Resolved account shorthand.

        Returns:
            Session carrying the cached or freshly issued token.

        Raises:
            SignInError: If sign-in fails or prints no token.
        """
        token = self.cached_token(account)
        if token:
            logger.debug("Reusing exported session for account %s", account)
            return Session(account=account, token=token)

        token = self.signin(account)
        logger.info("Signed in to 1Password account %s", account)
        return Session(account=account, token=token)

    def signin(self, account: str) -> str:
        """Run ``op signin`` and return the issued token.

        Config-free sign-in (url, email and secret key all set) ignores the
        account name for the command; the account still names the token.
        """
        config = self._config
        mode = config.signin_mode
        if mode is SignInMode.CONFIG_FREE:
            logger.debug("Signing in to %s without a config file", config.url)
            args = [config.url, config.email, config.secret_key.get_secret_value()]
            user = None
        else:
            logger.debug("Signing in to account %s (%s)", account, mode.value)
            args = [account]
            user = config.uid

        try:
            output = self._runner.signin(
                args,
                password=config.password.get_secret_value(),
                user=user,
            )
        except SubprocessError as err:
            raise SignInError(f"unable to sign-in to {account}: {err}") from err

        token = extract_token(output, session_env_key(account))
        if token is None:
            raise SignInError(
                f"couldn't find {session_env_key(account)} in op output"
            )
        return token


def extract_token(output: bytes, env_key: str) -> Optional[str]:
    """Find the token in ``op signin`` output.

    Args:
        output: Captured stdout of ``op signin``.
        env_key: Environment key the token is exported under.

    Returns:
        The first matching token, or None.
    """
    pattern = re.compile(rf'export {re.escape(env_key)}="(.*)"')
    text = output.decode("utf-8", errors="replace")
    for line in text.split("\n"):
        match = pattern.search(line)
        if match:
            return match.group(1) or None
    return None
