"""
Command Runner — launch the op binary.

Every invocation gets a copy of the process environment with the session
token added under its ``OP_SESSION_<account>`` key. The calling process's own
environment is never modified.

Security Note:
    Command arguments may contain encoded item payloads. Only the
    sub-command and item name are logged, never the full argument list.
"""
import os
import logging
import threading
import subprocess
from typing import IO, TYPE_CHECKING, Any, Mapping, Optional, Sequence

from .conf import OP_BINARY
from .config import OpConfig
from .exceptions import SubprocessError

if TYPE_CHECKING:
    from .session import Session

logger = logging.getLogger("op_session")

_NEWLINE = b"\n"


def _feed_stdin(stream: IO[bytes], data: bytes) -> None:
    """Write data to a child's stdin and close it so the child sees EOF."""
    try:
        with stream:
            stream.write(data)
    except OSError as err:
        # op exiting early closes the pipe; its exit status reports why
        logger.debug("Unable to write password to op stdin: %s", err)


def _describe(args: Sequence[str]) -> str:
    return " ".join([OP_BINARY, *args[:3]])


class CommandRunner:
    """Runs op sub-commands for one session configuration."""

    def __init__(
        self,
        config: OpConfig,
        environ: Optional[Mapping[str, str]] = None,
    ):
        self._config = config
        self._environ = os.environ if environ is None else environ

    @property
    def environ(self) -> Mapping[str, str]:
        """The base environment copied for every invocation."""
        return self._environ

    def environment(self, session: Optional["Session"] = None) -> dict[str, str]:
        """Build the environment for one invocation.

        Args:
            session: Session whose token is added. The token entry replaces
                any value already present under the same key.

        Returns:
            A fresh dict; mutating it has no effect on the process.
        """
        env = dict(self._environ)
        if session is not None:
            env[session.env_key] = session.token
        return env

    def _spawn(self, args: Sequence[str], **kwargs: Any) -> Any:
        command = [OP_BINARY, *args]
        try:
            return self._config.runner(command, **kwargs)
        except OSError as err:
            raise SubprocessError(
                f"unable to start {_describe(args)}: {err}",
                command=args[:1],
            ) from err

    def run(self, session: Optional["Session"], *args: str) -> bytes:
        """Run an op command and return its combined output.

        A single trailing newline is removed from the output.

        Args:
            session: Session whose token is injected, or None.
            *args: Arguments passed to the op binary.

        Returns:
            Combined stdout/stderr bytes.

        Raises:
            SubprocessError: If op exits non-zero. The raw, unstripped output
                is available on the exception for classification.
        """
        logger.debug("Running %s", _describe(args))
        proc = self._spawn(
            args,
            env=self.environment(session),
            stdout=subprocess.PIPE,
            stderr=subprocess.STDOUT,
            user=self._config.uid,
        )
        output, _ = proc.communicate()
        output = output or b""
        if proc.returncode != 0:
            raise SubprocessError(
                f"error running {_describe(args)}: "
                f"{output.decode('utf-8', errors='replace').strip()}",
                command=args,
                output=output,
                returncode=proc.returncode,
            )
        if output.endswith(_NEWLINE):
            output = output[:-1]
        return output

    def signin(
        self,
        args: Sequence[str],
        password: str = "",
        user: Optional[int] = None,
    ) -> bytes:
        """Run ``op signin`` and return its stdout.

        When a password is given it is written to the child's stdin from a
        separate thread, which closes the pipe afterwards. Without a
        password the child reads from the caller's own stdin.

        Args:
            args: Positional sign-in arguments.
            password: Password to pipe into the child, if any.
            user: uid to run the child as, if any.

        Returns:
            Captured stdout bytes.

        Raises:
            SubprocessError: If op can't be started or exits non-zero.
        """
        command = ["signin", *args]
        proc = self._spawn(
            command,
            env=self.environment(),
            stdin=subprocess.PIPE if password else None,
            stdout=subprocess.PIPE,
            stderr=subprocess.PIPE,
            user=user,
        )
        writer = None
        if password:
            # communicate() must not touch the pipe owned by the writer
            pipe, proc.stdin = proc.stdin, None
            writer = threading.Thread(
                target=_feed_stdin,
                args=(pipe, password.encode("utf-8")),
                daemon=True,
            )
            writer.start()
        try:
            stdout, stderr = proc.communicate()
        finally:
            if writer is not None:
                writer.join()
        if proc.returncode != 0:
            detail = (stderr or b"").decode("utf-8", errors="replace").strip()
            raise SubprocessError(
                f"{OP_BINARY} signin exited with status {proc.returncode}: {detail}",
                command=command[:1],
                output=stderr or b"",
                returncode=proc.returncode,
            )
        return stdout or b""
