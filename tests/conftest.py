"""
Shared fixtures: a fake op binary.

``FakeOp`` stands in for :class:`subprocess.Popen`. Every invocation is
recorded, and replies are taken from a queue filled with ``respond()``.
"""
import io
import subprocess
from dataclasses import dataclass, field
from typing import Any, Optional

import pytest

from op_session import OpConfig


class FakeStdin(io.BytesIO):
    """stdin pipe that remembers what was written before it was closed."""

    written: Optional[bytes] = None

    def close(self) -> None:
        if not self.closed:
            self.written = self.getvalue()
        super().close()


@dataclass
class Call:
    args: list
    kwargs: dict
    stdin: Optional[FakeStdin] = None

    @property
    def env(self) -> dict:
        return self.kwargs.get("env") or {}


@dataclass
class Reply:
    stdout: bytes = b""
    stderr: bytes = b""
    returncode: int = 0
    error: Optional[Exception] = None


class FakeProcess:
    def __init__(self, call: Call, reply: Reply):
        self._reply = reply
        self._combined = call.kwargs.get("stderr") == subprocess.STDOUT
        self.returncode: Optional[int] = None
        self.stdin = None
        if call.kwargs.get("stdin") == subprocess.PIPE:
            self.stdin = call.stdin = FakeStdin()

    def communicate(self, input: Any = None):
        self.returncode = self._reply.returncode
        if self._combined:
            return self._reply.stdout + self._reply.stderr, None
        return self._reply.stdout, self._reply.stderr


@dataclass
class FakeOp:
    calls: list = field(default_factory=list)
    replies: list = field(default_factory=list)

    def respond(
        self,
        stdout: bytes = b"",
        stderr: bytes = b"",
        returncode: int = 0,
        error: Optional[Exception] = None,
    ) -> "FakeOp":
        self.replies.append(Reply(stdout, stderr, returncode, error))
        return self

    def __call__(self, args, **kwargs):
        call = Call(args=list(args), kwargs=kwargs)
        self.calls.append(call)
        reply = self.replies.pop(0) if self.replies else Reply()
        if reply.error is not None:
            raise reply.error
        return FakeProcess(call, reply)

    def commands(self) -> list:
        """Arguments of every call, without the binary name."""
        return [call.args[1:] for call in self.calls]


@pytest.fixture
def fake_op():
    """A fresh fake op binary."""
    return FakeOp()


@pytest.fixture
def environ():
    """Base environment handed to the code under test instead of os.environ."""
    return {"PATH": "/usr/bin", "HOME": "/home/tester"}


@pytest.fixture
def config(fake_op):
    """Config for account 'my' running the fake op."""
    return OpConfig(account="my", runner=fake_op)
