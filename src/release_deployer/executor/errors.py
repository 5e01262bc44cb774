"""Executor error taxonomy and transport error normalization."""

from __future__ import annotations

import os
import socket
from contextlib import contextmanager
from typing import Iterator, Type

import paramiko
from paramiko.ssh_exception import NoValidConnectionsError

from ..utils.logging import get_logger

logger = get_logger(__name__)

GENERIC_FAILURE = "failure on the SSH connection"


class ExecutorError(RuntimeError):
    """Base class for every failure raised by an executor operation."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class StartupError(ExecutorError):
    """Raised when the transport layer could not be initialized."""


class ConnectError(ExecutorError):
    """Raised when a session or its file-transfer channel cannot be opened."""


class ExecutorTimeout(ExecutorError, TimeoutError):
    """Raised when a bounded wait on the transport expires."""

    def __init__(self, message: str = "timeout") -> None:
        super().__init__(message)


class TransportError(ExecutorError):
    """Raised when the transport signals a failure on an open connection."""


class AuthorityParseError(ExecutorError, ValueError):
    """Raised when an authority string cannot be parsed."""


class RemoteCommandError(ExecutorError):
    """Raised when a remote command finishes with a non-zero exit status."""

    def __init__(self, command: str, exit_status: int) -> None:
        self.command = command
        self.exit_status = exit_status
        super().__init__(f"command {command!r} exited with status {exit_status}")


def _format_os_error(exc: OSError) -> str:
    # resolver errors carry negative codes that os.strerror cannot name
    if isinstance(exc.errno, int) and exc.errno > 0:
        message = os.strerror(exc.errno)
    else:
        message = exc.strerror
    if message:
        if exc.filename:
            return f"{message}: {exc.filename}"
        return message
    text = str(exc)
    return text or repr(exc)


def normalize_error(
    exc: BaseException, default: Type[ExecutorError] = TransportError
) -> ExecutorError:
    """Collapse a transport or OS level exception into an :class:`ExecutorError`.

    ``default`` picks the kind used for failures that carry no more specific
    classification (``ConnectError`` while connecting, ``TransportError``
    afterwards).
    """
    if isinstance(exc, ExecutorError):
        return exc
    if isinstance(exc, (socket.timeout, TimeoutError)):
        return ExecutorTimeout()
    if isinstance(exc, NoValidConnectionsError):
        return ConnectError(exc.strerror or GENERIC_FAILURE)
    if isinstance(exc, paramiko.AuthenticationException):
        return ConnectError(str(exc) or GENERIC_FAILURE)
    if isinstance(exc, paramiko.ChannelException):
        return default(exc.text or GENERIC_FAILURE)
    if isinstance(exc, paramiko.SSHException):
        return default(str(exc) or GENERIC_FAILURE)
    if isinstance(exc, EOFError):
        return default(GENERIC_FAILURE)
    if isinstance(exc, OSError):
        return default(_format_os_error(exc))
    return default(str(exc) or repr(exc))


@contextmanager
def translate_errors(default: Type[ExecutorError] = TransportError) -> Iterator[None]:
    """Re-raise anything escaping the block as a normalized executor error."""
    try:
        yield
    except ExecutorError:
        raise
    except Exception as exc:
        normalized = normalize_error(exc, default)
        logger.debug("%s normalized to %s: %s", type(exc).__name__, type(normalized).__name__, normalized.message)
        raise normalized from exc
