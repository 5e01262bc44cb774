"""Executors: connect to a target, run commands on it, upload files to it."""

from .authority import Authority, parse_authority
from .base import (
    FILE_CHUNK_SIZE,
    Command,
    Executor,
    ExecutorSettings,
    ProgressCallback,
    WriteMode,
    chunk_count,
    render_command,
)
from .errors import (
    AuthorityParseError,
    ConnectError,
    ExecutorError,
    ExecutorTimeout,
    RemoteCommandError,
    StartupError,
    TransportError,
    normalize_error,
)
from .events import ChannelEvent, EventKind, receive_output
from .local import LocalConnection, LocalExecutor
from .progress import ConsoleProgressBar
from .secure_shell import Connection, SecureShell, TransportService

__all__ = [
    "Authority",
    "AuthorityParseError",
    "ChannelEvent",
    "Command",
    "ConnectError",
    "Connection",
    "ConsoleProgressBar",
    "EventKind",
    "Executor",
    "ExecutorError",
    "ExecutorSettings",
    "ExecutorTimeout",
    "FILE_CHUNK_SIZE",
    "LocalConnection",
    "LocalExecutor",
    "ProgressCallback",
    "RemoteCommandError",
    "SecureShell",
    "StartupError",
    "TransportError",
    "TransportService",
    "WriteMode",
    "chunk_count",
    "normalize_error",
    "parse_authority",
    "receive_output",
    "render_command",
]
