"""Executor that runs everything on the local machine."""

from __future__ import annotations

import os
import subprocess
from contextlib import ExitStack
from dataclasses import dataclass
from typing import IO, Any, Optional

from .authority import Authority, parse_authority
from .base import (
    Command,
    Executor,
    ExecutorSettings,
    PathLike,
    ProgressCallback,
    WriteMode,
    chunk_count,
    render_command,
    stream_chunks,
    write_output,
)
from .errors import ExecutorTimeout, translate_errors
from .progress import ConsoleProgressBar
from ..utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class LocalConnection:
    """Stand-in connection for :class:`LocalExecutor`. Holds no resources."""

    authority: Authority
    exec_timeout: int
    closed: bool = False

    def __enter__(self) -> "LocalConnection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def close(self) -> None:
        self.closed = True


class LocalExecutor(Executor):
    """
    Same contract as SecureShell, applied to this machine.

    The authority is parsed and validated but no network connection is made;
    commands run through the local shell and paths are local paths. Useful
    for dry runs and tests.
    """

    def __init__(self, settings: Optional[ExecutorSettings] = None) -> None:
        self.settings = settings or ExecutorSettings()

    def connect(self, authority: str) -> LocalConnection:
        target = parse_authority(authority)
        logger.info("Using local executor for %s", target)
        return LocalConnection(authority=target, exec_timeout=self.settings.exec_timeout)

    def exec(self, conn: LocalConnection, command: Command, sink: Optional[IO[Any]] = None) -> Optional[int]:
        line = render_command(command)
        logger.info("[local] $ %s", line)
        with translate_errors():
            try:
                process = subprocess.run(
                    line,
                    shell=True,
                    stdout=subprocess.PIPE,
                    stderr=subprocess.STDOUT,
                    timeout=conn.exec_timeout / 1000,
                    check=False,
                )
            except subprocess.TimeoutExpired as exc:
                raise ExecutorTimeout() from exc
        write_output(sink, process.stdout)
        return process.returncode

    def write_file(self, conn: LocalConnection, target: str, content: bytes, mode: WriteMode) -> None:
        with translate_errors():
            if mode is WriteMode.APPEND:
                with open(target, "r+b") as handle:
                    handle.seek(0, os.SEEK_END)
                    handle.write(content)
            else:
                with open(target, "wb") as handle:
                    handle.write(content)

    def copy(
        self,
        conn: LocalConnection,
        source: PathLike,
        target: str,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        with ExitStack() as stack:
            if progress is None:
                progress = stack.enter_context(ConsoleProgressBar(f"local:{target}"))
            with translate_errors():
                total = chunk_count(os.stat(source).st_size)
                with open(source, "rb") as local, open(target, "wb") as remote:
                    stream_chunks(local, remote.write, total, progress)
