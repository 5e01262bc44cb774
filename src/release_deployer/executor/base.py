"""Executor capability shared by every transport."""

from __future__ import annotations

import io
import math
import sys
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import IO, Any, BinaryIO, Callable, Iterator, Optional, Sequence, Union

FILE_CHUNK_SIZE = 100_000  # in bytes

Command = Union[str, Sequence[str]]
ProgressCallback = Callable[[float], None]
PathLike = Union[str, Path]


class WriteMode(str, Enum):
    """How ``write_file`` treats an existing remote target."""

    APPEND = "append"
    WRITE = "write"


@dataclass
class ExecutorSettings:
    """Resolved executor configuration. Timeouts are in milliseconds."""

    key_dir: str = "~/.ssh"
    connect_timeout: int = 5_000
    write_timeout: int = 5_000
    exec_timeout: int = 5_000


def render_command(command: Command) -> str:
    """Concatenate command fragments into the literal command line.

    Fragments are joined as-is; ``["mkdir -p ", path]`` becomes
    ``"mkdir -p " + path``.
    """
    if isinstance(command, str):
        return command
    return "".join(command)


def chunk_count(size: int, chunk_size: int = FILE_CHUNK_SIZE) -> int:
    return math.ceil(size / chunk_size)


def iter_chunks(handle: BinaryIO, chunk_size: int = FILE_CHUNK_SIZE) -> Iterator[bytes]:
    while True:
        chunk = handle.read(chunk_size)
        if not chunk:
            return
        yield chunk


def stream_chunks(
    handle: BinaryIO,
    write: Callable[[bytes], Any],
    total: int,
    progress: ProgressCallback,
) -> None:
    """Feed ``handle`` to ``write`` chunk by chunk, reporting progress after each."""
    for index, chunk in enumerate(iter_chunks(handle), 1):
        write(chunk)
        progress(index / total)


def write_output(sink: Optional[IO[Any]], data: bytes) -> None:
    """Write captured command output to ``sink`` in a single call."""
    if sink is None:
        sink = sys.stdout
    if isinstance(sink, io.TextIOBase):
        sink.write(data.decode("utf-8", errors="replace"))
    else:
        sink.write(data)
    sink.flush()


class Executor(ABC):
    """Connects to a target, runs commands on it and transfers files to it.

    Every operation either returns normally or raises a single
    :class:`~release_deployer.executor.errors.ExecutorError`.
    """

    @abstractmethod
    def connect(self, authority: str) -> Any:
        """Open a connection to the target described by ``authority``."""

    @abstractmethod
    def exec(self, conn: Any, command: Command, sink: Optional[IO[Any]] = None) -> Optional[int]:
        """Run ``command`` and write its complete output to ``sink`` once.

        Returns the exit status reported by the target, if any.
        """

    @abstractmethod
    def write_file(self, conn: Any, target: str, content: bytes, mode: WriteMode) -> None:
        """Write ``content`` to ``target``, truncating or appending per ``mode``."""

    @abstractmethod
    def copy(
        self,
        conn: Any,
        source: PathLike,
        target: str,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        """Upload the local file ``source`` to ``target`` in ordered chunks."""
