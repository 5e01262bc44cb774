"""Channel events and the command output receive loop."""

from __future__ import annotations

import socket
import time
from dataclasses import dataclass
from enum import Enum
from typing import IO, Any, Callable, List, Optional

import paramiko

from .base import write_output
from .errors import ExecutorTimeout
from ..utils.logging import get_logger

logger = get_logger(__name__)


class EventKind(str, Enum):
    DATA = "data"
    EOF = "eof"
    EXIT_STATUS = "exit_status"
    CLOSED = "closed"


@dataclass
class ChannelEvent:
    """One message delivered on an exec channel."""

    kind: EventKind
    data: bytes = b""
    status: Optional[int] = None


# Returns the next event, or None if nothing arrived within ``timeout`` seconds.
NextEvent = Callable[[float], Optional[ChannelEvent]]


def receive_output(next_event: NextEvent, timeout: float, sink: Optional[IO[Any]]) -> Optional[int]:
    """Consume channel events until the channel closes.

    Output is accumulated in arrival order and written to ``sink`` once the
    close event arrives. EOF and exit status never end the loop. ``timeout``
    bounds each individual wait.

    Returns the exit status, if one was reported before the close.

    Raises:
        ExecutorTimeout: if any wait for the next event expires; ``sink`` is
            left untouched.
    """
    chunks: List[bytes] = []
    exit_status: Optional[int] = None
    while True:
        event = next_event(timeout)
        if event is None:
            raise ExecutorTimeout()
        if event.kind is EventKind.DATA:
            chunks.append(event.data)
        elif event.kind is EventKind.EXIT_STATUS:
            exit_status = event.status
        elif event.kind is EventKind.CLOSED:
            write_output(sink, b"".join(chunks))
            return exit_status
        logger.debug("channel event: %s", event.kind.value)


class ParamikoChannelEvents:
    """Turns a blocking paramiko channel into a stream of :class:`ChannelEvent`.

    Data is read until EOF; then the exit status is awaited and finally the
    remote close. Each call waits at most ``timeout`` seconds.
    """

    POLL_INTERVAL = 0.1
    READ_SIZE = 32_768

    def __init__(self, channel: paramiko.Channel) -> None:
        self._channel = channel
        self._eof = False
        self._status_seen = False

    def __call__(self, timeout: float) -> Optional[ChannelEvent]:
        channel = self._channel
        if not self._eof:
            channel.settimeout(timeout)
            try:
                data = channel.recv(self.READ_SIZE)
            except socket.timeout:
                return None
            if data:
                return ChannelEvent(EventKind.DATA, data=data)
            self._eof = True
            return ChannelEvent(EventKind.EOF)

        if not self._status_seen:
            # status_event is also set when the channel closes without a status
            if not channel.status_event.wait(timeout):
                return None
            self._status_seen = True
            if channel.exit_status != -1:
                return ChannelEvent(EventKind.EXIT_STATUS, status=channel.exit_status)

        deadline = time.monotonic() + timeout
        while not channel.closed:
            if time.monotonic() >= deadline:
                return None
            time.sleep(self.POLL_INTERVAL)
        return ChannelEvent(EventKind.CLOSED)
