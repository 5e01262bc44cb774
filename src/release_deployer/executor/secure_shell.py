"""SSH executor built on Paramiko."""

from __future__ import annotations

import logging
import os
import threading
from contextlib import ExitStack
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Callable, List, Optional

import paramiko

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
)
from .errors import (
    ConnectError,
    ExecutorError,
    ExecutorTimeout,
    StartupError,
    TransportError,
    normalize_error,
    translate_errors,
)
from .events import ParamikoChannelEvents, receive_output
from .progress import ConsoleProgressBar
from ..utils.logging import get_logger

logger = get_logger(__name__)

KEY_FILE_NAMES = ("id_ed25519", "id_ecdsa", "id_rsa", "id_dsa")


def _seconds(milliseconds: int) -> float:
    return milliseconds / 1000


def _request_exec(channel: paramiko.Channel, line: str, timeout: float) -> None:
    """Send the exec request, closing the channel if the server has not answered in time."""
    expired = threading.Event()

    def expire() -> None:
        expired.set()
        channel.close()

    timer = threading.Timer(timeout, expire)
    timer.daemon = True
    timer.start()
    try:
        channel.exec_command(line)
    except paramiko.SSHException as exc:
        if expired.is_set():
            raise ExecutorTimeout() from exc
        raise
    finally:
        timer.cancel()
    if expired.is_set():
        raise ExecutorTimeout()


def _start_transport() -> None:
    # Paramiko logs every transport thread event at INFO; keep only problems.
    logging.getLogger("paramiko").setLevel(logging.WARNING)


class TransportService:
    """Process-wide, run-once start-up of the SSH transport layer."""

    def __init__(self, initializer: Callable[[], None] = _start_transport) -> None:
        self._initializer = initializer
        self._lock = threading.Lock()
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    def ensure_started(self) -> None:
        with self._lock:
            if self._started:
                return
            try:
                self._initializer()
            except Exception as exc:
                reason = normalize_error(exc).message
                raise StartupError(f"could not start ssh transport: {reason}") from exc
            self._started = True


TRANSPORT_SERVICE = TransportService()


@dataclass
class Connection:
    """A live SSH session plus its SFTP channel. Timeouts are in milliseconds."""

    authority: Authority
    client: paramiko.SSHClient
    sftp: paramiko.SFTPClient
    connect_timeout: int
    write_timeout: int
    exec_timeout: int
    closed: bool = False

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def bound_sftp(self, timeout: int) -> None:
        """Bound the next SFTP request by ``timeout`` milliseconds."""
        self.sftp.get_channel().settimeout(_seconds(timeout))

    def close(self) -> None:
        if self.closed:
            return
        self.closed = True
        try:
            self.sftp.close()
        finally:
            self.client.close()
        logger.debug("Closed connection to %s", self.authority)


class SecureShell(Executor):
    """Executor that reaches its targets over SSH.

    Keys are picked up from ``settings.key_dir`` (``~/.ssh`` by default),
    together with its ``known_hosts`` file. User and password come from the
    authority string.
    """

    def __init__(
        self,
        settings: Optional[ExecutorSettings] = None,
        *,
        client_factory: Callable[[], paramiko.SSHClient] | None = None,
        sftp_factory: Callable[[paramiko.Channel], paramiko.SFTPClient] | None = None,
        transport_service: Optional[TransportService] = None,
    ) -> None:
        self.settings = settings or ExecutorSettings()
        self._client_factory = client_factory or paramiko.SSHClient
        self._sftp_factory = sftp_factory or paramiko.SFTPClient
        self._transport_service = transport_service or TRANSPORT_SERVICE

    # -------------------------
    # connection lifecycle
    # -------------------------
    def connect(self, authority: str) -> Connection:
        target = parse_authority(authority)
        settings = self.settings
        key_dir = Path(settings.key_dir).expanduser()
        connect_timeout = _seconds(settings.connect_timeout)

        self._transport_service.ensure_started()

        client = self._client_factory()
        try:
            with translate_errors(ConnectError):
                known_hosts = key_dir / "known_hosts"
                if known_hosts.is_file():
                    client.load_host_keys(str(known_hosts))
                client.set_missing_host_key_policy(paramiko.AutoAddPolicy())
                client.connect(
                    hostname=target.host,
                    port=target.port,
                    username=target.user,
                    password=target.password,
                    key_filename=self._key_files(key_dir) or None,
                    timeout=connect_timeout,
                    banner_timeout=connect_timeout,
                    auth_timeout=connect_timeout,
                    look_for_keys=False,
                )
                sftp = self._open_sftp(client, connect_timeout)
        except ExecutorError as exc:
            client.close()
            logger.debug("Connecting to %s failed: %s", target, exc)
            raise

        logger.info("Connected to %s", target)
        return Connection(
            authority=target,
            client=client,
            sftp=sftp,
            connect_timeout=settings.connect_timeout,
            write_timeout=settings.write_timeout,
            exec_timeout=settings.exec_timeout,
        )

    def _key_files(self, key_dir: Path) -> List[str]:
        return [str(key_dir / name) for name in KEY_FILE_NAMES if (key_dir / name).is_file()]

    def _open_sftp(self, client: paramiko.SSHClient, timeout: float) -> paramiko.SFTPClient:
        transport = self._active_transport(client)
        channel = transport.open_session(timeout=timeout)
        channel.settimeout(timeout)
        channel.invoke_subsystem("sftp")
        return self._sftp_factory(channel)

    def _active_transport(self, client: paramiko.SSHClient) -> paramiko.Transport:
        transport = client.get_transport()
        if transport is None or not transport.is_active():
            raise TransportError("SSH connection is not active")
        return transport

    # -------------------------
    # operations
    # -------------------------
    def exec(self, conn: Connection, command: Command, sink: Optional[IO[Any]] = None) -> Optional[int]:
        line = render_command(command)
        logger.info("[%s] $ %s", conn.authority.host, line)
        exec_timeout = _seconds(conn.exec_timeout)

        with translate_errors():
            transport = self._active_transport(conn.client)
            channel = transport.open_session(timeout=_seconds(conn.connect_timeout))
            try:
                channel.set_combine_stderr(True)
                channel.settimeout(exec_timeout)
                _request_exec(channel, line, exec_timeout)
                status = receive_output(ParamikoChannelEvents(channel), exec_timeout, sink)
            finally:
                # a channel abandoned on timeout must not deliver into the next call
                channel.close()

        logger.debug("[%s] exit status %s", conn.authority.host, status)
        return status

    def write_file(self, conn: Connection, target: str, content: bytes, mode: WriteMode) -> None:
        with translate_errors():
            conn.bound_sftp(conn.connect_timeout)
            if mode is WriteMode.APPEND:
                handle = conn.sftp.open(target, "r+b", bufsize=0)
                conn.bound_sftp(conn.exec_timeout)
                handle.seek(0, os.SEEK_END)
            else:
                handle = conn.sftp.open(target, "wb", bufsize=0)
            conn.bound_sftp(conn.write_timeout)
            handle.write(content)
            conn.bound_sftp(conn.exec_timeout)
            handle.close()
        logger.debug("[%s] wrote %d bytes to %s (%s)", conn.authority.host, len(content), target, mode.value)

    def copy(
        self,
        conn: Connection,
        source: PathLike,
        target: str,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        with ExitStack() as stack:
            if progress is None:
                progress = stack.enter_context(
                    ConsoleProgressBar(f"{conn.authority.host}:{target}")
                )
            with translate_errors():
                size = os.stat(source).st_size
                total = chunk_count(size)
                logger.info(
                    "[%s] Uploading %s (%d bytes, %d chunks) to %s",
                    conn.authority.host, source, size, total, target,
                )
                with open(source, "rb") as local:
                    conn.bound_sftp(conn.connect_timeout)
                    remote = conn.sftp.open(target, "wb", bufsize=0)

                    def write_chunk(chunk: bytes) -> None:
                        conn.bound_sftp(conn.write_timeout)
                        remote.write(chunk)

                    stream_chunks(local, write_chunk, total, progress)
                    conn.bound_sftp(conn.exec_timeout)
                    remote.close()
