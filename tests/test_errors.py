import errno
import socket
import unittest

import paramiko
from paramiko.ssh_exception import NoValidConnectionsError

from release_deployer.executor import (
    ConnectError,
    ExecutorError,
    ExecutorTimeout,
    TransportError,
    normalize_error,
)
from release_deployer.executor.errors import translate_errors


class NormalizeErrorTests(unittest.TestCase):
    def test_executor_errors_pass_through(self) -> None:
        original = ConnectError("refused")
        self.assertIs(normalize_error(original), original)

    def test_timeouts(self) -> None:
        normalized = normalize_error(socket.timeout("timed out"))
        self.assertIsInstance(normalized, ExecutorTimeout)
        self.assertIsInstance(normalized, TimeoutError)
        self.assertEqual(normalized.message, "timeout")

    def test_bare_ssh_failure_gets_generic_message(self) -> None:
        normalized = normalize_error(paramiko.SSHException())
        self.assertIsInstance(normalized, TransportError)
        self.assertEqual(normalized.message, "failure on the SSH connection")

    def test_ssh_failure_uses_default_kind(self) -> None:
        normalized = normalize_error(paramiko.SSHException("Error reading SSH protocol banner"), ConnectError)
        self.assertIsInstance(normalized, ConnectError)
        self.assertEqual(normalized.message, "Error reading SSH protocol banner")

    def test_unreachable_host_is_connect_error(self) -> None:
        exc = NoValidConnectionsError({("10.0.0.1", 22): OSError(errno.ECONNREFUSED, "refused")})
        self.assertIsInstance(normalize_error(exc), ConnectError)

    def test_unreachable_host_message_has_no_code(self) -> None:
        exc = NoValidConnectionsError({("10.0.0.1", 22): OSError(errno.ECONNREFUSED, "refused")})
        normalized = normalize_error(exc)
        self.assertEqual(normalized.message, "Unable to connect to port 22 on 10.0.0.1")

    def test_resolver_failure_is_rendered_readably(self) -> None:
        exc = socket.gaierror(socket.EAI_NONAME, "Name or service not known")
        normalized = normalize_error(exc, ConnectError)
        self.assertIsInstance(normalized, ConnectError)
        self.assertEqual(normalized.message, "Name or service not known")

    def test_refused_channel_uses_reason_text(self) -> None:
        exc = paramiko.ChannelException(1, "Administratively prohibited")
        normalized = normalize_error(exc, ConnectError)
        self.assertIsInstance(normalized, ConnectError)
        self.assertEqual(normalized.message, "Administratively prohibited")

    def test_posix_error_is_rendered_readably(self) -> None:
        normalized = normalize_error(OSError(errno.ECONNREFUSED, "whatever"))
        self.assertEqual(normalized.message, "Connection refused")
        normalized = normalize_error(FileNotFoundError(errno.ENOENT, "nope", "/tmp/x"))
        self.assertEqual(normalized.message, "No such file or directory: /tmp/x")

    def test_unknown_error_falls_back_to_repr(self) -> None:
        normalized = normalize_error(OSError())
        self.assertEqual(normalized.message, "OSError()")

    def test_translate_errors_chains_cause(self) -> None:
        with self.assertRaises(ExecutorError) as ctx:
            with translate_errors():
                raise EOFError()
        self.assertIsInstance(ctx.exception, TransportError)
        self.assertIsInstance(ctx.exception.__cause__, EOFError)


if __name__ == "__main__":
    unittest.main()
