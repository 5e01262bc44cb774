"""Release deployment across the configured hosts."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import IO, Any, Iterable, List, Optional

from .config import AppConfig
from .executor import (
    Command,
    Executor,
    ExecutorError,
    ProgressCallback,
    RemoteCommandError,
    render_command,
)
from .utils.logging import get_logger

logger = get_logger(__name__)


@dataclass
class HostDeployResult:
    """Outcome of deploying to one host."""

    name: str
    authority: str
    error: Optional[str] = None
    failed_step: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.error is None


class DeploymentWorkflow:
    """Uploads a release tarball to every host and unpacks it there.

    Per host: create the target directory, upload the tarball, create the
    unpack directory and extract into it. The first failure on a host stops
    that host; the remaining hosts are still deployed.
    """

    def __init__(
        self,
        config: AppConfig,
        executor: Executor,
        *,
        sink: Optional[IO[Any]] = None,
        progress: Optional[ProgressCallback] = None,
    ) -> None:
        self.config = config
        self.executor = executor
        self.sink = sink
        self.progress = progress

    def run(self, tarball: str, hosts: Optional[Iterable[str]] = None) -> List[HostDeployResult]:
        source = Path(tarball)
        if not source.is_file():
            raise FileNotFoundError(f"Release tarball not found: {tarball}")

        names = list(hosts) if hosts is not None else list(self.config.hosts)
        unknown = [name for name in names if name not in self.config.hosts]
        if unknown:
            raise ValueError(f"Unknown host(s): {', '.join(unknown)}")

        results = []
        for name in names:
            results.append(self.deploy_host(name, self.config.hosts[name], source))
        return results

    def deploy_host(self, name: str, authority: str, source: Path) -> HostDeployResult:
        result = HostDeployResult(name=name, authority=authority)
        deployment = self.config.deployment
        logger.info("🚀 Deploying %s to %s", source.name, name)

        step = "connect"
        try:
            with self.executor.connect(authority) as conn:
                step = "upload"
                self._ensure_dir(conn, deployment.target_dir)
                self.executor.copy(conn, source, deployment.release_file, self.progress)

                step = "unpack"
                self._ensure_dir(conn, deployment.unpack_dir)
                self._run(
                    conn,
                    ["tar -C ", deployment.unpack_dir, " -zxf ", deployment.release_file],
                )
        except ExecutorError as exc:
            result.error = exc.message
            result.failed_step = step
            logger.error("❌ %s failed during %s: %s", name, step, exc.message)
            return result

        logger.info("✅ %s deployed to %s", name, deployment.unpack_dir)
        return result

    def _ensure_dir(self, conn: Any, path: str) -> None:
        self._run(conn, ["mkdir -p ", path])

    def _run(self, conn: Any, command: Command) -> None:
        status = self.executor.exec(conn, command, self.sink)
        if status:
            raise RemoteCommandError(render_command(command), status)
