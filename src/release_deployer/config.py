"""Configuration loading utilities for release-deployer."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, Optional

from dotenv import load_dotenv

from .executor import ExecutorSettings

# Load .env file if it exists
load_dotenv()

_DEFAULT_CONFIG_PATH = Path("config/default_config.json")

_ENV_PREFIX = "RELEASE_DEPLOYER_"


def _without_comments(payload: Dict[str, Any]) -> Dict[str, Any]:
    # Keys starting with "_" are comments
    return {k: v for k, v in payload.items() if not k.startswith("_")}


@dataclass
class DeploymentConfig:
    """Where releases go on every host."""

    target_dir: str = "/opt/release"
    release_name: str = "release.tar.gz"
    current_dir: str = "current"

    @property
    def release_file(self) -> str:
        return f"{self.target_dir}/{self.release_name}"

    @property
    def unpack_dir(self) -> str:
        return f"{self.target_dir}/{self.current_dir}"


@dataclass
class AppConfig:
    """Top-level configuration."""

    # host name -> authority string, deployed in this order
    hosts: Dict[str, str] = field(default_factory=dict)
    deployment: DeploymentConfig = field(default_factory=DeploymentConfig)
    executor: ExecutorSettings = field(default_factory=ExecutorSettings)

    @classmethod
    def from_dict(cls, payload: Dict[str, Any]) -> "AppConfig":
        hosts_payload = _without_comments(payload.get("hosts", {}) or {})
        deployment_payload = _without_comments(payload.get("deployment", {}) or {})
        executor_payload = _without_comments(payload.get("executor", {}) or {})

        for name, authority in hosts_payload.items():
            if not isinstance(authority, str) or not authority:
                raise ValueError(f"Host {name!r} must map to a non-empty authority string")

        return cls(
            hosts=dict(hosts_payload),
            deployment=DeploymentConfig(
                **{**DeploymentConfig().__dict__, **deployment_payload}
            ),
            executor=ExecutorSettings(
                **{**ExecutorSettings().__dict__, **executor_payload}
            ),
        )


def _env_int(name: str) -> Optional[int]:
    value = os.getenv(_ENV_PREFIX + name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError as exc:
        raise ValueError(f"{_ENV_PREFIX}{name} must be an integer, got {value!r}") from exc


def apply_env_overrides(config: AppConfig) -> AppConfig:
    """Override file settings with environment variables.

    - RELEASE_DEPLOYER_SSH_DIR: directory holding SSH keys and known_hosts
    - RELEASE_DEPLOYER_CONNECT_TIMEOUT: connect timeout (ms)
    - RELEASE_DEPLOYER_WRITE_TIMEOUT: write timeout (ms)
    - RELEASE_DEPLOYER_EXEC_TIMEOUT: exec timeout (ms)
    - RELEASE_DEPLOYER_TARGET_DIR: remote directory receiving releases
    """
    key_dir = os.getenv(_ENV_PREFIX + "SSH_DIR")
    if key_dir:
        config.executor.key_dir = key_dir

    for name in ("connect_timeout", "write_timeout", "exec_timeout"):
        value = _env_int(name.upper())
        if value is not None:
            setattr(config.executor, name, value)

    target_dir = os.getenv(_ENV_PREFIX + "TARGET_DIR")
    if target_dir:
        config.deployment.target_dir = target_dir
    return config


def load_config(path: Optional[str] = None) -> AppConfig:
    """Load configuration from `path` or the default location."""

    candidate_paths = []
    if path:
        candidate_paths.append(Path(path))
    candidate_paths.append(_DEFAULT_CONFIG_PATH)

    for candidate in candidate_paths:
        if candidate.is_file():
            with candidate.open("r", encoding="utf-8") as handle:
                data = json.load(handle)
            return apply_env_overrides(AppConfig.from_dict(data))

    raise FileNotFoundError(
        f"Could not find configuration file. Looked in: {', '.join(str(p) for p in candidate_paths)}"
    )
