"""Configuration management for the gateway bootstrap.

Supports an optional YAML settings file with environment variable overrides.
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml

from ..data import defaults

DEFAULT_PORT = 8080


def _log(msg: str) -> None:
    print(msg, flush=True)


@dataclass
class GatewaySettings:
    """How the gateway process is launched."""

    port: int = DEFAULT_PORT
    node_binary: str = "node"
    entrypoint: str = "dist/index.js"
    max_old_space_mb: int = 768


@dataclass
class StorageSettings:
    """Persistent and ephemeral directory layout."""

    persistent_root: str = "/data"
    state_dir: str = "/data/.openclaw"
    workspace_dir: str = "/tmp/openclaw-workspace"
    sessions_dir: str = "/tmp/openclaw-sessions"
    link_name: str = "agents"
    config_filename: str = "openclaw.json"
    # Relative to the persistent root ("root/...") or the state dir ("state/...")
    legacy_paths: List[str] = field(
        default_factory=lambda: ["root/workspace", "state/browser", "state/memory"]
    )

    def resolve_legacy_paths(self) -> List[Path]:
        resolved = []
        for entry in self.legacy_paths:
            base, _, rel = entry.partition("/")
            if base == "root":
                resolved.append(Path(self.persistent_root) / rel)
            elif base == "state":
                resolved.append(Path(self.state_dir) / rel)
            else:
                resolved.append(Path(entry))
        return resolved


@dataclass
class CleanupSettings:
    """Disk cleanup tiers."""

    script: str = "scripts/cleanup-disk-space.sh"
    aggressive_flag: str = "--aggressive"
    aggressive_threshold: int = 95  # percent
    diagnostic_threshold: int = 90  # percent
    top_entries: int = 5
    timeout: Optional[int] = None  # seconds, None = wait for completion


@dataclass
class ReadinessSettings:
    """Model provider reachability probe."""

    enabled: bool = True
    url: str = defaults.PROVIDER_BASE_URL + "/models"
    timeout: int = 10
    verify_tls: bool = True
    ca_bundle: Optional[str] = None


@dataclass
class BootConfig:
    """Main configuration container."""

    gateway: GatewaySettings = field(default_factory=GatewaySettings)
    storage: StorageSettings = field(default_factory=StorageSettings)
    cleanup: CleanupSettings = field(default_factory=CleanupSettings)
    readiness: ReadinessSettings = field(default_factory=ReadinessSettings)

    @property
    def config_file(self) -> Path:
        return Path(self.storage.state_dir) / self.storage.config_filename

    @property
    def link_path(self) -> Path:
        return Path(self.storage.state_dir) / self.storage.link_name

    @property
    def link_target(self) -> Path:
        return Path(self.storage.sessions_dir) / self.storage.link_name

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BootConfig":
        """Create config from dictionary."""
        gw_data = data.get("gateway", {}) or {}
        gateway = GatewaySettings(
            port=int(gw_data.get("port", DEFAULT_PORT)),
            node_binary=gw_data.get("node_binary", "node"),
            entrypoint=gw_data.get("entrypoint", "dist/index.js"),
            max_old_space_mb=int(gw_data.get("max_old_space_mb", 768)),
        )

        st_data = data.get("storage", {}) or {}
        storage = StorageSettings(
            persistent_root=st_data.get("persistent_root", "/data"),
            state_dir=st_data.get("state_dir", "/data/.openclaw"),
            workspace_dir=st_data.get("workspace_dir", "/tmp/openclaw-workspace"),
            sessions_dir=st_data.get("sessions_dir", "/tmp/openclaw-sessions"),
            link_name=st_data.get("link_name", "agents"),
            config_filename=st_data.get("config_filename", "openclaw.json"),
            legacy_paths=st_data.get("legacy_paths", StorageSettings().legacy_paths),
        )

        cl_data = data.get("cleanup", {}) or {}
        cleanup = CleanupSettings(
            script=cl_data.get("script", "scripts/cleanup-disk-space.sh"),
            aggressive_flag=cl_data.get("aggressive_flag", "--aggressive"),
            aggressive_threshold=cl_data.get("aggressive_threshold", 95),
            diagnostic_threshold=cl_data.get("diagnostic_threshold", 90),
            top_entries=cl_data.get("top_entries", 5),
            timeout=cl_data.get("timeout"),
        )

        rd_data = data.get("readiness", {}) or {}
        readiness = ReadinessSettings(
            enabled=rd_data.get("enabled", True),
            url=rd_data.get("url", ReadinessSettings().url),
            timeout=rd_data.get("timeout", 10),
            verify_tls=rd_data.get("verify_tls", True),
            ca_bundle=rd_data.get("ca_bundle"),
        )

        return cls(gateway=gateway, storage=storage, cleanup=cleanup, readiness=readiness)

    @classmethod
    def from_yaml(cls, path: Path) -> "BootConfig":
        """Load config from YAML file."""
        if not path.exists():
            return cls()
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
        return cls.from_dict(data)

    @classmethod
    def load(cls, environ: Optional[Mapping[str, str]] = None) -> "BootConfig":
        """Load settings, then apply environment overrides.

        Checks in order:
        1. GATEWAY_BOOT_CONFIG env var (YAML settings file)
        2. Built-in defaults

        OPENCLAW_STATE_DIR, OPENCLAW_WORKSPACE_DIR, OPENCLAW_SESSIONS_DIR
        and PORT always win over the file.
        """
        env = os.environ if environ is None else environ

        if settings_path := env.get("GATEWAY_BOOT_CONFIG"):
            config = cls.from_yaml(Path(settings_path))
        else:
            config = cls()

        config.apply_env(env)
        return config

    def apply_env(self, env: Mapping[str, str]) -> None:
        """Apply environment variable overrides in place."""
        if state_dir := env.get("OPENCLAW_STATE_DIR"):
            self.storage.state_dir = state_dir
        if workspace_dir := env.get("OPENCLAW_WORKSPACE_DIR"):
            self.storage.workspace_dir = workspace_dir
        if sessions_dir := env.get("OPENCLAW_SESSIONS_DIR"):
            self.storage.sessions_dir = sessions_dir
        if port := env.get("PORT"):
            self.gateway.port = parse_port(port, self.gateway.port)

    def to_dict(self) -> Dict[str, Any]:
        """Convert config to dictionary."""
        return {
            "gateway": {
                "port": self.gateway.port,
                "node_binary": self.gateway.node_binary,
                "entrypoint": self.gateway.entrypoint,
                "max_old_space_mb": self.gateway.max_old_space_mb,
            },
            "storage": {
                "persistent_root": self.storage.persistent_root,
                "state_dir": self.storage.state_dir,
                "workspace_dir": self.storage.workspace_dir,
                "sessions_dir": self.storage.sessions_dir,
                "link_name": self.storage.link_name,
                "config_filename": self.storage.config_filename,
                "legacy_paths": list(self.storage.legacy_paths),
            },
            "cleanup": {
                "script": self.cleanup.script,
                "aggressive_flag": self.cleanup.aggressive_flag,
                "aggressive_threshold": self.cleanup.aggressive_threshold,
                "diagnostic_threshold": self.cleanup.diagnostic_threshold,
                "top_entries": self.cleanup.top_entries,
                "timeout": self.cleanup.timeout,
            },
            "readiness": {
                "enabled": self.readiness.enabled,
                "url": self.readiness.url,
                "timeout": self.readiness.timeout,
                "verify_tls": self.readiness.verify_tls,
                "ca_bundle": self.readiness.ca_bundle,
            },
        }


def parse_port(value: str, fallback: int = DEFAULT_PORT) -> int:
    """Parse a TCP port, falling back on garbage."""
    try:
        port = int(str(value).strip())
    except ValueError:
        _log(f"[config] WARNING: PORT={value!r} is not a number, using {fallback}")
        return fallback
    if not 0 < port < 65536:
        _log(f"[config] WARNING: PORT={port} is out of range, using {fallback}")
        return fallback
    return port
