#!/usr/bin/env python3
"""
Refactor Gateway - Configuration

Settings come from the environment (GatewayConfig.from_env) and may be
overridden by the daemon's command-line flags.
"""

import os
from dataclasses import dataclass, replace
from pathlib import Path

DEFAULT_HOST = "localhost"
DEFAULT_PORT = 3001
DEFAULT_CACHE_TTL = 300.0  # seconds
DEFAULT_COMMAND_TIMEOUT = 120  # seconds
MANIFEST_NAME = "pyproject.toml"
MANIFEST_TABLE = "refactor-gateway"

ENV_PREFIX = "REFACTOR_GATEWAY_"


@dataclass(frozen=True)
class GatewayConfig:
    project_root: Path
    manifest: Path | None = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    cache_ttl: float = DEFAULT_CACHE_TTL
    type_checker: tuple[str, ...] = ("pyright", "--outputjson")
    formatters: tuple[str, ...] = ("ruff", "black")
    command_timeout: float = DEFAULT_COMMAND_TIMEOUT

    def __post_init__(self):
        root = Path(self.project_root).expanduser().resolve()
        object.__setattr__(self, "project_root", root)
        manifest = Path(self.manifest).expanduser() if self.manifest else root / MANIFEST_NAME
        if not manifest.is_absolute():
            manifest = root / manifest
        object.__setattr__(self, "manifest", manifest.resolve())

    @classmethod
    def from_env(cls, environ: dict | None = None) -> "GatewayConfig":
        """Build a config from REFACTOR_GATEWAY_* variables (PORT is honoured too)."""
        env = os.environ if environ is None else environ

        def get(name: str) -> str | None:
            value = env.get(ENV_PREFIX + name)
            return value if value else None

        port = get("PORT") or env.get("PORT")
        ttl = get("TTL")
        try:
            return cls(
                project_root=Path(get("ROOT") or os.getcwd()),
                manifest=get("MANIFEST"),
                host=get("HOST") or DEFAULT_HOST,
                port=int(port) if port else DEFAULT_PORT,
                cache_ttl=float(ttl) if ttl else DEFAULT_CACHE_TTL,
            )
        except ValueError as e:
            raise ValueError(f"Invalid {ENV_PREFIX}* setting: {e}") from e

    def with_overrides(self, **overrides) -> "GatewayConfig":
        """Return a copy with every non-None override applied."""
        changes = {k: v for k, v in overrides.items() if v is not None}
        default_manifest = self.manifest == self.project_root / MANIFEST_NAME
        if "project_root" in changes and "manifest" not in changes and default_manifest:
            # Re-derive the default manifest for the new root
            changes["manifest"] = None
        return replace(self, **changes)
