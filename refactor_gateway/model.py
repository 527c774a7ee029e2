#!/usr/bin/env python3
"""
Refactor Gateway - Source model

Thin adapter over the external providers the gateway relies on:

    rope     - project model, occurrence search, mechanical renames
    pyright  - pre-emit diagnostics (`pyright --outputjson`)
    ruff     - formatting (black is used when ruff is not installed)

One SourceModel wraps one rope Project rooted at the configured project root.
The ProjectCache decides how long an instance lives.
"""

import asyncio
import json
import logging
import shutil
import tomllib
from pathlib import Path

from rope.base import libutils
from rope.base.exceptions import RopeError
from rope.base.project import Project

from .config import MANIFEST_TABLE, GatewayConfig
from .errors import InvalidParamsError, ProviderError, ProviderInitError, StorageError
from .process import run_command

logger = logging.getLogger(__name__)

# Manifest keys forwarded to rope as project preferences
ROPE_PREF_KEYS = ("source_folders", "ignored_resources", "python_files")

# ruff and black treat any other suffix as Python too
PYTHON_SUFFIXES = (".py", ".pyi")

FORMATTER_COMMANDS = {
    "ruff": lambda path: ["ruff", "format", "--stdin-filename", str(path), "-"],
    "black": lambda path: ["black", "--quiet", "--stdin-filename", str(path), "-"],
}


def load_manifest(manifest: Path) -> dict:
    """Read rope preferences from the manifest's [tool.refactor-gateway] table."""
    try:
        with open(manifest, "rb") as f:
            data = tomllib.load(f)
    except FileNotFoundError:
        raise ProviderInitError(f"Project manifest not found: {manifest}")
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ProviderInitError(f"Cannot load project manifest {manifest}: {e}")

    table = data.get("tool", {}).get(MANIFEST_TABLE, {})
    if not isinstance(table, dict):
        raise ProviderInitError(f"[tool.{MANIFEST_TABLE}] in {manifest} must be a table")

    prefs = {}
    for key in ROPE_PREF_KEYS:
        if key not in table:
            continue
        value = table[key]
        if not isinstance(value, list) or not all(isinstance(v, str) for v in value):
            raise ProviderInitError(f"[tool.{MANIFEST_TABLE}] {key} must be a list of strings")
        prefs[key] = value
    return prefs


def resolve_project_path(root: Path, raw: str) -> Path:
    """Turn a client-supplied path into an absolute path inside `root`.

    Relative paths are taken relative to the project root, not the daemon's cwd.
    """
    path = Path(raw).expanduser()
    if not path.is_absolute():
        path = root / path
    path = path.resolve()
    if path != root and root not in path.parents:
        raise InvalidParamsError(f"Path is outside the project root: {raw}")
    return path


class SourceModel:
    def __init__(self, config: GatewayConfig, runner=run_command):
        self.config = config
        self.root = config.project_root
        self._runner = runner
        self.tracked_files: set[str] = set()

        if not self.root.is_dir():
            raise ProviderInitError(f"Project root is not a directory: {self.root}")
        prefs = load_manifest(config.manifest)
        try:
            # ropefolder=None: keep rope's state in memory, never write .ropeproject
            self.project = Project(str(self.root), ropefolder=None, **prefs)
        except (RopeError, OSError) as e:
            raise ProviderInitError(f"Cannot open project at {self.root}: {e}")

    # --- Paths ---

    def resolve_path(self, raw: str) -> Path:
        return resolve_project_path(self.root, raw)

    def relative(self, path) -> str:
        """Project-root-relative POSIX path, stable across machines."""
        return Path(path).relative_to(self.root).as_posix()

    # --- Tracked files ---

    def load(self, file_path: str, revalidate: bool = False):
        """Return the rope resource for a file, refreshing it from disk if already tracked.

        revalidate=True forces the refresh, for files the gateway has just written.
        """
        path = self.resolve_path(file_path)
        if not path.is_file():
            raise StorageError(f"File not found: {file_path}")
        rel = self.relative(path)
        try:
            resource = libutils.path_to_resource(self.project, str(path), type="file")
            if revalidate or rel in self.tracked_files:
                self.project.validate(resource)
        except RopeError as e:
            raise ProviderError(f"Cannot load {rel}: {e}")
        self.tracked_files.add(rel)
        return resource

    def refresh(self):
        """Pick up every change made on disk since rope last looked."""
        try:
            self.project.validate()
        except RopeError as e:
            raise ProviderError(f"Cannot refresh project: {e}")

    def read(self, resource) -> str:
        try:
            return resource.read()
        except (RopeError, OSError) as e:
            raise StorageError(f"Cannot read {resource.path}: {e}")

    def write(self, resource, content: str):
        """Persist new content through rope so its caches stay coherent."""
        try:
            resource.write(content)
        except (RopeError, OSError) as e:
            raise StorageError(f"Cannot write {resource.path}: {e}")

    # --- External tools ---

    async def format_source(self, path: Path, source: str) -> tuple[str, str | None, bool]:
        """Format `source` with the first installed formatter.

        Returns (text, formatter name or None, whether formatting succeeded).
        Only Python sources are formatted; other files come back untouched.
        """
        if path.suffix not in PYTHON_SUFFIXES:
            return source, None, False
        for name in self.config.formatters:
            command = FORMATTER_COMMANDS.get(name)
            if command is None or shutil.which(name) is None:
                continue
            try:
                result = await self._runner(
                    command(path), input_text=source, cwd=str(self.root),
                    timeout=self.config.command_timeout,
                )
            except asyncio.TimeoutError:
                raise ProviderError(f"{name} timed out formatting {self.relative(path)}")
            if result.returncode == 0:
                return result.stdout, name, True
            logger.warning("%s could not format %s: %s", name, path, result.stderr.strip())
            return source, name, False
        return source, None, False

    async def pre_emit_diagnostics(self, path: Path) -> list[dict]:
        """Run the type checker on one file and return its raw diagnostics."""
        executable = self.config.type_checker[0]
        args = [*self.config.type_checker, str(path)]
        try:
            result = await self._runner(args, cwd=str(self.root), timeout=self.config.command_timeout)
        except FileNotFoundError:
            raise ProviderError(f"{executable} not installed. Install with: pip install {executable}")
        except asyncio.TimeoutError:
            raise ProviderError("Type check timed out")

        try:
            output = json.loads(result.stdout)
        except json.JSONDecodeError:
            detail = (result.stderr or result.stdout).strip()[:500]
            raise ProviderError(f"{executable} returned no JSON output (exit {result.returncode}): {detail}")
        return output.get("generalDiagnostics", [])
