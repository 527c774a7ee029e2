from pathlib import Path

import pytest

from refactor_gateway.config import GatewayConfig
from refactor_gateway.model import SourceModel
from refactor_gateway.process import CommandResult

MANIFEST = '[project]\nname = "sample"\nversion = "0.0.1"\n'


def write(root: Path, rel: str, text: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(text)
    return path


class FakeRunner:
    """Stands in for process.run_command; records every command it is given."""

    def __init__(self, result: CommandResult | None = None, error: Exception | None = None):
        self.result = result
        self.error = error
        self.calls = []

    async def __call__(self, args, input_text=None, cwd=None, timeout=None):
        self.calls.append({"args": list(args), "input_text": input_text, "cwd": cwd})
        if self.error is not None:
            raise self.error
        return self.result


class Clock:
    """Manually advanced stand-in for time.monotonic."""

    def __init__(self):
        self.now = 0.0

    def __call__(self):
        return self.now


@pytest.fixture
def project_root(tmp_path):
    root = tmp_path / "project"
    root.mkdir()
    write(root, "pyproject.toml", MANIFEST)
    return root


@pytest.fixture
def config(project_root):
    return GatewayConfig(project_root=project_root, formatters=())


@pytest.fixture
def model(config):
    return SourceModel(config)


@pytest.fixture
def package(project_root):
    """A two-module package where app.py uses a helper defined in core.py."""
    write(project_root, "pkg/__init__.py", "")
    write(project_root, "pkg/core.py", "def helper():\n    return 42\n")
    write(
        project_root,
        "pkg/app.py",
        "from pkg.core import helper\n\n\ndef run():\n    return helper()\n",
    )
    return project_root
