import json

import pytest

from refactor_gateway.cache import ProjectCache
from refactor_gateway.config import GatewayConfig
from refactor_gateway.errors import InvalidParamsError, NotFoundError, ToolNotFoundError
from refactor_gateway.model import SourceModel
from refactor_gateway.process import CommandResult
from refactor_gateway.tools import (
    TOOLS,
    TOOLS_BY_NAME,
    Dispatcher,
    FindReferences,
    Position,
    RenameSymbol,
    list_tools,
)

from .conftest import Clock, write


class UnusedCache:
    """A cache that must not be touched."""

    model = None

    async def acquire(self):
        raise AssertionError("model acquired")


@pytest.fixture
def dispatcher(config):
    return Dispatcher(ProjectCache(lambda: SourceModel(config)), config.project_root)


def test_list_tools():
    names = [tool["name"] for tool in list_tools()["tools"]]
    assert names == ["check_types", "write_file", "mkdir", "find_references", "rename_symbol", "update_import"]
    assert all(tool["description"] for tool in list_tools()["tools"])


def test_parse_find_references(dispatcher):
    _, operation = dispatcher.parse("find_references", {"filePath": "a.py", "line": 2, "column": 5})
    assert operation == FindReferences("a.py", None, Position(line=2, column=5))


def test_parse_rename_symbol(dispatcher):
    _, operation = dispatcher.parse(
        "rename_symbol", {"filePath": "a.py", "symbolName": "old", "newName": "new"}
    )
    assert operation == RenameSymbol("a.py", "old", "new", Position())
    assert not operation.position.given


def test_unknown_tool(dispatcher):
    with pytest.raises(ToolNotFoundError, match="Unknown tool: explode"):
        dispatcher.parse("explode", {})


@pytest.mark.parametrize("tool, arguments, message", [
    ("check_types", {}, "Required: filePath"),
    ("check_types", {"filePath": 3}, "filePath must be a string"),
    ("check_types", {"filePath": ""}, "filePath must be a non-empty string"),
    ("write_file", {"filePath": "a.py"}, "Required: content"),
    ("mkdir", {"path": "x"}, "Required: dirPath"),
    ("find_references", {"filePath": "a.py"}, "Required: symbolName"),
    ("find_references", {"filePath": "a.py", "offset": True}, "offset must be an integer"),
    ("find_references", {"filePath": "a.py", "offset": -1}, "offset must be >= 0"),
    ("find_references", {"filePath": "a.py", "line": 3}, "line and column"),
    ("rename_symbol", {"filePath": "a.py", "symbolName": "a"}, "Required: newName"),
    ("update_import", {"filePath": "a.py", "oldPath": "x"}, "Required: newPath"),
])
def test_invalid_arguments(dispatcher, tool, arguments, message):
    with pytest.raises(InvalidParamsError, match=message):
        dispatcher.parse(tool, arguments)


def test_arguments_must_be_an_object(dispatcher):
    with pytest.raises(InvalidParamsError):
        dispatcher.parse("check_types", ["a.py"])


async def test_invalid_arguments_do_not_touch_cache(config):
    dispatcher = Dispatcher(UnusedCache(), config.project_root)
    with pytest.raises(InvalidParamsError):
        await dispatcher.dispatch("rename_symbol", {"filePath": "a.py"})


async def test_mkdir_does_not_need_a_model(config):
    dispatcher = Dispatcher(UnusedCache(), config.project_root)

    result = await dispatcher.run("mkdir", {"dirPath": "build/out"})

    assert result["created"] is True
    assert (config.project_root / "build/out").is_dir()


async def test_dispatch_wraps_result(dispatcher, project_root):
    write(project_root, "mod.py", "def foo():\n    pass\n\n\nfoo()\n")

    envelope = await dispatcher.dispatch("find_references", {"filePath": "mod.py", "symbolName": "foo"})

    assert envelope["content"][0]["type"] == "json"
    result = envelope["content"][0]["json"]
    assert result["count"] == 2
    assert result["symbol"]["file"] == "mod.py"


async def test_one_model_per_call(dispatcher, project_root):
    write(project_root, "mod.py", "value = 1\n")
    await dispatcher.run("find_references", {"filePath": "mod.py", "offset": 0})
    await dispatcher.run("update_import", {"filePath": "mod.py", "oldPath": "os", "newPath": "sys"})
    assert dispatcher.cache.generation == 1


def test_tool_names_are_unique():
    assert len(TOOLS_BY_NAME) == len(TOOLS)
    assert len({tool.name for tool in TOOLS}) == len(TOOLS)


async def test_find_references_position_must_match_name(dispatcher, project_root):
    write(project_root, "mod.py", "def foo():\n    pass\n\n\nfoo()\n")

    with pytest.raises(NotFoundError, match="'foo', not 'bar'"):
        await dispatcher.run("find_references", {"filePath": "mod.py", "symbolName": "bar", "offset": 4})

    result = await dispatcher.run("find_references", {"filePath": "mod.py", "symbolName": "foo", "offset": 4})
    assert result["count"] == 2


async def test_request_keeps_its_model_while_cache_rebuilds(project_root):
    clock = Clock()
    runners = []

    class RebuildingRunner:
        """Expires the cache and forces a rebuild while the type check is in flight."""

        def __init__(self):
            self.calls = 0

        async def __call__(self, args, input_text=None, cwd=None, timeout=None):
            self.calls += 1
            clock.now += 1000
            rebuilt = await cache.acquire()
            assert rebuilt is not first
            return CommandResult(0, json.dumps({"generalDiagnostics": []}), "")

    def factory():
        runner = RebuildingRunner()
        runners.append(runner)
        return SourceModel(GatewayConfig(project_root=project_root, formatters=()), runner=runner)

    cache = ProjectCache(factory, ttl=300, clock=clock)
    dispatcher = Dispatcher(cache, project_root)
    write(project_root, "ok.py", "x = 1\n")
    first = await cache.acquire()

    result = await dispatcher.run("check_types", {"filePath": "ok.py"})

    assert result["success"] is True
    assert [runner.calls for runner in runners] == [1, 0]
    assert cache.generation == 2
    assert cache.model is not first
