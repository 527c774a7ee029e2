import asyncio
import logging
from types import SimpleNamespace

import pytest

from refactor_gateway.cache import ProjectCache
from refactor_gateway.config import GatewayConfig
from refactor_gateway.errors import ProviderInitError
from refactor_gateway.model import SourceModel

from .conftest import Clock, write


class Factory:
    def __init__(self, failures=0):
        self.failures = failures
        self.built = 0

    def __call__(self):
        if self.failures:
            self.failures -= 1
            raise ProviderInitError("manifest unreadable")
        self.built += 1
        return SimpleNamespace(root="/project", serial=self.built)


async def test_same_instance_within_ttl():
    clock = Clock()
    cache = ProjectCache(Factory(), ttl=300, clock=clock)

    first = await cache.acquire()
    clock.now = 299.9
    second = await cache.acquire()

    assert first is second
    assert cache.generation == 1


async def test_rebuilt_after_ttl():
    clock = Clock()
    factory = Factory()
    cache = ProjectCache(factory, ttl=300, clock=clock)

    first = await cache.acquire()
    clock.now = 300.0
    second = await cache.acquire()

    assert first is not second
    assert factory.built == 2
    assert cache.generation == 2
    assert cache.is_fresh()


async def test_failed_build_is_retried():
    cache = ProjectCache(Factory(failures=1), clock=Clock())

    with pytest.raises(ProviderInitError):
        await cache.acquire()
    assert cache.model is None
    assert cache.generation == 0

    model = await cache.acquire()
    assert cache.model is model


async def test_cache_miss_is_logged(caplog):
    clock = Clock()
    cache = ProjectCache(Factory(), ttl=10, clock=clock)

    with caplog.at_level(logging.INFO, logger="refactor_gateway.cache"):
        await cache.acquire()
        await cache.acquire()
        clock.now = 11
        await cache.acquire()

    misses = [r.getMessage() for r in caplog.records if "cache miss" in r.getMessage()]
    assert misses == [
        "Project cache miss (empty), building source model",
        "Project cache miss (expired), building source model",
    ]


async def test_builds_source_model(config):
    cache = ProjectCache(lambda: SourceModel(config))
    model = await cache.acquire()
    assert model.root == config.project_root


async def test_missing_manifest(tmp_path):
    config = GatewayConfig(project_root=tmp_path)
    cache = ProjectCache(lambda: SourceModel(config))
    with pytest.raises(ProviderInitError, match="manifest not found"):
        await cache.acquire()


@pytest.mark.parametrize("table", [
    '[tool]\nrefactor-gateway = 3\n',
    '[tool.refactor-gateway]\nignored_resources = "build"\n',
    '[tool.refactor-gateway\n',
])
def test_invalid_manifest(tmp_path, table):
    write(tmp_path, "pyproject.toml", table)
    with pytest.raises(ProviderInitError):
        SourceModel(GatewayConfig(project_root=tmp_path))


def test_manifest_preferences_reach_rope(tmp_path):
    write(tmp_path, "pyproject.toml", '[tool.refactor-gateway]\nignored_resources = ["build"]\n')
    model = SourceModel(GatewayConfig(project_root=tmp_path))
    assert model.project.prefs.get("ignored_resources") == ["build"]


async def test_concurrent_callers_share_one_build():
    factory = Factory()
    cache = ProjectCache(factory, clock=Clock())

    models = await asyncio.gather(*(cache.acquire() for _ in range(5)))

    assert factory.built == 1
    assert cache.generation == 1
    assert all(model is models[0] for model in models)


async def test_concurrent_callers_after_expiry_rebuild_once():
    clock = Clock()
    factory = Factory()
    cache = ProjectCache(factory, ttl=300, clock=clock)
    stale = await cache.acquire()

    clock.now = 301
    models = await asyncio.gather(*(cache.acquire() for _ in range(5)))

    assert factory.built == 2
    assert cache.generation == 2
    assert all(model is models[0] and model is not stale for model in models)
