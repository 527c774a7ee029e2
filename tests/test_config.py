import pytest

from refactor_gateway.config import DEFAULT_CACHE_TTL, DEFAULT_PORT, GatewayConfig


def test_defaults(tmp_path):
    config = GatewayConfig.from_env({"REFACTOR_GATEWAY_ROOT": str(tmp_path)})

    assert config.project_root == tmp_path.resolve()
    assert config.manifest == tmp_path.resolve() / "pyproject.toml"
    assert config.port == DEFAULT_PORT
    assert config.cache_ttl == DEFAULT_CACHE_TTL


def test_environment_overrides(tmp_path):
    config = GatewayConfig.from_env({
        "REFACTOR_GATEWAY_ROOT": str(tmp_path),
        "REFACTOR_GATEWAY_MANIFEST": "config/project.toml",
        "REFACTOR_GATEWAY_PORT": "4100",
        "REFACTOR_GATEWAY_TTL": "30",
    })

    assert config.manifest == tmp_path.resolve() / "config" / "project.toml"
    assert config.port == 4100
    assert config.cache_ttl == 30.0


def test_plain_port_variable(tmp_path):
    config = GatewayConfig.from_env({"REFACTOR_GATEWAY_ROOT": str(tmp_path), "PORT": "5000"})
    assert config.port == 5000


def test_invalid_port(tmp_path):
    with pytest.raises(ValueError, match="REFACTOR_GATEWAY_"):
        GatewayConfig.from_env({"REFACTOR_GATEWAY_ROOT": str(tmp_path), "REFACTOR_GATEWAY_PORT": "http"})


def test_new_root_moves_default_manifest(tmp_path):
    other = tmp_path / "other"
    other.mkdir()
    config = GatewayConfig(project_root=tmp_path).with_overrides(project_root=other, port=None)

    assert config.project_root == other.resolve()
    assert config.manifest == other.resolve() / "pyproject.toml"


def test_explicit_manifest_survives_new_root(tmp_path):
    manifest = tmp_path / "shared.toml"
    config = GatewayConfig(project_root=tmp_path, manifest=manifest).with_overrides(
        project_root=tmp_path / "other"
    )
    assert config.manifest == manifest.resolve()
