import importlib
import os

import pytest

import config


def _reload(monkeypatch, **env):
    monkeypatch.setenv("SKIP_DOTENV", "1")
    for key in ("NXMPROXY_DATA_DIR", "HANDLER_BINARY", "DEFAULT_PIPE", "PROXY_ENABLED", "ASSOCIATE_NXM"):
        monkeypatch.delenv(key, raising=False)
    for key, value in env.items():
        monkeypatch.setenv(key, value)
    importlib.reload(config)


@pytest.fixture(autouse=True)
def _restore(monkeypatch):
    yield
    monkeypatch.undo()
    importlib.reload(config)


def test_config_path_under_data_dir(monkeypatch, tmp_path):
    _reload(monkeypatch, NXMPROXY_DATA_DIR=str(tmp_path))
    assert config.CONFIG_PATH == os.path.join(str(tmp_path), "nxmproxy", "config.toml")


def test_flags_parse_truthy_values(monkeypatch):
    _reload(monkeypatch, PROXY_ENABLED="yes", ASSOCIATE_NXM="off")
    assert config.PROXY_ENABLED is True
    assert config.ASSOCIATE_NXM is False


def test_validate_missing_pipe(monkeypatch):
    _reload(monkeypatch, DEFAULT_PIPE="")
    assert config.DEFAULT_PIPE == ""
    with pytest.raises(SystemExit):
        config.validate()


def test_validate_ok(monkeypatch):
    _reload(monkeypatch, HANDLER_BINARY="/opt/nxmproxy/nxmproxy.exe")
    # Should not raise
    config.validate()
    assert config.DEFAULT_PIPE == "vortex_download"
