"""Tests for configuration construction and file loading."""

from pathlib import Path

import pytest

from meshinit.config import (
    DEFAULT_SIDECAR_ENDPOINT,
    Config,
    SidecarConfig,
    env_bool,
    env_float,
    load_config_file,
)
from meshinit.errors import ConfigurationError, RuntimeInitError


def test_defaults():
    config = Config(command="/bin/true")

    assert config.args == ()
    assert config.sidecar is None
    assert not config.sidecar_enabled
    assert config.readiness_retry_interval == 3.0
    assert config.readiness_timeout is None
    assert config.forward_signals
    assert config.log_level == "INFO"


def test_config_is_immutable():
    config = Config(command="/bin/true", args=["a", "b"])

    assert config.args == ("a", "b")
    with pytest.raises(AttributeError):
        config.command = "/bin/false"


@pytest.mark.parametrize(
    "kwargs",
    [
        {"command": ""},
        {"command": "x", "readiness_retry_interval": 0},
        {"command": "x", "readiness_timeout": -1},
        {"command": "x", "log_level": "chatty"},
    ],
)
def test_invalid_values_are_rejected(kwargs):
    with pytest.raises(ConfigurationError):
        Config(**kwargs)


def test_log_level_is_normalized(tmp_path):
    config = Config(command="x", log_level="debug", log_file=str(tmp_path / "x.log"))

    assert config.log_level == "DEBUG"
    assert isinstance(config.log_file, Path)


def test_sidecar_urls():
    sidecar = SidecarConfig()

    assert sidecar.endpoint == DEFAULT_SIDECAR_ENDPOINT
    assert sidecar.readiness_url == "http://127.0.0.1:15021/healthz/ready"
    assert sidecar.shutdown_url == "http://127.0.0.1:15021/quitquitquit"
    assert sidecar.shutdown_method == "POST"


@pytest.mark.parametrize("endpoint", ["127.0.0.1:15021", "ftp://127.0.0.1", "not a url"])
def test_sidecar_endpoint_must_be_http(endpoint):
    with pytest.raises(ConfigurationError):
        SidecarConfig(endpoint=endpoint)


def test_configuration_error_is_a_runtime_init_error():
    assert issubclass(ConfigurationError, RuntimeInitError)


def test_env_helpers(monkeypatch):
    monkeypatch.setenv("FLAG_ON", "True")
    monkeypatch.setenv("FLAG_OFF", "0")
    monkeypatch.setenv("NUMBER", "2.5")
    monkeypatch.setenv("EMPTY", "")
    monkeypatch.setenv("BAD_NUMBER", "soon")
    monkeypatch.delenv("UNSET_FLAG", raising=False)

    assert env_bool("FLAG_ON") is True
    assert env_bool("FLAG_OFF", True) is False
    assert env_bool("UNSET_FLAG", True) is True
    assert env_float("NUMBER") == 2.5
    assert env_float("EMPTY", 3.0) == 3.0
    with pytest.raises(ConfigurationError):
        env_float("BAD_NUMBER")


def write(tmp_path, text: str) -> Path:
    path = tmp_path / "meshinit.toml"
    path.write_text(text)
    return path


def test_load_full_file(tmp_path):
    path = write(
        tmp_path,
        """
[process]
command = "/app/server"
args = ["--port", "8080"]

[sidecar]
endpoint = "http://127.0.0.1:15020"
terminate_after_exit = true
shutdown_method = "post"

[readiness]
retry_interval = 1.5
timeout = 30

[logging]
level = "warning"

[init]
enable_process_subreaper = true
forward_signals = false
""",
    )
    config = load_config_file(path)

    assert config.command == "/app/server"
    assert config.args == ("--port", "8080")
    assert config.sidecar == SidecarConfig(
        endpoint="http://127.0.0.1:15020",
        terminate_after_exit=True,
    )
    assert config.readiness_retry_interval == 1.5
    assert config.readiness_timeout == 30
    assert config.log_level == "WARNING"
    assert config.enable_process_subreaper
    assert not config.forward_signals


def test_minimal_file_has_no_sidecar(tmp_path):
    config = load_config_file(write(tmp_path, '[process]\ncommand = "/bin/true"\n'))

    assert config.args == ()
    assert config.sidecar is None


def test_disabled_sidecar_table(tmp_path):
    path = write(
        tmp_path,
        '[process]\ncommand = "/bin/true"\n\n[sidecar]\nenabled = false\nterminate_after_exit = true\n',
    )

    assert load_config_file(path).sidecar is None


@pytest.mark.parametrize(
    "text",
    [
        '[sidecar]\nendpoint = "http://127.0.0.1:15021"\n',
        '[process]\ncommand = ""\n',
        '[process]\ncommand = "/bin/true"\nshell = true\n',
        '[process]\ncommand = "/bin/true"\n[readiness]\nretry_interval = 0\n',
        '[process]\ncommand = "/bin/true"\n[sidecar]\nendpoint = "localhost"\n',
        "[process\n",
    ],
)
def test_invalid_files(tmp_path, text):
    with pytest.raises(ConfigurationError):
        load_config_file(write(tmp_path, text))


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError, match="does not exist"):
        load_config_file(tmp_path / "absent.toml")
