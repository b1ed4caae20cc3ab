import pytest
import yaml
from pydantic import ValidationError

from tests.helpers import FakeMStartConfig

from mstart.core.models.config import DEFAULT_MAX_FRAME_LENGTH, DEFAULT_PORT
from mstart.core.models.state import Action


@pytest.mark.ut
def test_yaml_to_client_config(config_file):
    config = FakeMStartConfig().to_client_config()

    assert config.host == "10.0.0.7"
    assert config.port == 59901
    assert config.address == "10.0.0.7:59901"
    assert config.activity == "Kiosk"
    assert config.reconnect_delay == 5
    assert config.read_retry_delay == 0.5
    assert config.max_frame_length == 4096
    assert config.read_failure_action is Action.retry
    assert config.frame_bounds_action is Action.reconnect


@pytest.mark.ut
def test_defaults(tmp_path, monkeypatch):
    file = tmp_path / "minimal.yaml"
    file.write_text(yaml.dump({"session": {"activity": "Lobby"}}))
    monkeypatch.setenv("TEST_MSTARTCONFIG", str(file))

    config = FakeMStartConfig().to_client_config()

    assert config.host == "127.0.0.1"
    assert config.port == DEFAULT_PORT
    assert config.reconnect_delay == 20.0
    assert config.max_frame_length == DEFAULT_MAX_FRAME_LENGTH
    assert config.max_retries is None
    assert config.read_failure_action is Action.reconnect


@pytest.mark.ut
def test_env_overrides_yaml(config_file, monkeypatch):
    monkeypatch.setenv("MSTART_SERVER__HOST", "mstart.local")
    monkeypatch.setenv("MSTART_LINK__MAX_RETRIES", "3")

    config = FakeMStartConfig().to_client_config()

    assert config.host == "mstart.local"
    assert config.port == 59901
    assert config.max_retries == 3


def write_config(tmp_path, monkeypatch, **link):
    file = tmp_path / "invalid.yaml"
    file.write_text(yaml.dump({
        "server": {"port": link.pop("port", DEFAULT_PORT)},
        "session": {"activity": "Kiosk"},
        "link": link,
    }))
    monkeypatch.setenv("TEST_MSTARTCONFIG", str(file))


@pytest.mark.ut
@pytest.mark.parametrize("values", [
    {"port": 0},
    {"port": 70000},
    {"read_failure_action": "drop"},
    {"frame_bounds_action": "retry"},
    {"max_retries": 0},
    {"backoff_factor": 0.5},
    {"reconnect_delay": 0},
])
def test_invalid_values(tmp_path, monkeypatch, values):
    write_config(tmp_path, monkeypatch, **values)

    with pytest.raises(ValidationError):
        FakeMStartConfig()


@pytest.mark.ut
def test_activity_is_required(tmp_path, monkeypatch):
    file = tmp_path / "empty.yaml"
    file.write_text(yaml.dump({"server": {"host": "127.0.0.1"}}))
    monkeypatch.setenv("TEST_MSTARTCONFIG", str(file))

    with pytest.raises(ValidationError):
        FakeMStartConfig()
