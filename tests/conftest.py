import pytest
import yaml

from tests.fake.fake_stream import FakeStreamWriter, RecordingObserver

from mstart.core.helpers.spawn import TaskSpawner
from mstart.core.models.config import ClientConfig
from mstart.infra.osc_codec import OscCodec


@pytest.fixture
def codec():
    return OscCodec()


@pytest.fixture
def spawner():
    return TaskSpawner()


@pytest.fixture
def writer():
    return FakeStreamWriter()


@pytest.fixture
def observer():
    return RecordingObserver()


@pytest.fixture
def config() -> ClientConfig:
    return ClientConfig(
        host="127.0.0.1",
        port=59900,
        activity="Kiosk",
        connect_timeout=1.0,
    )


@pytest.fixture
def config_file(tmp_path, monkeypatch):
    file = tmp_path / "mstart.yaml"

    data = {
        "server": {
            "host": "10.0.0.7",
            "port": 59901,
        },
        "session": {
            "activity": "Kiosk",
        },
        "link": {
            "reconnect_delay": 5,
            "read_retry_delay": 0.5,
            "max_frame_length": 4096,
            "read_failure_action": "retry",
        },
    }

    file.write_text(yaml.dump(data))
    monkeypatch.setenv("TEST_MSTARTCONFIG", str(file))
    return file
