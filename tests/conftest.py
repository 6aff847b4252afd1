"""
Pytest configuration and fixtures for configsync tests.
"""

import tempfile
from pathlib import Path
from typing import Generator, List

import pytest

from configsync import ConfigService, ConfigSyncSettings


class FakeObserver:
    """Stands in for a watchdog Observer so tests control every event."""

    instances: List["FakeObserver"] = []

    def __init__(self):
        self.scheduled = []
        self.started = False
        self.stopped = False
        FakeObserver.instances.append(self)

    def schedule(self, handler, path, recursive=False):
        self.scheduled.append((handler, path, recursive))

    def start(self):
        self.started = True

    def stop(self):
        self.stopped = True

    def join(self, timeout=None):
        pass


@pytest.fixture
def temp_config_dir() -> Generator[Path, None, None]:
    """Create temporary configuration directory for tests."""
    with tempfile.TemporaryDirectory() as tmpdir:
        yield Path(tmpdir)


@pytest.fixture
def settings() -> ConfigSyncSettings:
    """Settings with a short debounce window to keep watch tests fast."""
    return ConfigSyncSettings(debounce_ms=50)


@pytest.fixture
def service(settings) -> Generator[ConfigService, None, None]:
    """Service whose watches never touch a real file system observer."""
    FakeObserver.instances.clear()
    svc = ConfigService(settings, observer_factory=FakeObserver)
    yield svc
    svc.close()


@pytest.fixture
def json_config(temp_config_dir) -> Path:
    path = temp_config_dir / "app.json"
    path.write_text('{"server": {"host": "localhost", "port": 3000}, "users": [{"name": "ada"}]}')
    return path


@pytest.fixture
def ini_config(temp_config_dir) -> Path:
    path = temp_config_dir / "app.ini"
    path.write_text(
        "[App]\n"
        "name = Modular Application\n"
        "version = 1.0.0\n"
        "\n"
        "[Server]\n"
        "host = 0.0.0.0\n"
        "port = 3000\n"
        "trustProxy = true\n"
    )
    return path


@pytest.fixture
def xml_config(temp_config_dir) -> Path:
    path = temp_config_dir / "app.xml"
    path.write_text(
        '<?xml version="1.0" encoding="UTF-8"?>\n'
        '<config>\n'
        '  <server port="8080"><host>localhost</host></server>\n'
        '  <locale>en</locale>\n'
        '  <locale>fr</locale>\n'
        '</config>\n'
    )
    return path


@pytest.fixture
def csv_config(temp_config_dir) -> Path:
    path = temp_config_dir / "app.csv"
    path.write_text("key,value\nport,8080\nhost,localhost\n")
    return path
