import pytest
import yaml

from tests.fake.fake_transport import FakeTransportFactory


@pytest.fixture
def transport_factory():
    return FakeTransportFactory()


@pytest.fixture
def config_file(tmp_path):
    file = tmp_path / "modernsocket.yaml"

    data = {
        "transport": {
            "open_timeout": 2.5,
            "max_size": 2048,
            "ping_interval": None,
        },
        "client": {
            "protocols": ["chat", "superchat"],
            "binary_type": "bytearray",
        }
    }

    file.write_text(yaml.dump(data))
    return file
