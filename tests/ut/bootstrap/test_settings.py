import pytest
import yaml
from pydantic import ValidationError

from modernsocket.bootstrap import deps
from modernsocket.bootstrap.config import settings as settings_module
from modernsocket.core.models.cause import BinaryType
from modernsocket.core.models.config import TransportConfig
from tests.helpers import FakeSettings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    monkeypatch.delenv("TEST_MODERNSOCKETCONFIG", raising=False)
    monkeypatch.delenv("MODERNSOCKET_TRANSPORT__OPEN_TIMEOUT", raising=False)


@pytest.mark.ut
def test_defaults_without_configuration_file():
    settings = FakeSettings()

    assert settings.client.protocols == []
    assert settings.client.binary_type is BinaryType.bytes
    assert settings.transport.to_config() == TransportConfig()


@pytest.mark.ut
def test_yaml_configuration_is_loaded(monkeypatch, config_file):
    monkeypatch.setenv("TEST_MODERNSOCKETCONFIG", str(config_file))

    settings = FakeSettings()
    config = settings.transport.to_config()

    assert settings.client.protocols == ["chat", "superchat"]
    assert settings.client.binary_type is BinaryType.bytearray
    assert config.open_timeout == 2.5
    assert config.max_size == 2048
    assert config.ping_interval is None
    assert config.close_timeout == 10.0


@pytest.mark.ut
def test_environment_overrides_yaml(monkeypatch, config_file):
    monkeypatch.setenv("TEST_MODERNSOCKETCONFIG", str(config_file))
    monkeypatch.setenv("MODERNSOCKET_TRANSPORT__OPEN_TIMEOUT", "7")

    settings = FakeSettings()

    assert settings.transport.open_timeout == 7.0
    assert settings.transport.max_size == 2048


@pytest.mark.ut
@pytest.mark.parametrize("field", ["open_timeout", "close_timeout", "max_size", "ping_interval"])
def test_non_positive_values_are_rejected(field):
    with pytest.raises(ValidationError):
        FakeSettings(transport={field: 0})


@pytest.mark.ut
def test_unknown_binary_type_is_rejected():
    with pytest.raises(ValidationError):
        FakeSettings(client={"binary_type": "blob"})


@pytest.mark.ut
def test_get_settings_reports_invalid_configuration(monkeypatch, tmp_path):
    file = tmp_path / "broken.yaml"
    file.write_text(yaml.dump({"transport": {"max_size": -1}}))
    monkeypatch.setattr(settings_module, "get_configfile", lambda: file)

    with pytest.raises(SystemExit) as exc_info:
        deps.get_settings.__wrapped__()

    assert "Configuration validation failed" in str(exc_info.value)
    assert "transport.max_size" in str(exc_info.value)


@pytest.mark.ut
def test_get_settings_reads_configuration_file(monkeypatch, config_file):
    monkeypatch.setattr(settings_module, "get_configfile", lambda: config_file)

    settings = deps.get_settings.__wrapped__()

    assert settings.client.protocols == ["chat", "superchat"]
