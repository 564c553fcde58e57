"""Tests for configuration loading."""

import pytest

from vehicle_vision.utils.config import Config
from vehicle_vision.utils.errors import ConfigurationError, ErrorType

OVERRIDE_VARS = ("AWS_REGION", "BEDROCK_MODEL_ID", "VISION_TIMEOUT_SECONDS", "VIN_DECODER_URL", "LOG_LEVEL")

CONFIG_YAML = """
aws:
  region: eu-west-1
  bedrock:
    model_id: test-model
    max_tokens: 800
    temperature: 0.2
vision:
  timeout_seconds: 12
  max_batch_size: 5
vin_decoder:
  enabled: false
metrics:
  log_every: 0
"""


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in OVERRIDE_VARS:
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def config_file(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text(CONFIG_YAML)
    return path


def test_load_from_file(config_file):
    config = Config.load(str(config_file))

    assert config.aws_region == "eu-west-1"
    assert config.bedrock.model_id == "test-model"
    assert config.bedrock.max_tokens == 800
    assert config.bedrock.temperature == 0.2
    assert config.vision.timeout_seconds == 12.0
    assert config.vision.max_batch_size == 5
    assert config.vin_decoder.enabled is False
    assert config.metrics.log_every == 0


def test_defaults_fill_missing_sections(config_file):
    config = Config.load(str(config_file))

    assert config.vision.enrichment_timeout_seconds == 10.0
    assert config.vin_decoder.base_url == "https://vpic.nhtsa.dot.gov/api/vehicles"
    assert config.metrics.max_stored_times == 1000
    assert config.logging.level == "INFO"
    assert config.logging.file == ""


def test_environment_overrides(config_file, monkeypatch):
    monkeypatch.setenv("AWS_REGION", "us-west-2")
    monkeypatch.setenv("BEDROCK_MODEL_ID", "env-model")
    monkeypatch.setenv("VISION_TIMEOUT_SECONDS", "45")
    monkeypatch.setenv("LOG_LEVEL", "DEBUG")

    config = Config.load(str(config_file))

    assert config.aws_region == "us-west-2"
    assert config.bedrock.model_id == "env-model"
    assert config.vision.timeout_seconds == 45.0
    assert config.logging.level == "DEBUG"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigurationError) as exc_info:
        Config.load(str(tmp_path / "nope.yaml"))
    assert exc_info.value.error_code == ErrorType.CONFIG_MISSING.value


def test_malformed_value(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("vision:\n  max_batch_size: lots\n")

    with pytest.raises(ConfigurationError) as exc_info:
        Config.load(str(path))
    assert exc_info.value.error_code == ErrorType.CONFIG_INVALID.value
    assert "vision.max_batch_size" in str(exc_info.value)


def test_empty_file_uses_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("")

    config = Config.load(str(path))

    assert config.aws_region == "us-east-1"
    assert config.vision.timeout_seconds == 30.0
    assert config.vin_decoder.enabled is True
