"""Configuration management for the vision processing core."""

import os
import yaml
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Callable

from dotenv import load_dotenv

from .errors import ConfigurationError


@dataclass
class BedrockConfig:
    """AWS Bedrock vision model configuration."""
    model_id: str
    max_tokens: int
    temperature: float


@dataclass
class VisionConfig:
    """Pipeline time budgets and batch limits."""
    timeout_seconds: float
    enrichment_timeout_seconds: float
    max_batch_size: int


@dataclass
class VinDecoderConfig:
    """VIN decoding lookup configuration."""
    enabled: bool
    base_url: str
    timeout_seconds: float


@dataclass
class MetricsConfig:
    """Vision metrics collector configuration."""
    max_stored_times: int
    log_every: int


@dataclass
class LoggingConfig:
    """Logging configuration."""
    level: str
    format: str
    file: str


@dataclass
class Config:
    """Main configuration class."""
    aws_region: str
    bedrock: BedrockConfig
    vision: VisionConfig
    vin_decoder: VinDecoderConfig
    metrics: MetricsConfig
    logging: LoggingConfig

    @classmethod
    def load(cls, config_path: str = "config.yaml") -> "Config":
        """
        Load configuration from file and environment variables.

        Environment variables override config file values:
        - AWS_REGION
        - BEDROCK_MODEL_ID
        - VISION_TIMEOUT_SECONDS
        - VIN_DECODER_URL
        - LOG_LEVEL

        Args:
            config_path: Path to YAML configuration file

        Returns:
            Config instance with loaded settings

        Raises:
            ConfigurationError: If the file is missing or a value is malformed
        """
        load_dotenv()

        if not Path(config_path).is_file():
            raise ConfigurationError.missing(config_path)

        with open(config_path, 'r') as f:
            config_data = yaml.safe_load(f) or {}

        aws_data = config_data.get("aws", {}) or {}
        bedrock_data = aws_data.get("bedrock", {}) or {}
        vision_data = config_data.get("vision", {}) or {}
        vin_data = config_data.get("vin_decoder", {}) or {}
        metrics_data = config_data.get("metrics", {}) or {}
        logging_data = config_data.get("logging", {}) or {}

        aws_region = os.getenv("AWS_REGION", aws_data.get("region", "us-east-1"))

        bedrock_config = BedrockConfig(
            model_id=os.getenv("BEDROCK_MODEL_ID", bedrock_data.get("model_id", "amazon.nova-pro-v1:0")),
            max_tokens=_coerce("aws.bedrock.max_tokens", bedrock_data.get("max_tokens", 1500), int),
            temperature=_coerce("aws.bedrock.temperature", bedrock_data.get("temperature", 0.0), float)
        )

        vision_config = VisionConfig(
            timeout_seconds=_coerce(
                "vision.timeout_seconds",
                os.getenv("VISION_TIMEOUT_SECONDS", vision_data.get("timeout_seconds", 30)),
                float
            ),
            enrichment_timeout_seconds=_coerce(
                "vision.enrichment_timeout_seconds",
                vision_data.get("enrichment_timeout_seconds", 10),
                float
            ),
            max_batch_size=_coerce("vision.max_batch_size", vision_data.get("max_batch_size", 20), int)
        )

        vin_decoder_config = VinDecoderConfig(
            enabled=bool(vin_data.get("enabled", True)),
            base_url=os.getenv(
                "VIN_DECODER_URL",
                vin_data.get("base_url", "https://vpic.nhtsa.dot.gov/api/vehicles")
            ),
            timeout_seconds=_coerce("vin_decoder.timeout_seconds", vin_data.get("timeout_seconds", 10), float)
        )

        metrics_config = MetricsConfig(
            max_stored_times=_coerce("metrics.max_stored_times", metrics_data.get("max_stored_times", 1000), int),
            log_every=_coerce("metrics.log_every", metrics_data.get("log_every", 100), int)
        )

        logging_config = LoggingConfig(
            level=os.getenv("LOG_LEVEL", logging_data.get("level", "INFO")),
            format=logging_data.get("format", "%(asctime)s - %(name)s - %(levelname)s - %(message)s"),
            file=logging_data.get("file", "") or ""
        )

        return cls(
            aws_region=aws_region,
            bedrock=bedrock_config,
            vision=vision_config,
            vin_decoder=vin_decoder_config,
            metrics=metrics_config,
            logging=logging_config,
        )


def _coerce(key: str, value: Any, converter: Callable[[Any], Any]) -> Any:
    try:
        return converter(value)
    except (TypeError, ValueError) as e:
        raise ConfigurationError.invalid(key, e) from e

