"""Configuration models using Pydantic for validation."""
from typing import Dict, Optional, Literal
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator
import os


class DataDogConfig(BaseModel):
    """Metrics API export configuration."""
    api_host: str = "https://api.datadoghq.com/api/v1"
    api_key: Optional[str] = None
    gzip: bool = True
    write_to_stdout: bool = False
    write_to_api: bool = True
    tags: Dict[str, str] = Field(default_factory=dict)  # Added to every series
    flush_interval_s: float = Field(default=10.0, gt=0)
    request_timeout_s: float = Field(default=10.0, gt=0)
    max_workers: int = Field(default=8, ge=1)
    self_metrics: bool = True

    @field_validator('api_host')
    @classmethod
    def strip_trailing_slash(cls, v):
        return v.rstrip('/')

    @model_validator(mode='after')
    def validate_api_key(self):
        """An API key is needed whenever series are submitted."""
        if self.write_to_api and not self.api_key:
            raise ValueError("api_key is required when write_to_api is enabled")
        return self


class GlobalConfig(BaseModel):
    """Global configuration settings."""
    log_level: str = "INFO"
    log_format: Literal["json", "text"] = "text"
    control_api_enabled: bool = True
    control_api_port: int = 8081


class Config(BaseModel):
    """Root configuration model."""
    model_config = ConfigDict(populate_by_name=True)

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    datadog: DataDogConfig


def load_config(config_path: str) -> Config:
    """Load and validate configuration from YAML file."""
    import yaml

    if not os.path.exists(config_path):
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r') as f:
        raw_config = yaml.safe_load(f) or {}

    # Apply environment variable overrides
    if env_api_key := os.getenv('DD_API_KEY'):
        raw_config.setdefault('datadog', {})['api_key'] = env_api_key

    if env_api_host := os.getenv('DD_API_HOST'):
        raw_config.setdefault('datadog', {})['api_host'] = env_api_host

    if env_log_level := os.getenv('LOG_LEVEL'):
        raw_config.setdefault('global', {})['log_level'] = env_log_level

    try:
        return Config(**raw_config)
    except Exception as e:
        raise ValueError(f"Configuration validation failed: {e}")
