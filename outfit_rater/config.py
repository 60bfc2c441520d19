from functools import lru_cache

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    detector_provider: str = 'dummy'
    detector_model_url: str = ''
    detector_api_key: str = ''
    detector_output_key: str = 'dynamic_crop'
    detector_timeout_ms: int = 20000
    rater_provider: str = 'dummy'
    relay_base_url: str = 'http://127.0.0.1:3001'
    relay_rate_path: str = '/api/rate-outfit'
    rating_model: str = 'claude-3-5-sonnet-20241022'
    rating_max_tokens: int = 300
    rating_timeout_ms: int = 60000
    crop_jpeg_quality: int = 80
    max_image_bytes: int = 15 * 1024 * 1024
    host: str = '127.0.0.1'
    port: int = 8001
    log_level: str = 'INFO'
    version: str = '1.0.0'


class RelaySettings(BaseSettings):
    """Settings for the relay process only; holds the rating-service secret."""

    model_config = SettingsConfigDict(env_file='.env', env_file_encoding='utf-8', extra='ignore')

    rating_api_key: str = ''
    rating_api_url: str = 'https://api.anthropic.com/v1/messages'
    anthropic_version: str = '2023-06-01'
    relay_timeout_ms: int = 60000
    cors_allow_origins: str = '*'
    max_body_bytes: int = 50 * 1024 * 1024
    relay_host: str = '127.0.0.1'
    relay_port: int = 3001
    log_level: str = 'INFO'
    version: str = '1.0.0'


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


@lru_cache(maxsize=1)
def get_relay_settings() -> RelaySettings:
    return RelaySettings()
