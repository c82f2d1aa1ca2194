from pathlib import Path

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}

    anthropic_api_key: str
    anthropic_model: str = "claude-sonnet-4-20250514"
    extraction_max_tokens: int = 8192
    enhancement_max_tokens: int = 2048
    max_html_chars: int = 150_000

    data_dir: Path = Path("data")
    history_limit: int = 50

    storage_backend: str = "local"  # "local" | "gcs"
    image_dir: Path = Path("static/property-images")
    image_public_base_url: str = "/static/property-images"
    gcs_bucket: str = ""
    gcs_credentials_path: str = ""
    gcs_prefix: str = "property-images"
    gcs_public_base_url: str = ""

    placeholder_image_url: str = "https://placehold.co/600x400.png"
    validate_uploads: bool = True
    max_image_bytes: int = 10 * 1024 * 1024

    request_timeout: float = 30.0
    log_level: str = "INFO"
