from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field


class Settings(BaseSettings):
    """
    Centralized, env-driven configuration for the composite gateway.
    Override via COMPOSITE_* environment variables or a .env file at repo root.
    """
    log_level: str = Field(default="INFO")
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=8000)
    max_body_bytes: int = Field(default=2_000_000)  # ~2MB payload cap

    # Downstream calls
    base_url: str = Field(default="")  # resolves relative step endpoints
    timeout_sec: float = Field(default=100.0)
    verify_ssl: bool = Field(default=True)
    follow_redirects: bool = Field(default=True)
    max_connections: int = Field(default=20)

    model_config = SettingsConfigDict(
        env_prefix="COMPOSITE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )
