import time

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration for the order service."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False)

    dsn: str = "data/orders.db"
    store_backend: str = "sqlite"  # options: memory, sqlite
    nats_cluster: str = "test-cluster"
    nats_client: str = Field(default_factory=lambda: f"svc-{int(time.time())}")
    nats_subject: str = "orders"
    template_path: str = "model.json"
    web_dir: str = "web"
    host: str = "0.0.0.0"
    port: int = 8080
    log_level: str = "INFO"
    log_format: str = "text"  # options: json, text


settings = Settings()
