"""Application configuration via environment variables."""

from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    # HTTP gateway
    gateway_host: str = "0.0.0.0"
    gateway_port: int = 8080
    log_level: str = "INFO"
    cors_origins: List[str] = ["http://localhost:5173", "http://localhost:3000"]

    # Status store
    status_backend: str = "redis"  # "redis" or "memory"
    redis_url: str = "redis://localhost:6379/0"
    redis_socket_timeout: float = 2.0
    status_key_prefix: str = "job:"
    status_ttl_seconds: int = 24 * 3600

    # Job queue
    queue_backend: str = "kafka"  # "kafka" or "memory"
    kafka_bootstrap_servers: str = "localhost:9092"
    kafka_topic: str = "pdf-processing"
    kafka_send_timeout: float = 10.0

    # Upload storage
    upload_dir: str = "/tmp/docqueue_uploads"
    max_upload_bytes: int = 100 * 1024 * 1024

    # Worker health check (only logged, never blocks)
    worker_grpc_target: Optional[str] = "localhost:50051"
    worker_health_timeout: float = 2.0

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8"}


settings = Settings()
