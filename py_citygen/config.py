"""Configuration management."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings pulled from environment variables."""

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(default="console", description="Logging format (console or json)")

    # Generation
    default_seed: str = Field(default="citygen", description="Seed used when none is given")
    max_steps: int = Field(
        default=20000, gt=0, description="Upper bound on simulation steps for run() loops"
    )

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        env_prefix = "CITYGEN_"
        extra = "ignore"


settings = Settings()
