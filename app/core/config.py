"""Application configuration and settings."""

import json
from typing import Annotated, List, Union

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode


class Settings(BaseSettings):
    """Application settings."""

    # Service Configuration
    service_name: str = Field(default="collections-triage")
    service_version: str = Field(default="1.0.0")
    port: int = Field(default=5000)
    host: str = Field(default="0.0.0.0")
    debug: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # Business Rules Configuration
    bulk_approval_confidence: int = Field(default=85)

    # Development Settings
    seed_demo_data: bool = Field(default=True)
    enable_cors: bool = Field(default=True)
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default=["http://localhost:3000", "http://localhost:5173"],
    )

    @field_validator("cors_origins", mode="before")
    @classmethod
    def assemble_cors_origins(cls, v: Union[str, List[str]]) -> Union[List[str], str]:
        if isinstance(v, str) and v.startswith("["):
            return json.loads(v)
        if isinstance(v, str):
            return [i.strip() for i in v.split(",") if i.strip()]
        elif isinstance(v, list):
            return v
        raise ValueError(v)

    @field_validator("bulk_approval_confidence")
    @classmethod
    def validate_confidence_threshold(cls, v: int) -> int:
        if not 0 <= v <= 100:
            raise ValueError("Confidence thresholds must be between 0 and 100")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Unknown log level: {v}")
        return level

    model_config = {
        "env_file": ".env",
        "case_sensitive": False,
        "extra": "ignore",
    }


# Create global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
