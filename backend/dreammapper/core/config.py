"""
Configuration management using Pydantic Settings
"""
from functools import lru_cache
from pathlib import Path
from typing import List, Optional

from dotenv import load_dotenv
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# config.py is at: backend/dreammapper/core/config.py
# Project root is: backend/dreammapper/core/../../../
_current_file = Path(__file__).resolve()
_backend_dir = _current_file.parent.parent.parent
_project_root = _backend_dir.parent
ENV_FILE = _project_root / ".env"
# Fallback: try in backend/ directory if not found in project root
if not ENV_FILE.exists():
    ENV_FILE = _backend_dir / ".env"
if ENV_FILE.exists():
    load_dotenv(ENV_FILE, override=False)


class Settings(BaseSettings):
    """Application settings"""

    # Application
    app_name: str = "DreamMapper"
    app_env: str = Field(default="development", description="Application environment")
    api_host: str = Field(default="0.0.0.0", description="API host")
    api_port: int = Field(default=3000, ge=1, le=65535, description="API port")
    allowed_origins: str = Field(
        default="*",
        description="Allowed CORS origins (comma-separated)"
    )

    # Logging
    log_level: str = Field(default="INFO", description="Logging level")
    log_sqlalchemy: bool = Field(default=False, description="Enable SQLAlchemy query logging")
    log_uvicorn_access: bool = Field(default=False, description="Enable Uvicorn access logging")
    log_module_levels: Optional[str] = Field(
        default=None,
        description='Module-specific log levels (JSON string, e.g., {"dreammapper.services": "DEBUG"})'
    )
    log_format: str = Field(
        default="json",
        description="Log format: 'json' for structured logging, 'text' for plain text"
    )
    log_file_enabled: bool = Field(default=False, description="Enable file logging")
    log_file_path: str = Field(
        default="logs/dreammapper.log",
        description="Path to log file (relative to project root)"
    )
    log_file_retention: int = Field(default=14, ge=1, description="Number of days to keep log files")
    log_sensitive_data: bool = Field(
        default=False,
        description="Enable logging of sensitive data (keys, tokens) - NOT RECOMMENDED"
    )

    # Database
    database_url: str = Field(
        default="sqlite:///./dreammapper.db",
        description="SQLAlchemy database URL for saved dreams"
    )
    recent_dreams_limit: int = Field(default=50, ge=1, le=500, description="Default size of the recent dreams list")

    # Inference (Ollama)
    ollama_url: str = Field(default="http://localhost:11434", description="Ollama base URL")
    ollama_model: str = Field(default="gpt-oss:20b", description="Model used for dream analysis")
    ollama_temperature: float = Field(
        default=0.2,
        ge=0.0,
        le=2.0,
        description="Decoding temperature (low to reduce variance)"
    )
    llm_timeout_seconds: float = Field(
        default=120.0,
        gt=0,
        le=900,
        description="Maximum time to wait for the analysis response (seconds)"
    )

    # Astronomy (timeanddate.com astronomy API)
    moon_api_url: str = Field(
        default="https://api.xmltime.com/astronomy",
        description="Astronomy service endpoint"
    )
    moon_access_key: Optional[str] = Field(default=None, description="Astronomy service access key")
    moon_secret_key: Optional[str] = Field(default=None, description="Astronomy service secret key")
    moon_default_place_id: str = Field(default="norway/oslo", description="Location used when none is given")
    moon_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        le=120,
        description="Maximum time to wait for the moon phase lookup (seconds)"
    )

    @field_validator("ollama_url", "moon_api_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Normalize base URLs"""
        return v.strip().rstrip("/")

    @property
    def moon_credentials_configured(self) -> bool:
        """Whether both astronomy keys are present"""
        return bool(self.moon_access_key and self.moon_secret_key)

    @property
    def allowed_origins_list(self) -> List[str]:
        """Parse CORS origins from comma-separated string"""
        return [origin.strip() for origin in self.allowed_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_file=str(ENV_FILE) if ENV_FILE.exists() else None,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        env_ignore_empty=True
    )


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance"""
    return Settings()
