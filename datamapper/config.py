"""Configuration management for the business data mapper."""

from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Tuple

from dotenv import load_dotenv
from pydantic import Field
from pydantic_settings import BaseSettings

# Load environment variables from .env file in ops folder
env_path = Path(__file__).parent.parent / "ops" / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_MODELS = (
    "groq/openai/gpt-oss-120b,"
    "groq/llama-3.1-70b-versatile,"
    "groq/mixtral-8x7b-32768,"
    "groq/gemma2-9b-it"
)


class LLMConfig(BaseSettings):
    """Completion service configuration."""

    api_key: Optional[str] = Field(default=None, alias="MAPPER_LLM_API_KEY")
    base_url: Optional[str] = Field(default=None, alias="MAPPER_LLM_BASE_URL")
    models: str = Field(default=DEFAULT_MODELS, alias="MAPPER_LLM_MODELS")
    temperature: float = Field(default=0.1, alias="MAPPER_LLM_TEMPERATURE")
    max_tokens: Optional[int] = Field(default=None, alias="MAPPER_LLM_MAX_TOKENS")
    timeout: int = Field(default=60, alias="MAPPER_LLM_TIMEOUT")
    max_attempts: int = Field(default=2, alias="MAPPER_LLM_MAX_ATTEMPTS")
    retry_delay: float = Field(default=1.0, alias="MAPPER_LLM_RETRY_DELAY")

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"

    @property
    def model_list(self) -> List[str]:
        """Configured models in rotation order."""
        return [m.strip() for m in self.models.split(",") if m.strip()]


class MLflowConfig(BaseSettings):
    """MLflow tracking configuration."""

    tracking_uri: Optional[str] = Field(
        default="sqlite:///mlflow.db", alias="MLFLOW_TRACKING_URI"
    )
    experiment_name: str = Field(default="data-mapper", alias="MLFLOW_EXPERIMENT_NAME")
    run_name: Optional[str] = Field(default=None, alias="MLFLOW_RUN_NAME")
    enabled: bool = Field(default=False, alias="MLFLOW_ENABLED")

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"


class AppConfig(BaseSettings):
    """Main application configuration."""

    app_name: str = Field(default="biztrack-data-mapper", alias="APP_NAME")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Target relational store
    database_url: str = Field(
        default="sqlite:///data/unified.db", alias="DATABASE_URL"
    )
    # Source document store (spreadsheet rows kept as JSON documents)
    source_database_url: str = Field(
        default="sqlite:///data/documents.db", alias="SOURCE_DATABASE_URL"
    )

    # Pipeline tuning
    batch_size: int = Field(default=100, alias="MAPPER_BATCH_SIZE")
    sample_size: int = Field(default=5, alias="MAPPER_SAMPLE_SIZE")
    log_buffer_size: int = Field(default=100, alias="MAPPER_LOG_BUFFER_SIZE")

    llm: LLMConfig = Field(default_factory=LLMConfig)
    mlflow: MLflowConfig = Field(default_factory=MLflowConfig)

    # CORS configuration
    cors_origins: str = Field(default="", alias="CORS_ORIGINS")

    class Config:
        env_file = "ops/.env"
        case_sensitive = False
        extra = "ignore"


@dataclass(frozen=True)
class MigrationConfig:
    """Immutable settings for one pipeline run.

    Built from AppConfig at the start of a run and handed to every component,
    so nothing a run does (model rotation, retry counters) leaks into the next.
    """

    models: Tuple[str, ...] = tuple(DEFAULT_MODELS.split(","))
    temperature: float = 0.1
    max_attempts: int = 2
    retry_delay: float = 1.0
    batch_size: int = 100
    sample_size: int = 5
    prompt_sample_records: int = 3
    log_buffer_size: int = 100

    @classmethod
    def from_app_config(cls, app_config: "AppConfig") -> "MigrationConfig":
        return cls(
            models=tuple(app_config.llm.model_list),
            temperature=app_config.llm.temperature,
            max_attempts=app_config.llm.max_attempts,
            retry_delay=app_config.llm.retry_delay,
            batch_size=app_config.batch_size,
            sample_size=app_config.sample_size,
            log_buffer_size=app_config.log_buffer_size,
        )


# Global configuration instance
config = AppConfig()


def get_config() -> AppConfig:
    """Get the global configuration instance."""
    return config


def reload_config() -> AppConfig:
    """Reload configuration from environment variables."""
    global config
    config = AppConfig()
    return config
