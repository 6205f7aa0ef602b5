"""Configuration management for the ScoutBet discovery pipeline."""
import os
from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # LLM completion service (OpenAI-compatible chat completions)
    perplexity_api_key: Optional[str] = Field(default=None, alias="PERPLEXITY_API_KEY")
    perplexity_api_url: str = Field(
        default="https://api.perplexity.ai/chat/completions",
        alias="PERPLEXITY_API_URL",
    )
    perplexity_model: str = Field(default="sonar", alias="PERPLEXITY_MODEL")

    # Browser automation / extraction service
    browserbase_api_key: Optional[str] = Field(default=None, alias="BROWSERBASE_API_KEY")
    browserbase_project_id: Optional[str] = Field(default=None, alias="BROWSERBASE_PROJECT_ID")
    browserbase_api_url: str = Field(
        default="https://api.browserbase.com/v1",
        alias="BROWSERBASE_API_URL",
    )
    stagehand_api_url: str = Field(
        default="https://api.stagehand.browserbase.com/v1",
        alias="STAGEHAND_API_URL",
    )
    # Key for the model Stagehand uses to run extraction instructions
    model_api_key: Optional[str] = Field(default=None, alias="MODEL_API_KEY")

    # Timeouts (seconds)
    llm_timeout_seconds: float = Field(default=60.0, alias="LLM_TIMEOUT_SECONDS")
    extraction_timeout_seconds: float = Field(default=45.0, alias="EXTRACTION_TIMEOUT_SECONDS")
    historical_timeout_seconds: float = Field(default=10.0, alias="HISTORICAL_TIMEOUT_SECONDS")

    # Source selection
    min_source_reliability: float = Field(default=0.85, alias="MIN_SOURCE_RELIABILITY")
    max_sources: int = Field(default=10, alias="MAX_SOURCES")

    # API server configuration
    api_host: str = Field(default="0.0.0.0", alias="API_HOST")
    api_port: int = Field(default=8000, alias="API_PORT")

    @field_validator("min_source_reliability")
    @classmethod
    def validate_reliability(cls, v: float) -> float:
        """Reliability thresholds are probabilities."""
        if not 0.0 <= v <= 1.0:
            raise ValueError("MIN_SOURCE_RELIABILITY must be between 0 and 1")
        return v

    @property
    def use_llm(self) -> bool:
        """Check if the LLM completion service is configured."""
        return bool(self.perplexity_api_key)

    @property
    def use_browser(self) -> bool:
        """Check if browser extraction is configured (requires both key and project)."""
        return bool(self.browserbase_api_key and self.browserbase_project_id)

    def validate_required(self) -> list[str]:
        """
        Validate collaborator settings and return list of missing variables.

        Missing variables are not fatal: the pipeline falls back to demo data
        without extraction and to template summaries without an LLM.

        Returns:
            List of missing environment variable names.
        """
        missing = []

        if not self.perplexity_api_key:
            missing.append("PERPLEXITY_API_KEY")
        if not self.browserbase_api_key:
            missing.append("BROWSERBASE_API_KEY")
        if not self.browserbase_project_id:
            missing.append("BROWSERBASE_PROJECT_ID")

        return missing

    def get_port(self) -> int:
        """Get API port, preferring the PORT variable set by hosting platforms."""
        port = os.getenv("PORT")
        if port:
            try:
                return int(port)
            except ValueError:
                return self.api_port
        return self.api_port
