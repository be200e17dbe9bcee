"""Configuration settings for docagent."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime configuration loaded from environment variables or overrides."""

    model_config = SettingsConfigDict(
        env_prefix="", case_sensitive=False, populate_by_name=True
    )

    provider: str = Field(default="auto", validation_alias="DOCAGENT_PROVIDER")

    bedrock_api_key: str | None = Field(default=None, validation_alias="BEDROCK_API_KEY")
    bedrock_region: str = Field(default="us-east-1", validation_alias="BEDROCK_REGION")
    bedrock_model: str = Field(
        default="anthropic.claude-3-5-sonnet-20240620-v1:0", validation_alias="BEDROCK_MODEL"
    )
    bedrock_endpoint: str | None = Field(default=None, validation_alias="BEDROCK_ENDPOINT")

    gemini_api_key: str | None = Field(default=None, validation_alias="GEMINI_API_KEY")
    gemini_model: str = Field(default="gemini-2.5-pro", validation_alias="GEMINI_MODEL")
    gemini_endpoint: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        validation_alias="GEMINI_ENDPOINT",
    )

    local_llm_endpoint: str | None = Field(default=None, validation_alias="LOCAL_LLM_ENDPOINT")
    local_llm_model: str = Field(default="llama2", validation_alias="LOCAL_LLM_MODEL")
    local_llm_api_key: str | None = Field(default=None, validation_alias="LOCAL_LLM_API_KEY")

    request_timeout_seconds: float | None = Field(
        default=None, validation_alias="DOCAGENT_REQUEST_TIMEOUT"
    )
    max_tokens: int = Field(default=4096, validation_alias="DOCAGENT_MAX_TOKENS")
    max_iterations: int = Field(default=15, validation_alias="DOCAGENT_MAX_ITERATIONS")
    unstable_max_iterations: int = Field(
        default=20, validation_alias="DOCAGENT_UNSTABLE_MAX_ITERATIONS"
    )
    max_limit_recoveries: int = Field(default=3, validation_alias="DOCAGENT_MAX_LIMIT_RECOVERIES")

    write_dir: str = Field(default="_dev/build/docs", validation_alias="DOCAGENT_WRITE_DIR")
    target_name: str = Field(default="README.md", validation_alias="DOCAGENT_TARGET_NAME")
