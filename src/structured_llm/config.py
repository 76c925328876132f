from __future__ import annotations

import os

from pydantic import BaseModel, ConfigDict, Field

from .errors import ConfigurationError


class ProviderConfig(BaseModel):
    """Endpoint settings resolved once (env-backed by default) and injected into models and sessions."""

    model_config = ConfigDict(frozen=True)

    # OpenAI / Azure OpenAI
    openai_api_url: str = Field(default_factory=lambda: os.getenv("OPENAI_API_URL", "https://api.openai.com"))
    azure_completions_version: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_API_VERSION", "2025-01-01-preview")
    )
    azure_assistants_version: str = Field(
        default_factory=lambda: os.getenv("AZURE_OPENAI_ASSISTANTS_VERSION", "2024-06-01")
    )

    # Anthropic
    anthropic_api_url: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_API_URL", "https://api.anthropic.com/v1/complete")
    )
    anthropic_messages_api_url: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_MESSAGES_API_URL", "https://api.anthropic.com/v1/messages")
    )
    anthropic_messages_version: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_MESSAGES_VERSION", "2023-06-01")
    )
    anthropic_files_version: str = Field(
        default_factory=lambda: os.getenv("ANTHROPIC_FILES_VERSION", "files-api-2025-04-14")
    )

    # Mistral
    mistral_api_url: str = Field(
        default_factory=lambda: os.getenv("MISTRAL_API_URL", "https://api.mistral.ai/v1/chat/completions")
    )

    # Google
    google_gemini_api_url: str = Field(
        default_factory=lambda: os.getenv(
            "GOOGLE_GEMINI_API_URL", "https://generativelanguage.googleapis.com/v1/models"
        )
    )
    google_gemini_beta_api_url: str = Field(
        default_factory=lambda: os.getenv(
            "GOOGLE_GEMINI_BETA_API_URL", "https://generativelanguage.googleapis.com/v1beta/models"
        )
    )
    google_region: str = Field(default_factory=lambda: os.getenv("GOOGLE_REGION", "us-central1"))
    google_project_id: str | None = Field(default_factory=lambda: os.getenv("GOOGLE_PROJECT_ID"))

    # Other chat-style vendors
    perplexity_api_url: str = Field(
        default_factory=lambda: os.getenv("PERPLEXITY_API_URL", "https://api.perplexity.ai/chat/completions")
    )
    deepseek_api_url: str = Field(
        default_factory=lambda: os.getenv("DEEPSEEK_API_URL", "https://api.deepseek.com/chat/completions")
    )
    xai_api_url: str = Field(
        default_factory=lambda: os.getenv("XAI_API_URL", "https://api.x.ai/v1/chat/completions")
    )

    # HTTP behavior
    request_timeout_seconds: float = Field(
        default_factory=lambda: float(os.getenv("REQUEST_TIMEOUT_SECONDS", "120"))
    )

    # Assistant runs
    run_poll_interval_seconds: float = Field(
        default_factory=lambda: float(os.getenv("RUN_POLL_INTERVAL_SECONDS", "10"))
    )
    run_deadline_seconds: float = Field(default_factory=lambda: float(os.getenv("RUN_DEADLINE_SECONDS", "600")))

    # Observability
    enable_metrics: bool = Field(
        default_factory=lambda: os.getenv("ENABLE_METRICS", "false").lower() == "true"
    )
    metrics_bind: str = Field(default_factory=lambda: os.getenv("METRICS_BIND", "127.0.0.1"))
    metrics_port: int = Field(default_factory=lambda: int(os.getenv("METRICS_PORT", "9109")))
    log_level: str = Field(default_factory=lambda: os.getenv("LOG_LEVEL", "INFO"))
    log_format: str = Field(default_factory=lambda: os.getenv("LOG_FORMAT", "json"))

    def require_google_project(self) -> str:
        if not self.google_project_id:
            raise ConfigurationError("GOOGLE_PROJECT_ID is required for Vertex AI endpoints.")
        return self.google_project_id

    @property
    def google_vertex_api_url(self) -> str:
        project = self.require_google_project()
        region = self.google_region
        return (
            f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}"
            f"/locations/{region}/publishers/google/models"
        )

    @property
    def google_vertex_endpoint_api_url(self) -> str:
        project = self.require_google_project()
        region = self.google_region
        return f"https://{region}-aiplatform.googleapis.com/v1/projects/{project}/locations/{region}/endpoints"
