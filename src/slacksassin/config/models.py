"""Pydantic models for application configuration."""

from typing import Any, Literal

from pydantic import BaseModel, Field, field_validator, model_validator

DEFAULT_SYSTEM_PROMPT = (
    "You're SlackSassin, a helpful assistant that responds to Slack messages "
    "professionally and concisely. Keep responses brief and actionable."
)


class ServerConfig(BaseModel):
    """Inbound webhook server configuration."""

    host: str = "0.0.0.0"
    port: int = Field(default=8080, ge=0, le=65535)
    webhook_path: str = Field(
        default="zapier-webhook",
        description="Path segment of the primary ingress route (POST /<path>).",
    )
    max_body_bytes: int = Field(
        default=65536,
        gt=0,
        description="Largest request body accepted before answering 413.",
    )
    body_read_timeout: float = Field(
        default=10.0,
        gt=0,
        description="Seconds allowed for a client to deliver its request body.",
    )

    @field_validator("webhook_path")
    @classmethod
    def _strip_slashes(cls, value: str) -> str:
        path = value.strip("/")
        if not path:
            raise ValueError("webhook_path cannot be empty")
        return path


class GenerationConfig(BaseModel):
    """Text-generation backend configuration."""

    model_id: str = Field(
        default="ollama/granite3.3:2b",
        description=(
            "Model identifier. 'ollama/<name>' selects the Ollama backend, "
            "anything else is passed to LiteLLM."
        ),
    )
    base_url: str | None = Field(
        default="http://localhost:11434",
        description="Backend base URL, also used for the reachability probe.",
    )
    system_prompt: str = DEFAULT_SYSTEM_PROMPT
    auto_generate: bool = Field(
        default=True,
        description="Generate a reply as soon as a message is received.",
    )
    timeout: float = Field(default=30.0, gt=0)
    probe_timeout: float = Field(default=5.0, gt=0)
    params: dict[str, Any] = Field(default_factory=dict)
    client_args: dict[str, Any] = Field(default_factory=dict)
    think_open: str = "<think>"
    think_close: str = "</think>"


class FeatureWeights(BaseModel):
    """Multipliers applied to the similarity feature groups.

    These are heuristic starting points; tune them against labelled pairs.
    """

    ability: float = 2.0
    preference: float = 2.0
    quantity: float = 2.0
    comparison: float = 1.5
    temporal: float = 1.5
    locational: float = 1.5
    causal: float = 1.5
    method: float = 1.5
    yes_no: float = 1.5
    negation: float = 2.0
    phrase: float = 2.0
    domain: float = 1.0


class SimilarityConfig(BaseModel):
    """Template matching configuration."""

    display_threshold: float = Field(default=60.0, ge=0, le=100)
    auto_response_threshold: float = Field(default=90.0, ge=0, le=100)
    tier_cut_points: tuple[float, float, float] = Field(
        default=(90.0, 75.0, 50.0),
        description="Lower bounds of the very_high, high and medium tiers.",
    )
    weights: FeatureWeights = Field(default_factory=FeatureWeights)

    @model_validator(mode="after")
    def _check_thresholds(self) -> "SimilarityConfig":
        if self.auto_response_threshold < self.display_threshold:
            raise ValueError(
                "auto_response_threshold must not be lower than display_threshold"
            )
        very_high, high, medium = self.tier_cut_points
        if not very_high >= high >= medium:
            raise ValueError("tier_cut_points must be in descending order")
        return self


class RelayConfig(BaseModel):
    """Outbound relay (Zapier catch hook) configuration."""

    url: str | None = Field(
        default=None,
        description="Endpoint receiving approved replies. Unset disables sending.",
    )
    timeout: float = Field(default=15.0, gt=0)


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = Field(
        default="sqlite+aiosqlite:///./data/slacksassin.db",
        description=(
            "SQLAlchemy-style database connection URL "
            "(e.g., 'sqlite+aiosqlite:///path/to/db')."
        ),
    )


class QueueConfig(BaseModel):
    """Event queue configuration."""

    max_size: int = Field(default=100, gt=0)


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    format: Literal["json", "text"] = "json"
    stream: Literal["stdout", "stderr"] = "stdout"


class TracingConfig(BaseModel):
    """OpenTelemetry tracing configuration."""

    enabled: bool = True
    service_name: str = "slacksassin"


class AppConfig(BaseModel):
    """Application configuration."""

    server: ServerConfig = Field(default_factory=ServerConfig)
    generation: GenerationConfig = Field(default_factory=GenerationConfig)
    similarity: SimilarityConfig = Field(default_factory=SimilarityConfig)
    relay: RelayConfig = Field(default_factory=RelayConfig)
    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    queue: QueueConfig = Field(default_factory=QueueConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    tracing: TracingConfig = Field(default_factory=TracingConfig)
