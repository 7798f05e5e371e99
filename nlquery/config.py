"""Configuration management using pydantic-settings."""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LLMProvider(str, Enum):
    """Supported LLM providers."""

    OPENAI = "openai"
    GEMINI = "gemini"


class Environment(str, Enum):
    """Application environments."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


def _plural(noun: str) -> str:
    if noun.endswith("s"):
        return noun
    if noun.endswith("y") and noun[-2:-1] not in "aeiou":
        return noun[:-1] + "ies"
    return noun + "s"


class DatabaseConfig(BaseModel):
    """Domain vocabulary describing what the stored points represent.

    Supplied once at process start and read-only afterwards.
    """

    model_config = ConfigDict(frozen=True)

    entity_field: str = "name"
    entity_type: str = "artist"
    item_type: str = "image"
    additional_fields: dict[str, str] = Field(default_factory=dict)

    @property
    def entity_type_plural(self) -> str:
        return _plural(self.entity_type)

    @property
    def item_type_plural(self) -> str:
        return _plural(self.item_type)


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Qdrant Configuration
    qdrant_url: str = Field(
        default="http://localhost:6333",
        description="Qdrant server URL",
    )
    qdrant_api_key: str | None = Field(default=None, description="Qdrant API key")
    qdrant_timeout: int = Field(default=30, description="Qdrant request timeout in seconds")
    qdrant_default_collection: str = Field(
        default="vectors",
        description="Collection used by semantic search when none is given",
    )

    # LLM Provider Configuration
    llm_provider: LLMProvider = Field(
        default=LLMProvider.OPENAI,
        description="Preferred LLM provider for intent parsing and answers",
    )

    # OpenAI Configuration
    openai_api_key: str | None = Field(default=None, description="OpenAI API key")
    openai_model: str = Field(default="gpt-4o-mini", description="OpenAI chat model")
    openai_embedding_model: str = Field(
        default="text-embedding-3-small",
        description="OpenAI embedding model",
    )

    # Google Gemini Configuration
    gemini_api_key: str | None = Field(default=None, description="Google Gemini API key")
    gemini_model: str = Field(default="gemini-2.0-flash", description="Gemini chat model")
    gemini_embedding_model: str = Field(
        default="models/text-embedding-004",
        description="Gemini embedding model",
    )

    # Domain vocabulary
    entity_field: str = Field(default="name", description="Payload key identifying the entity")
    entity_type: str = Field(default="artist", description="Display noun for entities")
    item_type: str = Field(default="image", description="Display noun for items")
    filename_field: str | None = Field(default="file_name", description="Payload key for filenames")
    url_field: str | None = Field(default="image_url", description="Payload key for item URLs")
    description_field: str | None = Field(
        default=None,
        description="Payload key for item descriptions",
    )

    # Scan safety bounds
    scan_page_size: int = Field(default=100, description="Records fetched per scroll page")
    entity_scan_limit: int = Field(
        default=1000,
        description="Maximum distinct entities collected per scan",
    )
    entity_scan_max_records: int = Field(
        default=10000,
        description="Maximum records scanned per collection when collecting entities",
    )
    ranking_scan_max_records: int = Field(
        default=10000,
        description="Maximum records scanned per collection for rankings",
    )
    aggregation_scan_max_records: int = Field(
        default=5000,
        description="Maximum records scanned per collection for aggregations",
    )
    search_max_results: int = Field(
        default=100,
        description="Maximum records returned by a single search/list page",
    )

    # Request limits
    max_question_length: int = Field(default=10000, description="Maximum question length")

    # Application Configuration
    log_level: str = Field(default="INFO", description="Logging level")
    environment: Environment = Field(
        default=Environment.DEVELOPMENT,
        description="Application environment",
    )

    @property
    def database_config(self) -> DatabaseConfig:
        """Build the domain vocabulary from the flat settings."""
        additional = {
            label: key
            for label, key in (
                ("filename", self.filename_field),
                ("url", self.url_field),
                ("description", self.description_field),
            )
            if key
        }
        return DatabaseConfig(
            entity_field=self.entity_field,
            entity_type=self.entity_type,
            item_type=self.item_type,
            additional_fields=additional,
        )

    def has_provider(self, name: str | LLMProvider) -> bool:
        """Check whether credentials exist for the given provider."""
        name = LLMProvider(name).value if isinstance(name, LLMProvider) else str(name).lower()
        if name == LLMProvider.OPENAI.value:
            return bool(self.openai_api_key)
        if name == LLMProvider.GEMINI.value:
            return bool(self.gemini_api_key)
        return False

    def available_providers(self) -> list[str]:
        """List configured providers, preferred provider first."""
        ordered = [self.llm_provider.value] + [
            p.value for p in LLMProvider if p != self.llm_provider
        ]
        return [name for name in ordered if self.has_provider(name)]

    def validate_provider_config(self) -> None:
        """Validate that required API keys are set for the selected provider."""
        if self.llm_provider == LLMProvider.OPENAI and not self.openai_api_key:
            raise ValueError("OpenAI API key is required when using OpenAI provider")
        elif self.llm_provider == LLMProvider.GEMINI and not self.gemini_api_key:
            raise ValueError("Gemini API key is required when using Gemini provider")


# Global settings instance - lazy loaded
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings
