"""Application configuration using Pydantic Settings.

Reads configuration from environment variables with sensible defaults.
All secrets should be provided via environment variables.
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, computed_field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # =========================================================================
    # Application
    # =========================================================================
    environment: Literal["prod", "staging", "dev"] = Field(
        default="dev",
        description="Environment name",
    )
    debug: bool = Field(
        default=False,
        description="Enable debug mode",
    )

    # =========================================================================
    # Database
    # =========================================================================
    db_user: str = Field(
        default="taxonomy_app",
        description="Database user",
    )
    db_password: str = Field(
        default="",
        description="Database password",
    )
    db_name: str = Field(
        default="taxonomy",
        description="Database name",
    )
    db_host: str = Field(
        default="localhost",
        description="Database host",
    )
    db_port: int = Field(
        default=5432,
        description="Database port",
    )
    db_pool_size: int = Field(
        default=5,
        description="Database connection pool size",
    )
    db_pool_max_overflow: int = Field(
        default=10,
        description="Max overflow connections beyond pool size",
    )
    db_url_override: str = Field(
        default="",
        description="Full SQLAlchemy URL, takes precedence over the db_* parts",
    )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Build the async database URL."""
        if self.db_url_override:
            return self.db_url_override
        return (
            f"postgresql+asyncpg://{self.db_user}:{self.db_password}"
            f"@{self.db_host}:{self.db_port}/{self.db_name}"
        )

    # =========================================================================
    # Tables
    # =========================================================================
    taxonomy_table: str = Field(
        default="taxonomies",
        description="Table holding taxonomy nodes",
    )
    taxonomy_path_table: str = Field(
        default="taxonomy_paths",
        description="Closure table holding ancestor paths",
    )
    taxonomy_relation_table: str = Field(
        default="taxonomy_relations",
        description="Table linking taxonomy nodes to the entities using them",
    )
    translation_table: str = Field(
        default="translations",
        description="Polymorphic translation table",
    )
    meta_table: str = Field(
        default="metas",
        description="Polymorphic metadata table",
    )
    media_relation_table: str = Field(
        default="media_relations",
        description="Polymorphic media attachment table",
    )
    url_table: str = Field(
        default="urls",
        description="Polymorphic URL slug table",
    )

    # =========================================================================
    # Taxonomy
    # =========================================================================
    taxonomy_types_file: str = Field(
        default="config/taxonomy_types.yaml",
        description="YAML file declaring the registered taxonomy types",
    )
    default_locale: str = Field(
        default="en",
        description="Locale used when no locale is active",
    )
    rtl_locales: list[str] = Field(
        default_factory=lambda: ["ar", "fa", "he", "ur"],
        description="Locales rendered right to left",
    )
    arrow_icon: dict[str, str] = Field(
        default_factory=lambda: {"ltr": "›", "rtl": "‹"},
        description="Name chain separator per text direction",
    )
    default_page_size: int = Field(
        default=15,
        ge=1,
        le=500,
        description="Default page size for paginated listings",
    )

    # =========================================================================
    # Logging
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Log level (DEBUG, INFO, WARNING, ERROR)",
    )
    log_json: bool = Field(
        default=True,
        description="Output logs as JSON",
    )


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Singleton instance for convenience
settings = get_settings()
