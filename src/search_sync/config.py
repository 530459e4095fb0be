"""Configuration management using Pydantic Settings."""

import json
from functools import lru_cache
from typing import Annotated

from pydantic import AliasChoices, Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
        populate_by_name=True,
    )

    # Server
    host: str = Field(
        default="0.0.0.0",
        validation_alias=AliasChoices("host", "sync_host"),
        description="Server host",
    )
    port: int = Field(
        default=6180,
        validation_alias=AliasChoices("port", "sync_port"),
        description="Server port",
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    # Source collection
    collection_path: str = Field(default="documents", description="Firestore collection path")
    fields: Annotated[list[str], NoDecode] = Field(
        default_factory=list,
        description="Tracked fields (comma-separated). Empty means every field is tracked.",
    )
    force_data_sync: bool = Field(
        default=False, description="Re-read documents and fully replace records on every write"
    )

    # Full indexing
    do_full_indexing: bool = Field(default=False, description="Index existing documents")
    full_indexing_replace_all: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "full_indexing_replace_all", "do_replace_all_full_indexing"
        ),
        description="Build the full index in a temporary collection and swap it in",
    )
    reindex_page_size: int = Field(default=250, description="Documents read per reindex task")

    # Target index
    index_name: str = Field(default="documents", description="Target Qdrant collection name")

    # Transform
    transform_url: str = Field(default="", description="Optional record transform endpoint")
    transform_timeout: float = Field(default=30.0, description="Transform request timeout (s)")

    # Qdrant
    qdrant_url: str = Field(default="http://localhost:6333", description="Qdrant server URL")
    qdrant_api_key: str | None = Field(default=None, description="Qdrant API key (optional)")
    qdrant_timeout: int = Field(default=30, description="Qdrant request timeout in seconds")

    # Firestore
    firestore_project: str | None = Field(default=None, description="Google Cloud project id")
    firestore_database: str = Field(default="(default)", description="Firestore database id")

    # NATS
    nats_url: str = Field(default="nats://localhost:4222", description="NATS server URL")
    nats_consumer_enabled: bool = Field(
        default=True, description="Consume change events and reindex tasks"
    )
    nats_consumer_group: str = Field(default="search-sync", description="Durable consumer name")

    @field_validator("fields", mode="before")
    @classmethod
    def parse_fields(cls, v: str | list[str] | None) -> list[str]:
        """Parse tracked fields from environment variable.

        Supports comma-separated strings or JSON arrays.
        """
        if v is None:
            return []
        if isinstance(v, str):
            if v.strip().startswith("["):
                parsed = json.loads(v)
                if not isinstance(parsed, list):
                    raise ValueError("FIELDS must be a list")
                v = parsed
            else:
                v = v.split(",")
        return [field.strip() for field in v if field and field.strip()]

    @field_validator("force_data_sync", mode="before")
    @classmethod
    def parse_yes_flag(cls, v: object) -> object:
        # The extension configuration surface uses "yes" / "no".
        if isinstance(v, str) and v.strip().lower() in ("yes", "no"):
            return v.strip().lower() == "yes"
        return v

    @field_validator("reindex_page_size")
    @classmethod
    def validate_page_size(cls, v: int) -> int:
        if v <= 0:
            raise ValueError(f"reindex_page_size must be positive, got {v}")
        return v

    @field_validator("index_name", "collection_path")
    @classmethod
    def validate_not_blank(cls, v: str, info: ValidationInfo) -> str:
        if not v.strip():
            raise ValueError(f"{info.field_name} must not be blank")
        return v.strip()


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance.

    Uses lru_cache to ensure settings are loaded only once.
    """
    return Settings()
