"""
Configuration for the ingestion engine.
All values can be overridden through INGEST_* environment variables or a .env file.
"""

from functools import lru_cache
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from .models import Gender


class Settings(BaseSettings):
	"""Engine settings: registry endpoints, matcher tuning and defaults."""

	model_config = SettingsConfigDict(
		env_prefix="INGEST_", env_file=".env", env_file_encoding="utf-8", case_sensitive=False, extra="ignore"
	)

	# Registries
	master_data_url: str = Field(default="http://localhost:54321/functions/v1/catalog", description="Master-data registry base URL (serves /master/...)")
	movie_registry_url: str = Field(default="http://localhost:54321/functions/v1/catalog", description="Movie registry base URL (serves /movies)")
	access_token: Optional[str] = Field(default=None, description="Bearer token forwarded to the registries")
	request_timeout_s: float = Field(default=10.0, gt=0)
	max_workers: int = Field(default=8, ge=1, description="Thread pool size for concurrent fetches and patches")

	# Matcher tuning (empirical, keep configurable)
	min_match_score: int = Field(default=30, ge=0)
	label_same_name_min_score: int = Field(default=20, ge=0)
	high_score_ratio: float = Field(default=0.8, gt=0, le=1)
	suggestion_cutoff: float = Field(default=70.0, ge=0, le=100)
	suggestion_limit: int = Field(default=5, ge=0)

	# Domain priors and defaults
	default_gender: Gender = Gender.FEMALE
	default_movie_type: str = "HC"

	# Translation
	translation_url: str = "https://api.mymemory.translated.net/get"
	translation_enabled: bool = True

	log_level: str = "INFO"


@lru_cache()
def get_settings() -> Settings:
	"""Cached settings instance."""
	return Settings()
