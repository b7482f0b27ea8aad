"""Centralized backend configuration and environment-driven settings definitions."""

from __future__ import annotations

from functools import lru_cache
from typing import List, Literal

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
	"""Application settings loaded from environment variables."""

	model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

	DATABASE_URL: str = Field(default="sqlite:///./mirage.db")
	REDIS_URL: str = Field(default="redis://localhost:6379/0")
	SECRET: SecretStr = Field(default=SecretStr("replace-with-a-long-session-secret"))
	ENVIRONMENT: Literal["development", "staging", "production", "test"] = Field(default="production")

	SESSION_MAX_AGE_SECONDS: int = Field(default=12 * 60 * 60)
	SESSION_COOKIE_NAME: str = Field(default="mirage.sid")
	TRUST_PROXY: bool = Field(default=True)

	DISCORD_TOKEN: SecretStr = Field(default=SecretStr(""))
	DISCORD_LOGS: int | None = Field(default=None)
	DISCORD_REPORTLOGS: int | None = Field(default=None)
	DISCORD_LINKED_ROLES: str = Field(default="")
	DISCORD_INVITE_URL: str = Field(default="https://discord.gg/xTs2HbC")
	CHAT_TIMEOUT_SECONDS: float = Field(default=10.0)

	CACHE_TTL_SECONDS: int = Field(default=300)
	PUBLIC_BASE_URL: str = Field(default="https://mirage.photos")
	SENTRY_DSN: str = Field(default="")

	app_name: str = Field(default="Mirage")
	app_version: str = Field(default="1.0.0")
	log_level: str = Field(default="INFO")

	@field_validator("SECRET")
	@classmethod
	def validate_secret(cls, value: SecretStr) -> SecretStr:
		"""Validate minimum strength requirements for the session signing secret."""
		if len(value.get_secret_value()) < 16:
			raise ValueError("SECRET must be at least 16 characters long.")
		return value

	@field_validator("SESSION_MAX_AGE_SECONDS")
	@classmethod
	def validate_session_max_age(cls, value: int) -> int:
		"""Validate session lifetime bounds in seconds."""
		if value < 60 or value > 7 * 24 * 60 * 60:
			raise ValueError("SESSION_MAX_AGE_SECONDS must be between 60 and 604800.")
		return value

	@field_validator("CHAT_TIMEOUT_SECONDS")
	@classmethod
	def validate_chat_timeout(cls, value: float) -> float:
		if value <= 0:
			raise ValueError("CHAT_TIMEOUT_SECONDS must be positive.")
		return value

	@property
	def secret(self) -> str:
		return self.SECRET.get_secret_value()

	@property
	def discord_token(self) -> str:
		return self.DISCORD_TOKEN.get_secret_value()

	@property
	def environment(self) -> str:
		return self.ENVIRONMENT

	@property
	def public_base_url(self) -> str:
		"""Return the public site URL without a trailing slash."""
		return self.PUBLIC_BASE_URL.rstrip("/")

	@property
	def linked_role_ids(self) -> List[int]:
		"""Return the Discord role ids granted to linked accounts."""
		raw_roles = [item.strip() for item in self.DISCORD_LINKED_ROLES.split(",")]
		return [int(role) for role in raw_roles if role]


@lru_cache(maxsize=1)
def get_settings() -> Settings:
	"""Return cached settings instance for dependency injection."""
	return Settings()
