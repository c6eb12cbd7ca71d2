"""Application configuration helpers."""

from __future__ import annotations

import os
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path

from dotenv import load_dotenv
from pydantic import AnyHttpUrl, BaseModel, ValidationError

# Load environment variables from .env file
env_path = Path(__file__).parent.parent / ".env"
load_dotenv(dotenv_path=env_path)

DEFAULT_GITHUB_API_BASE_URL = "https://api.github.com"
DEFAULT_ANTHROPIC_API_BASE_URL = "https://api.anthropic.com"
DEFAULT_REVIEW_MODEL = "claude-sonnet-4-5"
DEFAULT_REVIEW_MAX_TOKENS = 4000


class SettingsError(RuntimeError):
    """Raised when application configuration is invalid or incomplete."""


@dataclass(frozen=True)
class GitHubCredentials:
    token: str | None = None
    app_id: int | None = None
    private_key_pem: str | None = None

    @property
    def uses_app_auth(self) -> bool:
        return self.token is None


@dataclass(frozen=True)
class ReviewServiceCredentials:
    api_key: str
    model: str
    max_tokens: int


class Settings(BaseModel):
    """Runtime settings loaded from environment variables."""

    github_webhook_secret: str | None = None
    github_api_base_url: AnyHttpUrl = DEFAULT_GITHUB_API_BASE_URL
    github_token: str | None = None
    github_app_id: int | None = None
    github_private_key_pem: str | None = None
    anthropic_api_key: str | None = None
    anthropic_api_base_url: AnyHttpUrl = DEFAULT_ANTHROPIC_API_BASE_URL
    review_model: str = DEFAULT_REVIEW_MODEL
    review_max_tokens: int = DEFAULT_REVIEW_MAX_TOKENS

    @property
    def normalized_github_api_base_url(self) -> str:
        """Return the GitHub API base URL without a trailing slash."""
        return str(self.github_api_base_url).rstrip("/")

    @property
    def normalized_anthropic_api_base_url(self) -> str:
        return str(self.anthropic_api_base_url).rstrip("/")

    def require_github_credentials(self) -> GitHubCredentials:
        """Return platform credentials, preferring a static token over GitHub App auth."""

        if self.github_token:
            return GitHubCredentials(token=self.github_token)

        missing = []
        if self.github_app_id is None:
            missing.append("GITHUB_APP_ID")
        if not self.github_private_key_pem:
            missing.append("GITHUB_PRIVATE_KEY")
        if missing:
            missing_vars = ", ".join(missing)
            raise SettingsError(
                "GitHub access is not configured. Set GITHUB_TOKEN or the missing "
                f"GitHub App variables: {missing_vars}."
            )

        return GitHubCredentials(
            app_id=int(self.github_app_id),
            private_key_pem=self.github_private_key_pem,
        )

    def require_review_credentials(self) -> ReviewServiceCredentials:
        """Ensure the review service key is configured and return it."""

        if not self.anthropic_api_key:
            raise SettingsError(
                "Review service is not configured. Missing environment variables: ANTHROPIC_API_KEY."
            )
        return ReviewServiceCredentials(
            api_key=self.anthropic_api_key,
            model=self.review_model,
            max_tokens=self.review_max_tokens,
        )


def _parse_int_env(name: str, raw_value: str | None) -> int | None:
    if raw_value is None or not raw_value.strip():
        return None
    try:
        return int(raw_value)
    except ValueError as exc:
        raise SettingsError(f"Invalid value for {name}. It must be an integer.") from exc


def read_webhook_secret() -> str | None:
    """Read only the webhook secret, which stays usable when other variables are invalid."""
    return os.getenv("GITHUB_WEBHOOK_SECRET") or None


def _build_settings() -> Settings:
    github_app_id = _parse_int_env("GITHUB_APP_ID", os.getenv("GITHUB_APP_ID"))
    review_max_tokens = _parse_int_env("REVIEW_MAX_TOKENS", os.getenv("REVIEW_MAX_TOKENS"))

    try:
        return Settings(
            github_webhook_secret=read_webhook_secret(),
            github_api_base_url=os.getenv("GITHUB_API_BASE_URL") or DEFAULT_GITHUB_API_BASE_URL,
            github_token=os.getenv("GITHUB_TOKEN") or None,
            github_app_id=github_app_id,
            github_private_key_pem=os.getenv("GITHUB_PRIVATE_KEY") or None,
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY") or None,
            anthropic_api_base_url=os.getenv("ANTHROPIC_API_BASE_URL") or DEFAULT_ANTHROPIC_API_BASE_URL,
            review_model=os.getenv("REVIEW_MODEL") or DEFAULT_REVIEW_MODEL,
            review_max_tokens=review_max_tokens or DEFAULT_REVIEW_MAX_TOKENS,
        )
    except ValidationError as exc:
        raise SettingsError("Invalid application configuration.") from exc


@lru_cache(maxsize=1)
def _cached_settings() -> Settings:
    return _build_settings()


def get_settings() -> Settings:
    """Retrieve cached application settings."""
    return _cached_settings()


def reset_settings_cache() -> None:
    """Clear the cached settings (primarily for tests)."""
    _cached_settings.cache_clear()
