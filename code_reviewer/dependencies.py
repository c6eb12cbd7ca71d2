"""FastAPI dependency factories."""

from __future__ import annotations

from typing import NoReturn

from code_reviewer.config import Settings, SettingsError, get_settings, read_webhook_secret
from code_reviewer.github_client import GitHubClient
from code_reviewer.logger import get_logger
from code_reviewer.models.events import PullRequestEvent
from code_reviewer.review_client import ReviewServiceClient
from code_reviewer.services.pipeline import ReviewPipeline

logger = get_logger()


def build_pipeline(settings: Settings) -> ReviewPipeline:
    """Wire the pipeline to the GitHub and review-service clients described by the settings.

    Credentials are only checked once a run reaches the fetching stage.
    """

    def platform_factory(event: PullRequestEvent) -> GitHubClient:
        return GitHubClient(
            base_url=settings.normalized_github_api_base_url,
            credentials=settings.require_github_credentials(),
            installation_id=event.installation_id,
        )

    def review_service_factory() -> ReviewServiceClient:
        return ReviewServiceClient(
            settings.require_review_credentials(),
            base_url=settings.normalized_anthropic_api_base_url,
        )

    return ReviewPipeline(
        webhook_secret=settings.github_webhook_secret,
        platform_factory=platform_factory,
        review_service_factory=review_service_factory,
    )


def build_unconfigured_pipeline(error: SettingsError) -> ReviewPipeline:
    """Pipeline for invalid settings: deliveries are still verified, then fail when collaborators are built."""

    def raise_settings_error(*_: object) -> NoReturn:
        raise error

    return ReviewPipeline(
        webhook_secret=read_webhook_secret(),
        platform_factory=raise_settings_error,
        review_service_factory=raise_settings_error,
    )


def pipeline_dependency() -> ReviewPipeline:
    try:
        settings = get_settings()
    except SettingsError as exc:
        logger.error(f"Failed to load settings: {exc}")
        return build_unconfigured_pipeline(exc)
    return build_pipeline(settings)
