"""Run one pull request review from the raw webhook delivery to the published result."""

from __future__ import annotations

import json
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, FrozenSet, List, Protocol, TypeVar

from pydantic import ValidationError

from code_reviewer.config import SettingsError
from code_reviewer.logger import get_logger, log_failure, log_success, log_timing, log_with_context
from code_reviewer.models.events import PullRequestEvent
from code_reviewer.models.review import AnalysisReport, ChangedFile, ReviewResult
from code_reviewer.services.change_set import analyze_change_set
from code_reviewer.services.diff_scanner import DiffScanner
from code_reviewer.services.prompt_builder import build_prompt
from code_reviewer.services.response_parser import parse_review_response
from code_reviewer.utils.security import verify_signature

logger = get_logger()

REVIEWABLE_ACTIONS: FrozenSet[str] = frozenset({"opened", "synchronize"})
PULL_REQUEST_EVENT = "pull_request"

T = TypeVar("T")


class PipelineStage(str, Enum):
    VERIFYING = "verifying"
    FETCHING = "fetching"
    SCANNING = "scanning"
    PROMPTING = "prompting"
    AWAITING_REVIEW = "awaiting_review"
    PUBLISHING = "publishing"
    COMPLETED = "completed"
    FAILED = "failed"


class ReviewPipelineError(RuntimeError):
    """Raised when a review run cannot continue."""

    def __init__(self, message: str, stage: PipelineStage, original_error: Exception | None = None):
        super().__init__(message)
        self.stage = stage
        self.original_error = original_error


class AuthenticationFailure(ReviewPipelineError):
    """Signature missing, wrong, or no webhook secret configured."""


class InvalidPayload(ReviewPipelineError):
    """The verified body is not a usable pull request event."""


class ConfigurationMissing(ReviewPipelineError):
    """Collaborator credentials are absent."""


class CollaboratorFailure(ReviewPipelineError):
    """The platform or the review service failed."""


class PlatformClient(Protocol):
    async def list_changed_files(self, owner: str, repo: str, pull_number: int) -> List[ChangedFile]: ...

    async def post_review_comment(self, owner: str, repo: str, pull_number: int, result: ReviewResult) -> None: ...

    async def apply_score_label(self, owner: str, repo: str, pull_number: int, score: int) -> None: ...

    async def aclose(self) -> None: ...


class ReviewService(Protocol):
    async def complete(self, prompt: str) -> str: ...

    async def aclose(self) -> None: ...


PlatformClientFactory = Callable[[PullRequestEvent], PlatformClient]
ReviewServiceFactory = Callable[[], ReviewService]


@dataclass(slots=True)
class PipelineOutcome:
    stage: PipelineStage
    ignored: bool = False
    reason: str | None = None
    error: ReviewPipelineError | None = None
    report: AnalysisReport | None = None
    result: ReviewResult | None = None
    review_posted: bool = False
    label_applied: bool = False

    @property
    def succeeded(self) -> bool:
        return self.stage is PipelineStage.COMPLETED

    @property
    def failed_stage(self) -> PipelineStage | None:
        return self.error.stage if self.error else None


class ReviewPipeline:
    """Verify, fetch, scan, prompt, review and publish; at most once, without retries."""

    def __init__(
        self,
        *,
        webhook_secret: str | None,
        platform_factory: PlatformClientFactory,
        review_service_factory: ReviewServiceFactory,
        scanner: DiffScanner | None = None,
    ) -> None:
        self._webhook_secret = webhook_secret
        self._platform_factory = platform_factory
        self._review_service_factory = review_service_factory
        self._scanner = scanner or DiffScanner()

    async def run(
        self,
        raw_body: bytes,
        signature_header: str | None,
        event_name: str | None = None,
    ) -> PipelineOutcome:
        outcome = PipelineOutcome(stage=PipelineStage.VERIFYING)
        try:
            event = self._verify(raw_body, signature_header, event_name, outcome)
            if event is None:
                outcome.stage = PipelineStage.COMPLETED
                logger.info(f"Delivery acknowledged without review: {outcome.reason}")
                return outcome
            await self._review(event, outcome)
        except ReviewPipelineError as exc:
            outcome.error = exc
            outcome.stage = PipelineStage.FAILED
            log_failure(logger, f"Review run failed while {exc.stage.value}", exc)
            return outcome

        outcome.stage = PipelineStage.COMPLETED
        return outcome

    def _verify(
        self,
        raw_body: bytes,
        signature_header: str | None,
        event_name: str | None,
        outcome: PipelineOutcome,
    ) -> PullRequestEvent | None:
        if not verify_signature(raw_body, signature_header, self._webhook_secret):
            raise AuthenticationFailure("Invalid signature", PipelineStage.VERIFYING)

        if event_name is not None and event_name != PULL_REQUEST_EVENT:
            outcome.ignored = True
            outcome.reason = f"event={event_name}"
            return None

        try:
            event = PullRequestEvent.model_validate(json.loads(raw_body.decode("utf-8")))
        except (UnicodeDecodeError, json.JSONDecodeError) as exc:
            raise InvalidPayload("Invalid JSON payload", PipelineStage.VERIFYING, exc) from exc
        except ValidationError as exc:
            raise InvalidPayload(
                f"Payload is not a pull request event: {exc.error_count()} validation error(s)",
                PipelineStage.VERIFYING,
                exc,
            ) from exc

        if event.action not in REVIEWABLE_ACTIONS:
            outcome.ignored = True
            outcome.reason = f"action={event.action}"
            return None
        if event.pull_request is None:
            outcome.ignored = True
            outcome.reason = "no pull_request in payload"
            return None
        return event

    async def _review(self, event: PullRequestEvent, outcome: PipelineOutcome) -> None:
        owner = event.repository.owner.login
        repo = event.repository.name
        pull_number = event.pull_request.number
        ctx = {"repository": event.repository.full_name, "pull_number": pull_number}
        ctx_logger = log_with_context(logger, **ctx)
        ctx_logger.info(f"Reviewing PR #{pull_number} ({event.action}): {event.pull_request.title or 'untitled'}")

        outcome.stage = PipelineStage.FETCHING
        platform, review_service = await self._build_collaborators(event)
        try:
            with log_timing(ctx_logger, "list_changed_files"):
                files = await _call(
                    PipelineStage.FETCHING, platform.list_changed_files(owner, repo, pull_number)
                )

            outcome.stage = PipelineStage.SCANNING
            with log_timing(ctx_logger, "scan_changes"):
                report = analyze_change_set(files, self._scanner)
            outcome.report = report
            ctx_logger.info(
                f"Analysis completed: {report.totals.file_count} files, {len(report.issues)} issues found"
            )

            outcome.stage = PipelineStage.PROMPTING
            prompt = build_prompt(report)
            ctx_logger.debug(f"Prompt built: {len(prompt)} characters")

            outcome.stage = PipelineStage.AWAITING_REVIEW
            with log_timing(ctx_logger, "await_review"):
                reply = await _call(PipelineStage.AWAITING_REVIEW, review_service.complete(prompt))
            result = parse_review_response(reply)
            outcome.result = result
            ctx_logger.info(f"Review generated: score {result.overall_score}/100, {len(result.comments)} comments")

            outcome.stage = PipelineStage.PUBLISHING
            with log_timing(ctx_logger, "publish_review"):
                await _call(
                    PipelineStage.PUBLISHING, platform.post_review_comment(owner, repo, pull_number, result)
                )
                outcome.review_posted = True
                await _call(
                    PipelineStage.PUBLISHING,
                    platform.apply_score_label(owner, repo, pull_number, result.overall_score),
                )
                outcome.label_applied = True
        finally:
            await platform.aclose()
            await review_service.aclose()

        log_success(logger, f"Review posted for PR #{pull_number}", **ctx)

    async def _build_collaborators(self, event: PullRequestEvent) -> tuple[PlatformClient, ReviewService]:
        platform = _create(self._platform_factory, event)
        try:
            review_service = _create(self._review_service_factory)
        except ReviewPipelineError:
            await platform.aclose()
            raise
        return platform, review_service


def _create(factory: Callable[..., T], *args: object) -> T:
    try:
        return factory(*args)
    except SettingsError as exc:
        raise ConfigurationMissing(str(exc), PipelineStage.FETCHING, exc) from exc
    except Exception as exc:
        raise CollaboratorFailure(f"Could not create client: {exc}", PipelineStage.FETCHING, exc) from exc


async def _call(stage: PipelineStage, awaitable: Awaitable[T]) -> T:
    try:
        return await awaitable
    except Exception as exc:
        raise CollaboratorFailure(f"{type(exc).__name__}: {exc}", stage, exc) from exc
