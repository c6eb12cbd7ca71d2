"""Shared fixtures: isolated settings, fake collaborators and signed deliveries."""

import json
import os
import tempfile

# Keep log files out of the project tree; must happen before the logger is first configured.
os.environ.setdefault("APP_LOG_DIR", tempfile.mkdtemp(prefix="code-reviewer-logs-"))

from typing import Any, Dict, List

import pytest

from code_reviewer.config import reset_settings_cache
from code_reviewer.models.review import ChangedFile, FileStatus, ReviewResult
from code_reviewer.utils.security import build_signature

WEBHOOK_SECRET = "test-webhook-secret"

_ENV_VARS = (
    "GITHUB_WEBHOOK_SECRET",
    "GITHUB_TOKEN",
    "GITHUB_APP_ID",
    "GITHUB_PRIVATE_KEY",
    "GITHUB_API_BASE_URL",
    "ANTHROPIC_API_KEY",
    "ANTHROPIC_API_BASE_URL",
    "REVIEW_MODEL",
    "REVIEW_MAX_TOKENS",
)

SAMPLE_PATCH = "\n".join(
    [
        "@@ -10,5 +12,6 @@ export function login(user) {",
        " const session = open();",
        "-const old = 1;",
        "+console.log(password);",
        "+const ok = true;",
        " return session;",
    ]
)

SAMPLE_REPLY = """OVERALL_SCORE: 82
SUMMARY:
Looks solid overall.
RECOMMENDATIONS:
1. Add tests
COMMENTS:
FILE: app.ts
LINE: 12
TYPE: issue
PRIORITY: high
BODY: Possible null dereference
---
"""


@pytest.fixture(autouse=True)
def clean_environment(monkeypatch):
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    reset_settings_cache()
    yield
    reset_settings_cache()


def make_event(action: str = "opened", *, with_pull_request: bool = True) -> Dict[str, Any]:
    payload: Dict[str, Any] = {
        "action": action,
        "repository": {
            "id": 1,
            "name": "app",
            "full_name": "octo/app",
            "owner": {"login": "octo"},
        },
        "installation": {"id": 99},
    }
    if with_pull_request:
        payload["pull_request"] = {
            "number": 7,
            "title": "Add login",
            "state": "open",
            "head": {"ref": "feature", "sha": "abc123"},
            "base": {"ref": "main", "sha": "def456"},
            "user": {"login": "dev"},
        }
    return payload


def signed(payload: Dict[str, Any], secret: str = WEBHOOK_SECRET) -> tuple[bytes, str]:
    body = json.dumps(payload).encode("utf-8")
    return body, build_signature(secret, body)


class FakePlatformClient:
    def __init__(
        self,
        files: List[ChangedFile] | None = None,
        *,
        fail_on: str | None = None,
    ) -> None:
        self.files = files if files is not None else [
            ChangedFile(
                path="src/app.ts",
                status=FileStatus.MODIFIED,
                additions=2,
                deletions=1,
                changes=3,
                patch=SAMPLE_PATCH,
            )
        ]
        self.fail_on = fail_on
        self.calls: List[str] = []
        self.posted: List[ReviewResult] = []
        self.labels: List[int] = []
        self.closed = False

    def _record(self, name: str) -> None:
        self.calls.append(name)
        if self.fail_on == name:
            raise RuntimeError(f"{name} exploded")

    async def list_changed_files(self, owner: str, repo: str, pull_number: int) -> List[ChangedFile]:
        self._record("list_changed_files")
        return list(self.files)

    async def post_review_comment(self, owner: str, repo: str, pull_number: int, result: ReviewResult) -> None:
        self._record("post_review_comment")
        self.posted.append(result)

    async def apply_score_label(self, owner: str, repo: str, pull_number: int, score: int) -> None:
        self._record("apply_score_label")
        self.labels.append(score)

    async def aclose(self) -> None:
        self.closed = True


class FakeReviewService:
    def __init__(self, reply: str = SAMPLE_REPLY, *, error: Exception | None = None) -> None:
        self.reply = reply
        self.error = error
        self.prompts: List[str] = []
        self.closed = False

    async def complete(self, prompt: str) -> str:
        self.prompts.append(prompt)
        if self.error is not None:
            raise self.error
        return self.reply

    async def aclose(self) -> None:
        self.closed = True


@pytest.fixture
def platform() -> FakePlatformClient:
    return FakePlatformClient()


@pytest.fixture
def review_service() -> FakeReviewService:
    return FakeReviewService()
