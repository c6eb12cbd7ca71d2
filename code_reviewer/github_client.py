"""GitHub API client used to read pull request files and publish reviews."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, List

import httpx
import jwt

from code_reviewer.config import GitHubCredentials
from code_reviewer.logger import get_logger, log_with_context
from code_reviewer.models.review import ChangedFile, FileStatus, ReviewComment, ReviewResult

logger = get_logger()

DEFAULT_ACCEPT_HEADER = "application/vnd.github+json"
DEFAULT_API_VERSION = "2022-11-28"
FILES_PAGE_SIZE = 100

SCORE_LABELS = (
    (90, "ai-review: excellent"),
    (80, "ai-review: good"),
    (70, "ai-review: needs-improvement"),
    (60, "ai-review: review-required"),
    (0, "ai-review: needs-work"),
)


class GitHubAPIError(RuntimeError):
    """Raised when a GitHub API request fails."""

    def __init__(self, message: str, status_code: int, response_body: Any | None = None):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


@dataclass
class InstallationToken:
    token: str
    expires_at: datetime

    def is_active(self, *, skew_seconds: int = 60) -> bool:
        """Return True if the token is still valid accounting for clock skew."""

        return self.expires_at - timedelta(seconds=skew_seconds) > datetime.now(timezone.utc)


def score_label(score: int) -> str:
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return SCORE_LABELS[-1][1]


def _coerce_status(raw: str | None) -> FileStatus | str:
    try:
        return FileStatus(raw)
    except ValueError:
        return raw or ""


def _to_changed_file(entry: Dict[str, Any]) -> ChangedFile | None:
    path = entry.get("filename") or entry.get("path")
    if not path:
        return None
    return ChangedFile(
        path=path,
        status=_coerce_status(entry.get("status")),
        additions=int(entry.get("additions", 0) or 0),
        deletions=int(entry.get("deletions", 0) or 0),
        changes=int(entry.get("changes", 0) or 0),
        patch=entry.get("patch"),
    )


def format_review_body(result: ReviewResult, unplaced: List[ReviewComment]) -> str:
    lines = [
        "## AI Code Review",
        f"**Overall score:** {result.overall_score}/100",
        "",
        result.summary,
    ]
    if result.recommendations:
        lines += ["", "### Recommendations"]
        lines += [f"{index}. {item}" for index, item in enumerate(result.recommendations, start=1)]
    if unplaced:
        lines += ["", "### Comments"]
        lines += [f"- {_location(comment)}: {format_comment_body(comment)}" for comment in unplaced]
    return "\n".join(lines)


def format_comment_body(comment: ReviewComment) -> str:
    return f"**[{comment.priority.value} {comment.kind.value}]** {comment.body}"


def _location(comment: ReviewComment) -> str:
    if comment.line is not None and comment.line > 0:
        return f"`{comment.file}` line {comment.line}"
    return f"`{comment.file}`"


class GitHubClient:
    """Pull request operations authenticated by a token or a GitHub App installation."""

    def __init__(
        self,
        *,
        base_url: str,
        credentials: GitHubCredentials,
        installation_id: int | None = None,
        timeout: float = 10.0,
        user_agent: str = "AI-Code-Reviewer/1.0",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        if credentials.uses_app_auth and installation_id is None:
            raise GitHubAPIError("GitHub App authentication requires an installation id.", 0, None)
        self._credentials = credentials
        self._installation_id = installation_id
        # Private keys from environment variables often carry escaped newlines.
        self._private_key = (credentials.private_key_pem or "").replace("\\n", "\n")
        self._client = client or httpx.AsyncClient(
            base_url=base_url.rstrip("/"),
            timeout=timeout,
            headers={
                "User-Agent": user_agent,
                "Accept": DEFAULT_ACCEPT_HEADER,
                "X-GitHub-Api-Version": DEFAULT_API_VERSION,
            },
        )
        self._owns_client = client is None
        self._installation_token: InstallationToken | None = None

    def _build_jwt(self) -> str:
        now = datetime.now(timezone.utc)
        payload = {
            "iat": int((now - timedelta(seconds=60)).timestamp()),
            "exp": int((now + timedelta(minutes=10)).timestamp()),
            "iss": str(self._credentials.app_id),
        }
        try:
            return jwt.encode(payload, self._private_key, algorithm="RS256")
        except Exception as exc:
            raise GitHubAPIError(
                f"Failed to encode JWT: {exc}. Check that GITHUB_PRIVATE_KEY is a valid RSA private key in PEM format.",
                0,
                None,
            ) from exc

    async def _request(
        self,
        method: str,
        url: str,
        *,
        headers: Dict[str, str] | None = None,
        params: Dict[str, Any] | None = None,
        json: Any | None = None,
    ) -> httpx.Response:
        try:
            response = await self._client.request(method, url, headers=headers, params=params, json=json)
        except httpx.HTTPError as exc:
            raise GitHubAPIError(f"GitHub API request to {url} failed: {exc}", 0, None) from exc
        if response.is_error:
            logger.warning(f"GitHub answered {method} {url} with {response.status_code}")
            raise GitHubAPIError(
                f"{method} {url} returned HTTP {response.status_code}",
                response.status_code,
                _error_detail(response),
            )
        return response

    async def _fetch_installation_token(self) -> InstallationToken:
        response = await self._request(
            "POST",
            f"/app/installations/{self._installation_id}/access_tokens",
            headers={"Authorization": f"Bearer {self._build_jwt()}"},
        )
        data = response.json()
        token_value = data.get("token")
        expires_at_raw = data.get("expires_at")
        if not token_value or not expires_at_raw:
            raise GitHubAPIError(
                "GitHub did not return a usable installation token.",
                response.status_code,
                data,
            )
        return InstallationToken(token=token_value, expires_at=_parse_github_timestamp(expires_at_raw))

    async def _auth_headers(self) -> Dict[str, str]:
        if self._credentials.token:
            return {"Authorization": f"Bearer {self._credentials.token}"}
        if self._installation_token is None or not self._installation_token.is_active():
            self._installation_token = await self._fetch_installation_token()
        return {"Authorization": f"Bearer {self._installation_token.token}"}

    async def list_changed_files(self, owner: str, repo: str, pull_number: int) -> List[ChangedFile]:
        """Return every file of the pull request, in the order GitHub lists them."""

        ctx_logger = log_with_context(logger, repository=f"{owner}/{repo}", pull_number=pull_number)
        headers = await self._auth_headers()
        files: List[ChangedFile] = []
        page = 1
        while True:
            response = await self._request(
                "GET",
                f"/repos/{owner}/{repo}/pulls/{pull_number}/files",
                headers=headers,
                params={"per_page": FILES_PAGE_SIZE, "page": page},
            )
            batch = response.json()
            if not isinstance(batch, list):
                raise GitHubAPIError(
                    "Unexpected response while listing pull request files.",
                    response.status_code,
                    batch,
                )
            for entry in batch:
                changed_file = _to_changed_file(entry)
                if changed_file is None:
                    ctx_logger.warning(f"Skipping file entry missing filename: {entry}")
                    continue
                files.append(changed_file)
            if len(batch) < FILES_PAGE_SIZE:
                break
            page += 1
        ctx_logger.debug(f"Listed {len(files)} changed file(s) over {page} page(s)")
        return files

    async def _head_sha(self, owner: str, repo: str, pull_number: int, headers: Dict[str, str]) -> str:
        response = await self._request("GET", f"/repos/{owner}/{repo}/pulls/{pull_number}", headers=headers)
        data = response.json()
        sha = (data.get("head") or {}).get("sha")
        if not sha:
            raise GitHubAPIError("Pull request has no head commit.", response.status_code, data)
        return sha

    async def post_review_comment(self, owner: str, repo: str, pull_number: int, result: ReviewResult) -> None:
        """Publish the review: inline comments where a line is known, the rest in the body.

        Each inline comment is its own request. GitHub answers 422 for a line
        outside the diff; such a comment is listed in the review body instead.
        """

        ctx_logger = log_with_context(logger, repository=f"{owner}/{repo}", pull_number=pull_number)
        headers = await self._auth_headers()
        inline: List[ReviewComment] = []
        unplaced: List[ReviewComment] = []
        for comment in result.comments:
            if comment.line is not None and comment.line > 0:
                inline.append(comment)
            else:
                unplaced.append(comment)

        if inline:
            commit_sha = await self._head_sha(owner, repo, pull_number, headers)
            for comment in inline:
                try:
                    await self._request(
                        "POST",
                        f"/repos/{owner}/{repo}/pulls/{pull_number}/comments",
                        headers=headers,
                        json={
                            "commit_id": commit_sha,
                            "path": comment.file,
                            "line": comment.line,
                            "side": "RIGHT",
                            "body": format_comment_body(comment),
                        },
                    )
                except GitHubAPIError as exc:
                    if exc.status_code != 422:
                        raise
                    ctx_logger.warning(
                        f"{comment.file}:{comment.line} is not part of the diff; moving the comment to the review body"
                    )
                    unplaced.append(comment)

        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/pulls/{pull_number}/reviews",
            headers=headers,
            json={"event": "COMMENT", "body": format_review_body(result, unplaced)},
        )

    async def apply_score_label(self, owner: str, repo: str, pull_number: int, score: int) -> None:
        await self._request(
            "POST",
            f"/repos/{owner}/{repo}/issues/{pull_number}/labels",
            headers=await self._auth_headers(),
            json={"labels": [score_label(score)]},
        )

    async def aclose(self) -> None:
        if self._owns_client and self._client is not None:
            await self._client.aclose()
            self._client = None


def _parse_github_timestamp(raw: str) -> datetime:
    if raw.endswith("Z"):
        raw = raw[:-1] + "+00:00"
    return datetime.fromisoformat(raw).astimezone(timezone.utc)


def _error_detail(response: httpx.Response) -> Any | None:
    if not response.content:
        return None
    try:
        return response.json()
    except ValueError:
        return response.text
