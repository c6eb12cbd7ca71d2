"""Webhook payload models for pull request events."""

from __future__ import annotations

from typing import Any, Dict

from pydantic import BaseModel, Field


class AccountInfo(BaseModel):
    login: str


class RepositoryInfo(BaseModel):
    id: int | None = None
    name: str
    full_name: str
    owner: AccountInfo


class InstallationInfo(BaseModel):
    id: int


class PullRequestEndpoint(BaseModel):
    ref: str | None = None
    sha: str | None = None


class PullRequestInfo(BaseModel):
    number: int
    title: str | None = None
    state: str | None = None
    html_url: str | None = None
    head: PullRequestEndpoint = Field(default_factory=PullRequestEndpoint)
    base: PullRequestEndpoint = Field(default_factory=PullRequestEndpoint)
    user: AccountInfo | None = None


class PullRequestEvent(BaseModel):
    action: str
    repository: RepositoryInfo
    pull_request: PullRequestInfo | None = None
    installation: InstallationInfo | None = None
    sender: Dict[str, Any] = Field(default_factory=dict)

    @property
    def installation_id(self) -> int | None:
        return self.installation.id if self.installation else None
