"""Shared data structures for one review run."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Tuple


class FileStatus(str, Enum):
    ADDED = "added"
    MODIFIED = "modified"
    REMOVED = "removed"


class IssueKind(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class IssueCategory(str, Enum):
    SYNTAX = "syntax"
    STYLE = "style"
    SECURITY = "security"
    PERFORMANCE = "performance"
    BEST_PRACTICE = "best-practice"


class CommentKind(str, Enum):
    SUGGESTION = "suggestion"
    IMPROVEMENT = "improvement"
    ISSUE = "issue"
    PRAISE = "praise"

    @classmethod
    def coerce(cls, raw: str | None) -> "CommentKind":
        """Map free text from the review reply onto a kind, defaulting to a suggestion."""
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.SUGGESTION


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"

    @classmethod
    def coerce(cls, raw: str | None) -> "Priority":
        try:
            return cls((raw or "").strip().lower())
        except ValueError:
            return cls.MEDIUM


@dataclass(frozen=True, slots=True)
class ChangedFile:
    path: str
    # GitHub may also report "renamed", "copied" or "changed"; those stay raw strings.
    status: FileStatus | str
    additions: int
    deletions: int
    changes: int
    patch: str | None = None


@dataclass(frozen=True, slots=True)
class Issue:
    kind: IssueKind
    category: IssueCategory
    message: str
    file: str
    severity: int
    line: int | None = None
    column: int | None = None


@dataclass(frozen=True, slots=True)
class ChangeTotals:
    file_count: int
    additions: int
    deletions: int
    languages: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class AnalysisReport:
    files: Tuple[ChangedFile, ...]
    totals: ChangeTotals
    issues: Tuple[Issue, ...] = ()


@dataclass(frozen=True, slots=True)
class ReviewComment:
    file: str
    body: str
    line: int | None = None
    kind: CommentKind = CommentKind.SUGGESTION
    priority: Priority = Priority.MEDIUM


@dataclass(slots=True)
class ReviewResult:
    overall_score: int
    summary: str
    recommendations: List[str] = field(default_factory=list)
    comments: List[ReviewComment] = field(default_factory=list)
