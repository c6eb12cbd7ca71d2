"""Parse the review service's marker-based reply into a ReviewResult.

The reply is read line by line. Section markers (``SUMMARY:``,
``RECOMMENDATIONS:``, ``COMMENTS:``) switch the state, comment field markers
(``FILE:``, ``LINE:``, ``TYPE:``, ``PRIORITY:``, ``BODY:``) fill a pending
comment, and a line holding only ``---`` closes it. Nothing in the reply can
make the parser raise; unexpected input is ignored or replaced by a default.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import List

from code_reviewer.models.review import CommentKind, Priority, ReviewComment, ReviewResult

DEFAULT_SCORE = 75
MIN_SCORE = 0
MAX_SCORE = 100
DEFAULT_SUMMARY = "Code review complete."
COMMENT_DELIMITER = "---"

_FIRST_INTEGER_RE = re.compile(r"\d+")
_LEADING_INTEGER_RE = re.compile(r"[+-]?\d+")
_ORDINAL_RE = re.compile(r"^\d+\.")
_ORDINAL_PREFIX_RE = re.compile(r"^\d+\.\s*")


class _Section(Enum):
    NONE = "none"
    IN_SUMMARY = "summary"
    IN_RECOMMENDATIONS = "recommendations"
    IN_COMMENTS = "comments"


_SECTION_MARKERS = (
    ("SUMMARY:", _Section.IN_SUMMARY),
    ("RECOMMENDATIONS:", _Section.IN_RECOMMENDATIONS),
    ("COMMENTS:", _Section.IN_COMMENTS),
)


@dataclass(slots=True)
class _PendingComment:
    file: str
    line: int | None = None
    kind: str | None = None
    priority: str | None = None
    body: str | None = None

    def materialize(self) -> ReviewComment | None:
        if not self.file or not self.body:
            return None
        return ReviewComment(
            file=self.file,
            line=self.line,
            body=self.body,
            kind=CommentKind.coerce(self.kind),
            priority=Priority.coerce(self.priority),
        )


def clamp_score(value: int) -> int:
    return max(MIN_SCORE, min(MAX_SCORE, value))


def _remainder(line: str, marker: str) -> str:
    return line[len(marker):].strip()


def _parse_line_number(raw: str) -> int | None:
    match = _LEADING_INTEGER_RE.match(raw)
    return int(match.group(0)) if match else None


class ReviewResponseParser:
    """Stateful single-use parser; call :meth:`parse` once per reply."""

    def __init__(self) -> None:
        self._score = DEFAULT_SCORE
        self._summary = ""
        self._recommendations: List[str] = []
        self._comments: List[ReviewComment] = []
        self._section = _Section.NONE
        self._pending: _PendingComment | None = None

    def parse(self, text: str | None) -> ReviewResult:
        for raw_line in (text or "").split("\n"):
            self._consume(raw_line.strip())
        self._flush()
        return ReviewResult(
            overall_score=self._score,
            summary=self._summary or DEFAULT_SUMMARY,
            recommendations=list(self._recommendations),
            comments=list(self._comments),
        )

    def _flush(self) -> None:
        pending, self._pending = self._pending, None
        if pending is None or not pending.file:
            return
        comment = pending.materialize()
        if comment is not None:
            self._comments.append(comment)

    def _consume(self, line: str) -> None:
        if line.startswith("OVERALL_SCORE:"):
            match = _FIRST_INTEGER_RE.search(line)
            if match:
                self._score = clamp_score(int(match.group(0)))
            return

        for marker, section in _SECTION_MARKERS:
            if line.startswith(marker):
                self._section = section
                return

        if line.startswith("FILE:"):
            if self._pending is not None and self._pending.file:
                self._flush()
            self._pending = _PendingComment(file=_remainder(line, "FILE:"))
            return

        if line.startswith("LINE:"):
            number = _parse_line_number(_remainder(line, "LINE:"))
            if number is not None and self._pending is not None:
                self._pending.line = number
            return

        if line.startswith("TYPE:"):
            if self._pending is not None:
                self._pending.kind = _remainder(line, "TYPE:")
            return

        if line.startswith("PRIORITY:"):
            if self._pending is not None:
                self._pending.priority = _remainder(line, "PRIORITY:")
            return

        if line.startswith("BODY:"):
            if self._pending is not None:
                self._pending.body = _remainder(line, "BODY:")
            return

        if line == COMMENT_DELIMITER:
            self._flush()
            return

        if not line:
            return

        if self._section is _Section.IN_SUMMARY and not self._summary:
            self._summary = line
        elif self._section is _Section.IN_RECOMMENDATIONS and _ORDINAL_RE.match(line):
            self._recommendations.append(_ORDINAL_PREFIX_RE.sub("", line, count=1))


def parse_review_response(text: str | None) -> ReviewResult:
    """Parse one reply from the review service. Never raises."""

    return ReviewResponseParser().parse(text)
