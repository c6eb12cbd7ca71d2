"""Render an analysis report into the review-service request text."""

from __future__ import annotations

from typing import List

from code_reviewer.models.review import AnalysisReport, ChangedFile, Issue

MAX_PATCH_CHARS = 1000
TRUNCATION_MARKER = "... (truncated)"

REPLY_FORMAT_INSTRUCTIONS = """\
## Review request
Reply using exactly the plain-text markers below, each at the start of its own line
(no markdown headings or bullets in front of them):

OVERALL_SCORE: <integer from 0 to 100>
SUMMARY:
<one-line assessment of the whole pull request>
RECOMMENDATIONS:
1. <recommendation>
2. <recommendation>
3. <recommendation>
COMMENTS:
FILE: <path of the file>
LINE: <line number in the new file, omit if not applicable>
TYPE: <suggestion|improvement|issue|praise>
PRIORITY: <low|medium|high>
BODY: <the comment, on a single line>
---

Repeat the FILE/LINE/TYPE/PRIORITY/BODY block for every comment, each block ending with a line
containing only ---.

## Review focus
1. Security: leaked credentials and other sensitive data, exploitable patterns.
2. Performance: algorithmic cost, memory usage.
3. Readability: clarity of the code, naming conventions.
4. Maintainability: module boundaries, testability.
5. Best practices: idioms of the language, fitting design patterns.

## Scoring
- 90-100: excellent, only minor suggestions.
- 80-89: good, a few points to improve.
- 70-79: needs improvement before merging.
- 60-69: several problems, a careful human review is required.
- 0-59: serious problems, substantial rework needed.

Keep the feedback constructive and concrete, and include how to fix what you point out."""


def _excerpt(patch: str) -> str:
    if len(patch) <= MAX_PATCH_CHARS:
        return patch
    return patch[:MAX_PATCH_CHARS] + "\n" + TRUNCATION_MARKER


def _format_file(changed_file: ChangedFile) -> str:
    status = getattr(changed_file.status, "value", changed_file.status)
    lines = [
        f"### {changed_file.path} ({status})",
        f"- Additions: {changed_file.additions} lines, deletions: {changed_file.deletions} lines",
    ]
    if changed_file.patch:
        lines.append(f"```diff\n{_excerpt(changed_file.patch)}\n```")
    return "\n".join(lines)


def format_issue(issue: Issue) -> str:
    location = f"{issue.file}:{issue.line}" if issue.line is not None else issue.file
    return f"- [{issue.severity}/10] {issue.category.value}: {issue.message} ({location})"


def build_prompt(report: AnalysisReport) -> str:
    """Build the request text for one pull request review."""

    totals = report.totals
    languages = ", ".join(totals.languages) if totals.languages else "unknown"
    sections: List[str] = [
        "You are an experienced software engineer. Review the following pull request in detail.",
        "## Pull request overview\n"
        f"- Changed files: {totals.file_count}\n"
        f"- Added lines: {totals.additions}\n"
        f"- Deleted lines: {totals.deletions}\n"
        f"- Languages: {languages}",
        "## Changed files",
    ]
    sections.extend(_format_file(changed_file) for changed_file in report.files)

    sections.append("## Detected issues")
    if report.issues:
        sections.append("\n".join(format_issue(issue) for issue in report.issues))
    else:
        sections.append("- none detected by the static scan")

    sections.append(REPLY_FORMAT_INSTRUCTIONS)
    return "\n\n".join(sections).strip()
