"""Aggregate per-file scan results into one analysis report."""

from __future__ import annotations

from pathlib import PurePosixPath
from typing import Dict, Iterable, List, Sequence

from code_reviewer.models.review import AnalysisReport, ChangedFile, ChangeTotals, Issue
from code_reviewer.services.diff_scanner import DiffScanner

LANGUAGE_BY_EXTENSION: Dict[str, str] = {
    "js": "JavaScript",
    "jsx": "React",
    "ts": "TypeScript",
    "tsx": "React TypeScript",
    "py": "Python",
    "java": "Java",
    "cpp": "C++",
    "c": "C",
    "cs": "C#",
    "go": "Go",
    "rs": "Rust",
    "php": "PHP",
    "rb": "Ruby",
}


def detect_language(path: str) -> str | None:
    """Return the language for a file name, or None when the extension is unknown."""

    name = PurePosixPath(path).name
    if "." not in name:
        return None
    # A bare dotfile such as ".py" is looked up by the text after its dot.
    return LANGUAGE_BY_EXTENSION.get(name.rsplit(".", 1)[1].lower())


def build_report(
    files: Sequence[ChangedFile],
    issues_per_file: Sequence[Iterable[Issue]],
) -> AnalysisReport:
    """Combine files and their scan results, keeping the input order of both."""

    if len(files) != len(issues_per_file):
        raise ValueError("Each changed file needs exactly one list of issues.")

    languages: Dict[str, None] = {}
    issues: List[Issue] = []
    for changed_file, file_issues in zip(files, issues_per_file):
        issues.extend(file_issues)
        language = detect_language(changed_file.path)
        if language:
            languages.setdefault(language, None)

    totals = ChangeTotals(
        file_count=len(files),
        additions=sum(changed_file.additions for changed_file in files),
        deletions=sum(changed_file.deletions for changed_file in files),
        languages=tuple(languages),
    )
    return AnalysisReport(files=tuple(files), totals=totals, issues=tuple(issues))


def analyze_change_set(
    files: Sequence[ChangedFile],
    scanner: DiffScanner | None = None,
) -> AnalysisReport:
    scanner = scanner or DiffScanner()
    return build_report(files, [scanner.scan(changed_file) for changed_file in files])
