"""Line-pattern scanning of unified diff patches."""

from __future__ import annotations

import re
from dataclasses import dataclass
from typing import List, Pattern, Tuple

from code_reviewer.models.review import ChangedFile, Issue, IssueCategory, IssueKind

HUNK_HEADER_RE = re.compile(r"@@ -\d+,?\d* \+(\d+),?\d* @@")

SECURITY_SEVERITY = 8
QUALITY_SEVERITY = 5


@dataclass(frozen=True, slots=True)
class _Rule:
    pattern: Pattern[str]
    description: str


@dataclass(frozen=True, slots=True)
class _RuleSet:
    kind: IssueKind
    category: IssueCategory
    severity: int
    headline: str
    rules: Tuple[_Rule, ...]

    def first_match(self, content: str) -> _Rule | None:
        for rule in self.rules:
            if rule.pattern.search(content):
                return rule
        return None


SECURITY_RULES = _RuleSet(
    kind=IssueKind.ERROR,
    category=IssueCategory.SECURITY,
    severity=SECURITY_SEVERITY,
    headline="Potential security vulnerability detected",
    rules=(
        _Rule(re.compile(r"console\.log.*password", re.IGNORECASE), "password written to a log"),
        _Rule(re.compile(r"console\.log.*token", re.IGNORECASE), "token written to a log"),
        _Rule(re.compile(r"console\.log.*secret", re.IGNORECASE), "secret written to a log"),
        _Rule(re.compile(r"eval\s*\("), "dynamic code evaluation"),
        _Rule(re.compile(r"document\.write\s*\("), "document.write HTML injection"),
        _Rule(re.compile(r"innerHTML\s*="), "innerHTML assignment"),
        _Rule(re.compile(r"\.exec\s*\("), "exec call"),
    ),
)

QUALITY_RULES = _RuleSet(
    kind=IssueKind.WARNING,
    category=IssueCategory.BEST_PRACTICE,
    severity=QUALITY_SEVERITY,
    headline="Code quality issue detected",
    rules=(
        _Rule(re.compile(r".{120,}"), "line is 120 characters or longer"),
        _Rule(re.compile(r"TODO|FIXME|HACK", re.IGNORECASE), "unresolved TODO/FIXME/HACK marker"),
        _Rule(re.compile(r"console\.log"), "debug console.log left in code"),
        _Rule(re.compile(r"var\s+\w+\s*=.*;\s*$"), "loosely scoped var declaration"),
    ),
)

DEFAULT_RULE_SETS: Tuple[_RuleSet, ...] = (SECURITY_RULES, QUALITY_RULES)


def _new_file_start(header: str) -> int | None:
    match = HUNK_HEADER_RE.search(header)
    if not match:
        return None
    return int(match.group(1))


def scan_patch(
    path: str,
    patch: str | None,
    *,
    rule_sets: Tuple[_RuleSet, ...] = DEFAULT_RULE_SETS,
) -> List[Issue]:
    """Return the issues found on the added lines of one file's patch.

    Line numbers refer to the new version of the file. A hunk header that
    cannot be parsed leaves the running line number where it was.
    """

    issues: List[Issue] = []
    if not patch:
        return issues

    current_line = 0
    in_hunk = False
    for raw_line in patch.split("\n"):
        if raw_line.startswith("@@"):
            in_hunk = True
            start = _new_file_start(raw_line)
            if start is not None:
                current_line = start - 1
            continue

        if not raw_line.startswith("+"):
            continue
        # "+++" is a file header only before the first hunk; inside one it is content.
        if not in_hunk and raw_line.startswith("+++"):
            continue

        current_line += 1
        content = raw_line[1:]
        for rule_set in rule_sets:
            rule = rule_set.first_match(content)
            if rule is None:
                continue
            issues.append(
                Issue(
                    kind=rule_set.kind,
                    category=rule_set.category,
                    message=f"{rule_set.headline}: {rule.description}",
                    file=path,
                    line=current_line,
                    severity=rule_set.severity,
                )
            )
    return issues


class DiffScanner:
    """Scans changed files with a fixed pair of rule sets."""

    def __init__(self, rule_sets: Tuple[_RuleSet, ...] = DEFAULT_RULE_SETS) -> None:
        self._rule_sets = rule_sets

    def scan(self, changed_file: ChangedFile) -> List[Issue]:
        return scan_patch(changed_file.path, changed_file.patch, rule_sets=self._rule_sets)
