import pytest

from code_reviewer.models.review import ChangedFile, FileStatus
from code_reviewer.services.change_set import analyze_change_set, build_report, detect_language


def changed(path, additions=1, deletions=0, patch=None, status=FileStatus.MODIFIED):
    return ChangedFile(
        path=path,
        status=status,
        additions=additions,
        deletions=deletions,
        changes=additions + deletions,
        patch=patch,
    )


class TestDetectLanguage:
    @pytest.mark.parametrize(
        "path, language",
        [
            ("src/app.ts", "TypeScript"),
            ("src/App.TSX", "React TypeScript"),
            ("lib/util.js", "JavaScript"),
            ("tool.py", "Python"),
            ("main.rs", "Rust"),
            ("a/b/Program.cs", "C#"),
            (".py", "Python"),
            ("config/.rb", "Ruby"),
        ],
    )
    def test_known_extensions(self, path, language):
        assert detect_language(path) == language

    @pytest.mark.parametrize("path", ["Makefile", "README.md", "styles.css", "archive.tar.gz", "dir.d/file", ".gitignore", "trailing."])
    def test_unknown_extensions(self, path):
        assert detect_language(path) is None


class TestBuildReport:
    def test_totals_come_from_reported_counts(self):
        files = [changed("a.py", 3, 1, patch="+x"), changed("b.py", 4, 2)]
        report = build_report(files, [[], []])
        assert report.totals.file_count == 2
        assert report.totals.additions == 7
        assert report.totals.deletions == 3

    def test_languages_are_distinct_in_first_seen_order(self):
        files = [changed("a.ts"), changed("b.py"), changed("c.ts"), changed("notes.txt")]
        report = build_report(files, [[], [], [], []])
        assert report.totals.languages == ("TypeScript", "Python")

    def test_no_languages_for_unmapped_files(self):
        report = build_report([changed("LICENSE")], [[]])
        assert report.totals.languages == ()

    def test_mismatched_inputs_are_rejected(self):
        with pytest.raises(ValueError):
            build_report([changed("a.py")], [])


class TestAnalyzeChangeSet:
    def test_files_and_issues_keep_input_order(self):
        files = [
            changed("z.js", patch="@@ -1,1 +3,1 @@\n+eval(x)"),
            changed("a.js", patch="@@ -1,1 +9,1 @@\n+// TODO"),
            changed("binary.png", patch=None),
        ]
        report = analyze_change_set(files)
        assert [f.path for f in report.files] == ["z.js", "a.js", "binary.png"]
        assert [(issue.file, issue.line) for issue in report.issues] == [("z.js", 3), ("a.js", 9)]

    def test_empty_change_set(self):
        report = analyze_change_set([])
        assert report.files == ()
        assert report.issues == ()
        assert report.totals.file_count == 0
