"""Tests for the eslint log parser."""

from ghtool_core.categories import Tool
from ghtool_core.models import LintIssue
from ghtool_core.parsers.base import get_parser
from ghtool_core.parsers.eslint import EslintLogParser

RULE = "@typescript-eslint/explicit-module-boundary-types"


def _parse(log):
    return EslintLogParser().parse(log)


class TestEslintLogParser:
    def test_single_issue(self):
        result = _parse("/path/to/file.tsx\n  99:54  warning  Unexpected any  @typescript-eslint/no-explicit-any\n")
        assert result.issues == (
            LintIssue(
                file="/path/to/file.tsx",
                line=99,
                col=54,
                severity="warning",
                rule="@typescript-eslint/no-explicit-any",
                message="Unexpected any",
            ),
        )

    def test_actions_log_with_annotations(self):
        log = """
2023-06-14T20:10:57.9100220Z > project@0.0.1 lint:base
2023-06-14T20:10:57.9102305Z > eslint --ext .ts --ignore-pattern "node_modules" src test
2023-06-14T20:10:57.9102943Z 
2023-06-14T20:22:39.1727281Z /root_path/project_directory/module_1/submodule_1/fixtures/data/file_1.ts
2023-06-14T20:22:39.1789066Z ##[warning]  1:42  warning  Missing return type on function  @typescript-eslint/explicit-module-boundary-types
2023-06-14T20:22:39.1790470Z 
2023-06-14T20:22:39.1790995Z /root_path/project_directory/module_2/setupModule2Test.ts
2023-06-14T20:22:39.1792493Z ##[warning]  166:58  warning  Missing return type on function  @typescript-eslint/explicit-module-boundary-types
2023-06-14T20:22:39.1794354Z ##[warning]  309:55  warning  Missing return type on function  @typescript-eslint/explicit-module-boundary-types
2023-06-14T20:22:39.1796538Z 
2023-06-14T20:22:39.1816392Z /root_path/project_directory/module_4/submodule_2/setupInitialDB.ts
2023-06-14T20:22:39.1818449Z ##[error]  1:1   error  Delete `import·*·as·fs·from·'fs';⏎`  prettier/prettier
2023-06-14T20:22:39.1819948Z ##[error]  1:13  error  'fs' is defined but never used       @typescript-eslint/no-unused-vars
2023-06-14T20:22:39.2063811Z
2023-06-14T20:22:39.2063811Z ✖ 132 problems (4 errors, 128 warnings)"""
        result = _parse(log)
        assert [(i.file.rsplit("/", 1)[-1], i.line, i.col, i.severity, i.rule) for i in result.issues] == [
            ("file_1.ts", 1, 42, "warning", RULE),
            ("setupModule2Test.ts", 166, 58, "warning", RULE),
            ("setupModule2Test.ts", 309, 55, "warning", RULE),
            ("setupInitialDB.ts", 1, 1, "error", "prettier/prettier"),
            ("setupInitialDB.ts", 1, 13, "error", "@typescript-eslint/no-unused-vars"),
        ]
        assert result.issues[0].message == "Missing return type on function"
        assert result.issues[4].message == "'fs' is defined but never used"
        # two npm lines and the problem summary
        assert result.skipped_lines == 3

    def test_header_with_task_runner_prefix(self):
        log = (
            "@app/web:lint: /home/runner/work/app/src/index.ts\n"
            "@app/web:lint:   3:7  error  'x' is assigned a value but never used  no-unused-vars\n"
            "@app/web:lint: \n"
        )
        result = _parse(log)
        assert len(result.issues) == 1
        issue = result.issues[0]
        assert issue.file == "/home/runner/work/app/src/index.ts"
        assert (issue.line, issue.col, issue.rule) == (3, 7, "no-unused-vars")

    def test_parsing_error_has_no_rule(self):
        result = _parse("/repo/src/broken.ts\n  12:1  error  Parsing error: Unexpected token\n")
        issue = result.issues[0]
        assert issue.rule == ""
        assert issue.message == "Parsing error: Unexpected token"

    def test_blank_line_closes_group(self):
        log = "/repo/src/a.ts\n  1:1  error  Bad  rule-a\n\n  2:2  error  Orphan  rule-b\n"
        result = _parse(log)
        assert len(result.issues) == 1
        assert result.skipped_lines == 1

    def test_new_header_closes_group(self):
        log = "/repo/src/a.ts\n  1:1  error  Bad  rule-a\n/repo/src/b.ts\n  2:2  warning  Meh  rule-b\n"
        assert [i.file for i in _parse(log).issues] == ["/repo/src/a.ts", "/repo/src/b.ts"]

    def test_non_issue_lines_inside_group_are_skipped(self):
        log = "/repo/src/a.ts\n  something unexpected\n  1:1  error  Bad  rule-a\n"
        result = _parse(log)
        assert len(result.issues) == 1
        assert result.skipped_lines == 1

    def test_issue_without_header_is_skipped(self):
        result = _parse("  1:1  error  Bad  rule-a\n")
        assert result.is_empty
        assert result.skipped_lines == 1

    def test_relative_path_is_not_a_header(self):
        result = _parse("src/a.ts\n  1:1  error  Bad  rule-a\n")
        assert result.is_empty

    def test_get_parser_returns_eslint(self):
        assert isinstance(get_parser(Tool.ESLINT), EslintLogParser)
