"""Tests for job name classification."""

import pytest

from ghtool_core.categories import Category, CategoryMatcher, Tool, build_category_configs
from ghtool_core.errors import ConfigError


def _config(**sections):
    return {"test": None, "lint": None, "build": None, **sections}


class TestBuildCategoryConfigs:
    def test_missing_sections_disable_categories(self):
        configs = build_category_configs(_config(lint={"job_pattern": "^Lint", "tool": "eslint"}))
        assert list(configs) == [Category.LINT]
        assert configs[Category.LINT].tool == Tool.ESLINT
        assert configs[Category.LINT].job_pattern.pattern == "^Lint"

    def test_unknown_tool_raises(self):
        with pytest.raises(ConfigError, match="unknown tool 'mocha'"):
            build_category_configs(_config(test={"job_pattern": "Test", "tool": "mocha"}))

    def test_missing_tool_raises(self):
        with pytest.raises(ConfigError, match="unknown tool"):
            build_category_configs(_config(test={"job_pattern": "Test"}))

    def test_invalid_regex_raises(self):
        with pytest.raises(ConfigError, match="invalid job_pattern"):
            build_category_configs(_config(build={"job_pattern": "([", "tool": "tsc"}))

    def test_missing_pattern_raises(self):
        with pytest.raises(ConfigError, match="job_pattern is required"):
            build_category_configs(_config(build={"tool": "tsc"}))

    def test_non_mapping_section_raises(self):
        with pytest.raises(ConfigError, match="must be a mapping"):
            build_category_configs(_config(test="jest"))


class TestCategoryMatcher:
    def _matcher(self):
        return CategoryMatcher.from_config(
            _config(
                test={"job_pattern": "^Test", "tool": "jest"},
                lint={"job_pattern": "Lint|Test and lint", "tool": "eslint"},
                build={"job_pattern": "[Bb]uild", "tool": "tsc"},
            )
        )

    def test_classifies_each_category(self):
        matcher = self._matcher()
        assert matcher.classify("Test (1/2)") == Category.TEST
        assert matcher.classify("Run Lint") == Category.LINT
        assert matcher.classify("build-app") == Category.BUILD

    def test_unmatched_job_is_none(self):
        assert self._matcher().classify("Deploy preview") is None

    def test_pattern_searches_anywhere_in_name(self):
        assert self._matcher().classify("ci / Lint") == Category.LINT

    def test_test_wins_over_lint_and_build(self):
        # Matches all three patterns; test has priority.
        assert self._matcher().classify("Test and lint build") == Category.TEST

    def test_lint_wins_over_build(self):
        assert self._matcher().classify("Lint build") == Category.LINT

    def test_classify_is_deterministic(self):
        matcher = self._matcher()
        results = {matcher.classify("Test and lint build") for _ in range(50)}
        assert results == {Category.TEST}

    def test_disabled_category_never_matches(self):
        matcher = CategoryMatcher.from_config(_config(build={"job_pattern": ".*", "tool": "tsc"}))
        assert matcher.classify("Test") == Category.BUILD
        assert matcher.enabled_categories == [Category.BUILD]

    def test_config_for_missing_category_raises(self):
        matcher = CategoryMatcher.from_config(_config(build={"job_pattern": ".*", "tool": "tsc"}))
        with pytest.raises(ConfigError, match="No lint section"):
            matcher.config_for(Category.LINT)

    def test_enabled_categories_in_priority_order(self):
        assert self._matcher().enabled_categories == [Category.TEST, Category.LINT, Category.BUILD]
