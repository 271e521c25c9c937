"""Job categories and the matcher that assigns check runs to them.

A category is enabled by a config section such as::

    lint:
      job_pattern: "^Lint"
      tool: eslint

Job names are tested against the enabled categories in a fixed priority
order (test, lint, build) and the first match wins. A job whose name matches
both the test and lint patterns is therefore a test job. Overlapping patterns
are not reported as an error.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional

from ghtool_core.errors import ConfigError


class Category(str, Enum):
    TEST = "test"
    LINT = "lint"
    BUILD = "build"


CATEGORY_PRIORITY = (Category.TEST, Category.LINT, Category.BUILD)


class Tool(str, Enum):
    JEST = "jest"
    ESLINT = "eslint"
    TSC = "tsc"


@dataclass(frozen=True)
class CategoryConfig:
    category: Category
    job_pattern: re.Pattern
    tool: Tool


def _parse_section(category: Category, section) -> CategoryConfig:
    if not isinstance(section, dict):
        raise ConfigError(f"[{category.value}] must be a mapping with job_pattern and tool.")

    pattern = section.get("job_pattern")
    if not pattern or not isinstance(pattern, str):
        raise ConfigError(f"[{category.value}] job_pattern is required.")
    try:
        compiled = re.compile(pattern)
    except re.error as e:
        raise ConfigError(f"[{category.value}] invalid job_pattern /{pattern}/: {e}") from e

    tool_name = section.get("tool")
    try:
        tool = Tool(tool_name)
    except ValueError:
        choices = ", ".join(t.value for t in Tool)
        raise ConfigError(f"[{category.value}] unknown tool {tool_name!r}. Choose one of: {choices}.") from None

    return CategoryConfig(category=category, job_pattern=compiled, tool=tool)


def build_category_configs(config: dict) -> dict[Category, CategoryConfig]:
    """Compile the test/lint/build sections of a loaded config.

    Categories without a section are left out, which disables them.
    """
    configs: dict[Category, CategoryConfig] = {}
    for category in CATEGORY_PRIORITY:
        section = config.get(category.value)
        if section is None:
            continue
        configs[category] = _parse_section(category, section)
    return configs


class CategoryMatcher:
    def __init__(self, configs: Iterable[CategoryConfig]):
        by_category = {c.category: c for c in configs}
        self._ordered = [by_category[c] for c in CATEGORY_PRIORITY if c in by_category]

    @classmethod
    def from_config(cls, config: dict) -> "CategoryMatcher":
        return cls(build_category_configs(config).values())

    @property
    def enabled_categories(self) -> list[Category]:
        return [c.category for c in self._ordered]

    def config_for(self, category: Category) -> CategoryConfig:
        for config in self._ordered:
            if config.category == category:
                return config
        raise ConfigError(f"No {category.value} section found in the configuration.")

    def classify(self, job_name: str) -> Optional[Category]:
        for config in self._ordered:
            if config.job_pattern.search(job_name):
                return config.category
        return None
