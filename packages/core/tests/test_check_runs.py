"""Tests for listing and classifying check runs."""

from datetime import datetime, timezone
from types import SimpleNamespace
from unittest.mock import MagicMock

import pytest
from github import GithubException

from ghtool_core.categories import Category, CategoryMatcher
from ghtool_core.errors import CheckRunFetchError
from ghtool_core.gh.check_runs import CheckRunFetcher, to_check_run
from ghtool_core.models import CheckConclusion, CheckStatus

SHA = "c" * 40


def _raw(id, name, status="completed", conclusion="success", started=None):
    return SimpleNamespace(
        id=id,
        name=name,
        status=status,
        conclusion=conclusion,
        html_url=f"https://github.com/owner/repo/runs/{id}",
        details_url=None,
        started_at=started,
        completed_at=None,
    )


def _matcher():
    return CategoryMatcher.from_config(
        {
            "test": {"job_pattern": "^Test", "tool": "jest"},
            "lint": {"job_pattern": "^Lint", "tool": "eslint"},
        }
    )


def _repo(runs):
    repo = MagicMock()
    repo.get_commit.return_value.get_check_runs.return_value = runs
    return repo


def _at(minute):
    return datetime(2024, 1, 1, 12, minute, tzinfo=timezone.utc)


class TestToCheckRun:
    def test_maps_fields(self):
        run = to_check_run(_raw(1, "Test", conclusion="failure", started=_at(1)))
        assert run.id == 1
        assert run.status == CheckStatus.COMPLETED
        assert run.conclusion == CheckConclusion.FAILURE
        assert run.url == "https://github.com/owner/repo/runs/1"
        assert run.created_at == _at(1)
        assert run.is_failing is True

    def test_in_progress_has_no_conclusion(self):
        run = to_check_run(_raw(1, "Test", status="in_progress", conclusion=None))
        assert run.conclusion is None
        assert run.is_completed is False
        assert run.is_failing is False

    def test_unknown_status_is_pending(self):
        assert to_check_run(_raw(1, "Test", status="brand_new", conclusion=None)).status == CheckStatus.PENDING

    def test_unknown_conclusion_counts_as_failure(self):
        assert to_check_run(_raw(1, "Test", conclusion="exploded")).conclusion == CheckConclusion.FAILURE

    @pytest.mark.parametrize("conclusion", ["success", "neutral", "skipped"])
    def test_passing_conclusions_are_not_failing(self, conclusion):
        assert to_check_run(_raw(1, "Test", conclusion=conclusion)).is_failing is False

    @pytest.mark.parametrize("conclusion", ["failure", "cancelled", "timed_out", "action_required"])
    def test_other_conclusions_are_failing(self, conclusion):
        assert to_check_run(_raw(1, "Test", conclusion=conclusion)).is_failing is True

    def test_falls_back_to_details_url(self):
        raw = _raw(1, "Test")
        raw.html_url = None
        raw.details_url = "https://ci.example.com/1"
        assert to_check_run(raw).url == "https://ci.example.com/1"


class TestCheckRunFetcher:
    def test_requests_latest_runs_of_head_commit(self):
        repo = _repo([])
        CheckRunFetcher(repo, SHA, _matcher()).fetch()
        repo.get_commit.assert_called_once_with(SHA)
        repo.get_commit.return_value.get_check_runs.assert_called_once_with(filter="latest")

    def test_classifies_and_drops_unmatched(self):
        repo = _repo([_raw(1, "Test (1/2)"), _raw(2, "Lint"), _raw(3, "Deploy")])
        result = CheckRunFetcher(repo, SHA, _matcher()).fetch()
        assert [r.id for r in result.runs_for(Category.TEST)] == [1]
        assert [r.id for r in result.runs_for(Category.LINT)] == [2]
        assert len(result) == 2

    def test_orders_by_creation_time_then_id(self):
        repo = _repo(
            [
                _raw(30, "Test (3/3)", started=_at(5)),
                _raw(10, "Test (1/3)", started=_at(1)),
                _raw(20, "Test (2/3)", started=_at(1)),
                _raw(5, "Test (queued)", status="queued", conclusion=None),
            ]
        )
        result = CheckRunFetcher(repo, SHA, _matcher()).fetch()
        # Runs without a start time sort last.
        assert [r.id for r in result.runs_for(Category.TEST)] == [10, 20, 30, 5]

    def test_failed_page_aborts_listing(self):
        def pages():
            yield _raw(1, "Test")
            raise GithubException(500, {"message": "boom"}, None)

        repo = _repo(pages())
        with pytest.raises(CheckRunFetchError, match="Could not list check runs"):
            CheckRunFetcher(repo, SHA, _matcher()).fetch()

    def test_commit_lookup_failure_wrapped(self):
        repo = MagicMock()
        repo.get_commit.side_effect = GithubException(404, {"message": "Not Found"}, None)
        with pytest.raises(CheckRunFetchError):
            CheckRunFetcher(repo, SHA, _matcher()).fetch()
