"""
Tests for dedup.py - duplicate candidate resolution.
"""

from datetime import datetime, timedelta

import pytest
from jobcapture.dedup import (
    are_potential_duplicates,
    duplicate_reason,
    find_duplicate,
    iter_duplicates,
)
from jobcapture.models import ExistingJobRecordView, IncomingJob, MatchReason

NOW = datetime(2024, 6, 1, 12, 0, 0)


def record(job_id, title, url=None, company_id="c1", age_days=1):
    return ExistingJobRecordView(
        id=job_id,
        company_id=company_id,
        job_title_value=title,
        job_url=url,
        created_at=NOW - timedelta(days=age_days),
    )


class FakeRecentJobs:
    """In-memory stand-in for the record store's window query."""

    def __init__(self, records):
        self.records = records
        self.calls = []

    def query_recent_by_company(self, user_id, company_id, since, limit):
        self.calls.append((user_id, company_id, since, limit))
        matching = [
            r for r in self.records
            if r.company_id == company_id and r.created_at >= since
        ]
        matching.sort(key=lambda r: r.created_at, reverse=True)
        return matching[:limit]


class TestDuplicateReason:
    """Test the pairwise matching policy."""

    def test_different_company_never_matches(self):
        incoming = IncomingJob("c2", "software engineer", "https://a.example/1")
        existing = record("j1", "software engineer", "https://a.example/1")
        assert duplicate_reason(incoming, existing) is None

    def test_url_match(self):
        incoming = IncomingJob("c1", "totally different", "http://www.a.example/1/?utm_source=x")
        existing = record("j1", "software engineer", "https://a.example/1")
        assert duplicate_reason(incoming, existing) is MatchReason.URL

    def test_title_match_when_urls_differ(self):
        incoming = IncomingJob("c1", "software engineer", "https://a.example/2")
        existing = record("j1", "software engineer", "https://a.example/1")
        assert duplicate_reason(incoming, existing) is MatchReason.TITLE

    def test_title_match_without_urls(self):
        incoming = IncomingJob("c1", "software engineer")
        existing = record("j1", "software engineers")
        assert duplicate_reason(incoming, existing) is MatchReason.TITLE

    def test_no_match(self):
        incoming = IncomingJob("c1", "product manager", "https://a.example/2")
        existing = record("j1", "software engineer", "https://a.example/1")
        assert duplicate_reason(incoming, existing) is None
        assert not are_potential_duplicates(incoming, existing)

    def test_symmetric(self):
        a = record("j1", "data scientist", "https://a.example/1")
        b = record("j2", "data scientists", "https://a.example/9")
        assert are_potential_duplicates(a, b) == are_potential_duplicates(b, a)


class TestFindDuplicate:
    """Test the windowed lookup."""

    def test_returns_none_without_history(self):
        store = FakeRecentJobs([])
        assert find_duplicate("c1", "engineer", None, store, user_id="u1", now=NOW) is None

    def test_finds_title_match(self):
        store = FakeRecentJobs([record("j1", "software engineer")])
        match = find_duplicate("c1", "software engineer", None, store, user_id="u1", now=NOW)
        assert match.matched_id == "j1"
        assert match.reason is MatchReason.TITLE
        assert match.to_dict() == {"matchedId": "j1", "reason": "title"}

    def test_newest_match_wins(self):
        store = FakeRecentJobs([
            record("old", "software engineer", age_days=10),
            record("new", "software engineer", age_days=2),
        ])
        match = find_duplicate("c1", "software engineer", None, store, user_id="u1", now=NOW)
        assert match.matched_id == "new"

    def test_window_excludes_old_records(self):
        store = FakeRecentJobs([record("j1", "software engineer", age_days=31)])
        assert find_duplicate("c1", "software engineer", None, store, user_id="u1", now=NOW) is None

    def test_window_and_limit_are_passed_through(self):
        store = FakeRecentJobs([])
        find_duplicate(
            "c1", "engineer", None, store,
            user_id="u1", window_days=7, max_records=3, now=NOW,
        )
        assert store.calls == [("u1", "c1", NOW - timedelta(days=7), 3)]

    def test_record_limit_bounds_candidates(self):
        records = [record(f"j{i}", f"unrelated role {i}", age_days=1) for i in range(5)]
        records.append(record("target", "software engineer", age_days=5))
        store = FakeRecentJobs(records)
        assert find_duplicate("c1", "software engineer", None, store, user_id="u1", max_records=5, now=NOW) is None
        assert find_duplicate("c1", "software engineer", None, store, user_id="u1", max_records=6, now=NOW) is not None

    def test_custom_threshold(self):
        store = FakeRecentJobs([record("j1", "senior engineer")])
        assert find_duplicate("c1", "senior engineers", None, store, user_id="u1", threshold=0.99, now=NOW) is None


class TestIterDuplicates:
    """Test listing every match."""

    def test_yields_all_matches_newest_first(self):
        store = FakeRecentJobs([
            record("a", "software engineer", age_days=3),
            record("b", "product manager", "https://a.example/pm", age_days=2),
            record("c", "software engineer ii", age_days=1),
        ])
        matches = list(iter_duplicates("c1", "software engineer", "https://a.example/pm", store, user_id="u1", now=NOW))
        assert [m.matched_id for m in matches] == ["c", "b", "a"]
        assert [m.reason for m in matches] == [MatchReason.TITLE, MatchReason.URL, MatchReason.TITLE]
