"""
Duplicate candidate resolution.

An incoming posting is compared against a bounded window of the user's
recent jobs at the same company: created within the last ``window_days``
days, newest first, at most ``max_records`` of them. Older postings are
never considered, which keeps the cost of a check independent of history
size.

Matching policy, per existing record:
1. Different company -> never a duplicate.
2. Both have URLs and they normalize to the same value -> duplicate ("url").
3. Titles are similar (normalized edit-distance ratio >= threshold) -> duplicate ("title").

The first record that matches wins; other plausible matches are not reported.
"""

from datetime import datetime, timedelta
from typing import Iterator, Optional, Protocol, Sequence, Union

from .logger import get_logger
from .models import DuplicateMatch, ExistingJobRecordView, IncomingJob, MatchReason
from .similarity import DEFAULT_TITLE_THRESHOLD, are_job_titles_similar, are_urls_similar

logger = get_logger()

DUPLICATE_WINDOW_DAYS = 30
MAX_DUPLICATE_CANDIDATES = 50

Comparable = Union[IncomingJob, ExistingJobRecordView]


class RecentJobSource(Protocol):
    def query_recent_by_company(
        self, user_id: str, company_id: str, since: datetime, limit: int
    ) -> Sequence[ExistingJobRecordView]:
        ...


def duplicate_reason(
    incoming: Comparable,
    existing: Comparable,
    threshold: float = DEFAULT_TITLE_THRESHOLD,
) -> Optional[MatchReason]:
    """Why ``incoming`` duplicates ``existing``, or None if it does not."""
    if incoming.company_id != existing.company_id:
        return None
    if incoming.job_url and existing.job_url and are_urls_similar(incoming.job_url, existing.job_url):
        return MatchReason.URL
    if are_job_titles_similar(incoming.job_title_value, existing.job_title_value, threshold):
        return MatchReason.TITLE
    return None


def are_potential_duplicates(
    incoming: Comparable,
    existing: Comparable,
    threshold: float = DEFAULT_TITLE_THRESHOLD,
) -> bool:
    return duplicate_reason(incoming, existing, threshold) is not None


def iter_duplicates(
    company_id: str,
    candidate_title_normalized: str,
    candidate_url: Optional[str],
    store: RecentJobSource,
    user_id: str,
    window_days: int = DUPLICATE_WINDOW_DAYS,
    max_records: int = MAX_DUPLICATE_CANDIDATES,
    threshold: float = DEFAULT_TITLE_THRESHOLD,
    now: Optional[datetime] = None,
) -> Iterator[DuplicateMatch]:
    """Yield every match inside the candidate window, newest record first."""
    since = (now or datetime.now()) - timedelta(days=window_days)
    incoming = IncomingJob(company_id, candidate_title_normalized, candidate_url or None)
    recent = store.query_recent_by_company(user_id, company_id, since, max_records)
    logger.debug(
        "Checking duplicate candidates",
        company_id=company_id,
        candidates=len(recent),
        since=since.isoformat(),
    )
    for record in recent:
        reason = duplicate_reason(incoming, record, threshold)
        if reason is not None:
            yield DuplicateMatch(matched_id=record.id, reason=reason, record=record)


def find_duplicate(
    company_id: str,
    candidate_title_normalized: str,
    candidate_url: Optional[str],
    store: RecentJobSource,
    user_id: str,
    window_days: int = DUPLICATE_WINDOW_DAYS,
    max_records: int = MAX_DUPLICATE_CANDIDATES,
    threshold: float = DEFAULT_TITLE_THRESHOLD,
    now: Optional[datetime] = None,
) -> Optional[DuplicateMatch]:
    """First existing record in the window that the candidate duplicates, if any."""
    matches = iter_duplicates(
        company_id,
        candidate_title_normalized,
        candidate_url,
        store,
        user_id,
        window_days=window_days,
        max_records=max_records,
        threshold=threshold,
        now=now,
    )
    return next(matches, None)
