"""Data models shared by the extractors, the resolver and the orchestrator."""

from __future__ import annotations

from dataclasses import dataclass, fields, replace
from datetime import datetime
from enum import Enum
from typing import Optional

# Field name -> key used when the record is echoed back to callers
CANDIDATE_FIELDS = {
    "title": "title",
    "company": "company",
    "location": "location",
    "description": "description",
    "logo_url": "logoUrl",
    "salary_range": "salaryRange",
}


@dataclass
class CandidateJobRecord:
    """Job data produced by an extractor before duplicate resolution.

    Never persisted as-is: it either seeds a new job record or is discarded
    in favour of the existing record it matched.
    """

    url: Optional[str] = None
    title: Optional[str] = None
    company: Optional[str] = None
    location: Optional[str] = None
    description: Optional[str] = None
    logo_url: Optional[str] = None
    salary_range: Optional[str] = None

    @classmethod
    def from_dict(cls, data: dict) -> "CandidateJobRecord":
        """Build from caller-supplied data using either camelCase or snake_case keys."""
        values = {"url": data.get("url")}
        for name, key in CANDIDATE_FIELDS.items():
            value = data.get(key, data.get(name))
            values[name] = value if value else None
        return cls(**values)

    def to_dict(self) -> dict:
        """Serialize the non-empty fields with camelCase keys."""
        d = {}
        if self.url:
            d["url"] = self.url
        for name, key in CANDIDATE_FIELDS.items():
            value = getattr(self, name)
            if value:
                d[key] = value
        return d

    def with_defaults(self, **defaults: Optional[str]) -> "CandidateJobRecord":
        """Return a copy where empty fields take the given fallback values."""
        changes = {
            name: value
            for name, value in defaults.items()
            if value is not None and not (getattr(self, name) or "").strip()
        }
        return replace(self, **changes)

    def is_empty(self) -> bool:
        return not any(getattr(self, f.name) for f in fields(self) if f.name != "url")


@dataclass(frozen=True)
class ExistingJobRecordView:
    """Read projection of a persisted job used for duplicate checks."""

    id: str
    company_id: str
    job_title_value: str
    job_url: Optional[str]
    created_at: datetime
    job_title_label: str = ""
    company_label: str = ""

    def summary(self) -> dict:
        return {
            "id": self.id,
            "title": self.job_title_label or self.job_title_value,
            "company": self.company_label,
            "createdAt": self.created_at.isoformat(),
            "jobUrl": self.job_url,
        }


@dataclass(frozen=True)
class IncomingJob:
    """The incoming side of a duplicate comparison."""

    company_id: str
    job_title_value: str
    job_url: Optional[str] = None


class MatchReason(Enum):
    """Why two postings were considered the same job."""

    URL = "url"
    TITLE = "title"


@dataclass(frozen=True)
class DuplicateMatch:
    matched_id: str
    reason: MatchReason
    record: Optional[ExistingJobRecordView] = None

    def to_dict(self) -> dict:
        return {"matchedId": self.matched_id, "reason": self.reason.value}
