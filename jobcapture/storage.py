"""
Record store over a SQLAlchemy session.

Entity lookups are scoped to the acting user and keyed by normalized value.
``find_or_create`` relies on the (value, created_by) unique constraint: when
a concurrent capture inserts the same entity first, the losing insert is
rolled back and the winner's row is returned.
"""

from datetime import datetime
from pathlib import Path
from typing import Dict, List, Optional, Type

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session, joinedload

from .database import Company, Job, JobSource, JobStatus, JobTitle, Location, get_session
from .logger import get_logger
from .models import ExistingJobRecordView

logger = get_logger()

ENTITY_MODELS: Dict[str, Type] = {
    "company": Company,
    "title": JobTitle,
    "location": Location,
}

DEFAULT_STATUSES = [
    ("Draft", "draft"),
    ("Applied", "applied"),
    ("Interview", "interview"),
    ("Offer", "offer"),
    ("Rejected", "rejected"),
]


def _model_for(kind: str) -> Type:
    try:
        return ENTITY_MODELS[kind]
    except KeyError:
        raise ValueError(f"Unknown entity kind: {kind!r}") from None


class RecordStore:
    """Persistence operations consumed by the capture pipeline."""

    def __init__(self, session: Session):
        self.session = session

    @classmethod
    def open(cls, db_path: Path) -> "RecordStore":
        return cls(get_session(db_path))

    def close(self) -> None:
        self.session.close()

    # Entities

    def find_by_normalized_value(self, kind: str, value: str, user_id: str):
        model = _model_for(kind)
        return (
            self.session.query(model)
            .filter_by(value=value, created_by=user_id)
            .one_or_none()
        )

    def create(self, kind: str, label: str, value: str, user_id: str):
        model = _model_for(kind)
        entity = model(label=label, value=value, created_by=user_id)
        self.session.add(entity)
        self.session.commit()
        return entity

    def find_or_create(self, kind: str, label: str, value: str, user_id: str):
        existing = self.find_by_normalized_value(kind, value, user_id)
        if existing is not None:
            return existing
        try:
            return self.create(kind, label, value, user_id)
        except IntegrityError:
            # Another capture created it between our lookup and insert
            self.session.rollback()
            winner = self.find_by_normalized_value(kind, value, user_id)
            if winner is None:
                raise
            logger.debug("Entity created concurrently, reusing it", kind=kind, value=value)
            return winner

    # Reference data

    def get_status(self, value: str) -> Optional[JobStatus]:
        return self.session.query(JobStatus).filter_by(value=value).one_or_none()

    def find_or_create_source(self, value: str, label: str) -> JobSource:
        source = self.session.query(JobSource).filter_by(value=value).one_or_none()
        if source is not None:
            return source
        try:
            source = JobSource(label=label, value=value)
            self.session.add(source)
            self.session.commit()
            return source
        except IntegrityError:
            self.session.rollback()
            return self.session.query(JobSource).filter_by(value=value).one()

    def seed_defaults(self) -> int:
        """Insert the default job statuses that are missing. Returns how many were added."""
        added = 0
        for label, value in DEFAULT_STATUSES:
            if self.get_status(value) is None:
                self.session.add(JobStatus(label=label, value=value))
                added += 1
        self.session.commit()
        return added

    # Jobs

    def query_recent_by_company(
        self, user_id: str, company_id: str, since: datetime, limit: int
    ) -> List[ExistingJobRecordView]:
        jobs = (
            self.session.query(Job)
            .options(joinedload(Job.job_title), joinedload(Job.company))
            .filter(
                Job.user_id == user_id,
                Job.company_id == company_id,
                Job.created_at >= since,
            )
            .order_by(Job.created_at.desc())
            .limit(limit)
            .all()
        )
        return [_to_view(job) for job in jobs]

    def create_job_record(self, **fields) -> Job:
        job = Job(**fields)
        self.session.add(job)
        self.session.commit()
        return job

    def get_job(self, job_id: str) -> Optional[Job]:
        return self.session.get(Job, job_id)

    def list_jobs(self, user_id: str) -> List[Job]:
        return (
            self.session.query(Job)
            .filter_by(user_id=user_id)
            .order_by(Job.created_at.desc())
            .all()
        )


def _to_view(job: Job) -> ExistingJobRecordView:
    return ExistingJobRecordView(
        id=job.id,
        company_id=job.company_id,
        job_title_value=job.job_title.value,
        job_url=job.job_url,
        created_at=job.created_at,
        job_title_label=job.job_title.label,
        company_label=job.company.label,
    )


def job_summary(job: Job) -> dict:
    """Caller-facing summary of a stored job."""
    return {
        "id": job.id,
        "title": job.job_title.label,
        "company": job.company.label,
        "location": job.location.label if job.location else None,
        "jobType": job.job_type,
        "status": job.status.label,
        "source": job.job_source.label if job.job_source else None,
        "createdAt": job.created_at.isoformat(),
        "dueDate": job.due_date.isoformat() if job.due_date else None,
        "jobUrl": job.job_url,
    }
