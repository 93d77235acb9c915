"""
Database schema and connection management.

Uses SQLite with SQLAlchemy for the record store: per-user companies, job
titles and locations (unique by normalized value), shared job sources and
statuses, and the jobs themselves.
"""

import uuid
from datetime import datetime
from pathlib import Path

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    String,
    Text,
    UniqueConstraint,
    create_engine,
)
from sqlalchemy.orm import declarative_base, relationship, sessionmaker

Base = declarative_base()


def _new_id() -> str:
    return uuid.uuid4().hex


class Company(Base):
    __tablename__ = "companies"
    __table_args__ = (UniqueConstraint("value", "created_by", name="uq_company_value_user"),)

    id = Column(String, primary_key=True, default=_new_id)
    label = Column(String, nullable=False)
    value = Column(String, nullable=False)  # normalize_text(label)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class JobTitle(Base):
    __tablename__ = "job_titles"
    __table_args__ = (UniqueConstraint("value", "created_by", name="uq_job_title_value_user"),)

    id = Column(String, primary_key=True, default=_new_id)
    label = Column(String, nullable=False)
    value = Column(String, nullable=False)  # normalize_job_title(label)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class Location(Base):
    __tablename__ = "locations"
    __table_args__ = (UniqueConstraint("value", "created_by", name="uq_location_value_user"),)

    id = Column(String, primary_key=True, default=_new_id)
    label = Column(String, nullable=False)
    value = Column(String, nullable=False)
    created_by = Column(String, nullable=False)
    created_at = Column(DateTime, nullable=False, default=datetime.now)


class JobSource(Base):
    """Where a job came from: browser-extension, email, ..."""

    __tablename__ = "job_sources"

    id = Column(String, primary_key=True, default=_new_id)
    label = Column(String, nullable=False)
    value = Column(String, nullable=False, unique=True)


class JobStatus(Base):
    __tablename__ = "job_statuses"

    id = Column(String, primary_key=True, default=_new_id)
    label = Column(String, nullable=False)
    value = Column(String, nullable=False, unique=True)


class Job(Base):
    """A tracked job posting."""

    __tablename__ = "jobs"

    id = Column(String, primary_key=True, default=_new_id)
    user_id = Column(String, nullable=False, index=True)
    company_id = Column(String, ForeignKey("companies.id"), nullable=False, index=True)
    job_title_id = Column(String, ForeignKey("job_titles.id"), nullable=False)
    location_id = Column(String, ForeignKey("locations.id"), nullable=True)
    status_id = Column(String, ForeignKey("job_statuses.id"), nullable=False)
    job_source_id = Column(String, ForeignKey("job_sources.id"), nullable=True)
    job_type = Column(String, nullable=False, default="FT")
    job_url = Column(String, nullable=True)
    description = Column(Text, nullable=False, default="")
    salary_range = Column(String, nullable=True)
    applied = Column(Boolean, nullable=False, default=False)
    due_date = Column(DateTime, nullable=True)
    created_at = Column(DateTime, nullable=False, default=datetime.now, index=True)

    company = relationship(Company)
    job_title = relationship(JobTitle)
    location = relationship(Location)
    status = relationship(JobStatus)
    job_source = relationship(JobSource)


def get_engine(db_path: Path):
    return create_engine(f"sqlite:///{db_path}")


def init_database(db_path: Path) -> None:
    """
    Initialize database and create tables.

    Args:
        db_path: Path to SQLite database file
    """
    db_path.parent.mkdir(parents=True, exist_ok=True)
    Base.metadata.create_all(get_engine(db_path))


def get_session(db_path: Path):
    """
    Get database session.

    Args:
        db_path: Path to SQLite database file

    Returns:
        SQLAlchemy session
    """
    Session = sessionmaker(bind=get_engine(db_path))
    return Session()
