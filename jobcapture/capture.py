"""
Capture orchestration.

Every capture request runs the same stages:

    RECEIVED -> PARSE -> NORMALIZE -> RESOLVE_ENTITIES -> CHECK_DUPLICATE
             -> DUPLICATE_FOUND | CREATED

PARSE only happens for raw inputs (a URL to scrape, an email to read).
NORMALIZE fills placeholders for missing fields and computes comparison
keys. RESOLVE_ENTITIES finds or creates the company, title and location.
CHECK_DUPLICATE looks for the posting among the user's recent jobs at the
same company; a match stops the request without writing a job. Titles are
compared as captured, so a placeholder title never matches by title.

Entry points return a ``CaptureResponse`` carrying an HTTP-style status:
201 created, 200 duplicate, 400 invalid input, 401 unauthenticated, 500
configuration or server error.
"""

import functools
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Dict, List, Optional

from sqlalchemy.exc import SQLAlchemyError

from .config import (
    CAPTURE_DUE_DATE_DAYS,
    DEFAULT_JOB_STATUS,
    DEFAULT_JOB_TYPE,
    DEFAULT_LOCATION,
    UNKNOWN_COMPANY,
    UNKNOWN_TITLE,
    Settings,
    get_settings,
)
from .database import Job
from .dedup import find_duplicate, iter_duplicates
from .exceptions import AuthenticationError, CaptureError, ConfigurationError, ValidationError
from .extractors.email import parse_job_email_auto
from .extractors.html import scrape_job_from_url
from .logger import get_logger
from .models import CandidateJobRecord, DuplicateMatch
from .normalize import normalize_job_title, normalize_text, normalize_url
from .schema import (
    parse_import_payload,
    validate_email_ingest,
    validate_extension_capture,
    validate_url_capture,
)
from .storage import RecordStore, job_summary

logger = get_logger()


class CaptureStage(Enum):
    RECEIVED = "received"
    PARSE = "parse"
    NORMALIZE = "normalize"
    RESOLVE_ENTITIES = "resolve_entities"
    CHECK_DUPLICATE = "check_duplicate"
    DUPLICATE_FOUND = "duplicate_found"
    CREATED = "created"


@dataclass(frozen=True)
class CaptureProfile:
    """Per entry point defaults applied when a job is created."""

    entry_point: str
    source_value: str
    source_label: str
    job_type: str = DEFAULT_JOB_TYPE
    due_in_days: Optional[int] = None
    location_fallback: Optional[str] = None
    description_fallback: Optional[str] = None  # formatted with the candidate url


URL_CAPTURE = CaptureProfile(
    "url",
    "browser-extension",
    "Browser Extension",
    due_in_days=CAPTURE_DUE_DATE_DAYS,
    location_fallback=DEFAULT_LOCATION,
    description_fallback="Job captured from: {url}",
)
EXTENSION_CAPTURE = CaptureProfile("extension", "browser-extension", "Browser Extension")
EMAIL_CAPTURE = CaptureProfile("email", "email", "Email Alert")
IMPORT_CAPTURE = CaptureProfile("import", "json-import", "JSON Import")


@dataclass
class NormalizedCandidate:
    """Candidate with placeholders applied and its comparison keys."""

    candidate: CandidateJobRecord
    title_value: str
    match_title: str
    company_value: str
    location_value: Optional[str]
    normalized_url: str


@dataclass
class CaptureOutcome:
    stage: CaptureStage
    candidate: CandidateJobRecord
    job: Optional[Job] = None
    match: Optional[DuplicateMatch] = None

    @property
    def is_duplicate(self) -> bool:
        return self.stage is CaptureStage.DUPLICATE_FOUND


@dataclass
class CaptureResponse:
    status_code: int
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return self.status_code < 400


def _label(value: str) -> str:
    return " ".join(value.split())


def _source_label(value: str) -> str:
    return value.replace("-", " ").replace("_", " ").title()


class CapturePipeline:
    """Runs NORMALIZE through CREATED for one acting user against a record store."""

    def __init__(self, store: RecordStore, settings: Optional[Settings] = None):
        self.store = store
        self.settings = settings or get_settings()

    def normalize(self, candidate: CandidateJobRecord, profile: CaptureProfile) -> NormalizedCandidate:
        description = None
        if profile.description_fallback:
            description = profile.description_fallback.format(url=candidate.url or "")
        filled = candidate.with_defaults(
            title=UNKNOWN_TITLE,
            company=UNKNOWN_COMPANY,
            location=profile.location_fallback,
            description=description,
        )
        filled.title = _label(filled.title)
        filled.company = _label(filled.company)
        if filled.location:
            filled.location = _label(filled.location)
        return NormalizedCandidate(
            candidate=filled,
            title_value=normalize_job_title(filled.title),
            match_title=normalize_job_title(candidate.title),
            company_value=normalize_text(filled.company),
            location_value=normalize_text(filled.location) if filled.location else None,
            normalized_url=normalize_url(filled.url),
        )

    def run(
        self,
        candidate: CandidateJobRecord,
        user_id: str,
        profile: CaptureProfile,
        job_type: Optional[str] = None,
        source_value: Optional[str] = None,
        status_value: str = DEFAULT_JOB_STATUS,
    ) -> CaptureOutcome:
        try:
            return self._run(candidate, user_id, profile, job_type, source_value, status_value)
        except SQLAlchemyError:
            self.store.session.rollback()
            raise

    def _run(self, candidate, user_id, profile, job_type, source_value, status_value) -> CaptureOutcome:
        logger.debug("Capture stage", stage=CaptureStage.NORMALIZE.value, entry_point=profile.entry_point)
        normalized = self.normalize(candidate, profile)
        filled = normalized.candidate

        logger.debug("Capture stage", stage=CaptureStage.RESOLVE_ENTITIES.value)
        status = self.store.get_status(status_value)
        if status is None:
            if status_value == DEFAULT_JOB_STATUS:
                raise ConfigurationError("Default status not found. Please seed the database.")
            raise ValidationError("Unknown status", {"status": [f"Unknown job status: {status_value}"]})

        company = self.store.find_or_create("company", filled.company, normalized.company_value, user_id)
        title = self.store.find_or_create("title", filled.title, normalized.title_value, user_id)
        location = None
        if normalized.location_value:
            location = self.store.find_or_create("location", filled.location, normalized.location_value, user_id)

        logger.debug("Capture stage", stage=CaptureStage.CHECK_DUPLICATE.value, company_id=company.id)
        match = find_duplicate(
            company.id,
            normalized.match_title,
            normalized.normalized_url or None,
            self.store,
            user_id=user_id,
            window_days=self.settings.duplicate_window_days,
            max_records=self.settings.duplicate_max_records,
            threshold=self.settings.title_threshold,
        )
        if match is not None:
            logger.record_duplicate(match.reason.value)
            logger.info(
                "Duplicate job detected",
                entry_point=profile.entry_point,
                existing_job_id=match.matched_id,
                reason=match.reason.value,
            )
            return CaptureOutcome(CaptureStage.DUPLICATE_FOUND, filled, match=match)

        source_value = source_value or profile.source_value
        source_label = profile.source_label if source_value == profile.source_value else _source_label(source_value)
        source = self.store.find_or_create_source(source_value, source_label)
        due_date = None
        if profile.due_in_days is not None:
            due_date = datetime.now() + timedelta(days=profile.due_in_days)

        job = self.store.create_job_record(
            user_id=user_id,
            company_id=company.id,
            job_title_id=title.id,
            location_id=location.id if location else None,
            status_id=status.id,
            job_source_id=source.id,
            job_type=job_type or profile.job_type,
            job_url=filled.url or None,
            description=filled.description or "",
            salary_range=filled.salary_range,
            applied=False,
            due_date=due_date,
        )
        logger.record_created()
        logger.info(
            "Job captured",
            entry_point=profile.entry_point,
            job_id=job.id,
            company=filled.company,
            title=filled.title,
        )
        return CaptureOutcome(CaptureStage.CREATED, filled, job=job)


def _require_user(user_id: Optional[str]) -> str:
    if not user_id:
        raise AuthenticationError()
    return user_id


def _api_error_body(error: CaptureError) -> dict:
    return error.to_dict()


def _url_error_body(error: CaptureError) -> dict:
    body = {"success": False, "message": error.message}
    if isinstance(error, ValidationError):
        body["errors"] = error.field_errors
    return body


def entry_point(name: str, error_body: Callable[[CaptureError], dict] = _api_error_body):
    """Count the request and turn raised errors into responses."""
    def decorator(func: Callable[..., CaptureResponse]) -> Callable[..., CaptureResponse]:
        @functools.wraps(func)
        def wrapper(*args, **kwargs) -> CaptureResponse:
            logger.record_capture(name)
            logger.debug("Capture stage", stage=CaptureStage.RECEIVED.value, entry_point=name)
            try:
                return func(*args, **kwargs)
            except CaptureError as e:
                logger.record_error(type(e).__name__)
                log = logger.error if e.http_status >= 500 else logger.warning
                log("Capture rejected", entry_point=name, status=e.http_status, error=e.message)
                return CaptureResponse(e.http_status, error_body(e))
            except Exception as e:
                logger.record_error(type(e).__name__)
                logger.error("Capture failed", entry_point=name, error_type=type(e).__name__, error=str(e))
                return CaptureResponse(500, error_body(CaptureError("Failed to capture job")))
        return wrapper
    return decorator


@entry_point("url", error_body=_url_error_body)
def capture_from_url(
    data: Dict[str, Any],
    user_id: Optional[str],
    store: RecordStore,
    settings: Optional[Settings] = None,
    scraper: Callable[..., CandidateJobRecord] = scrape_job_from_url,
) -> CaptureResponse:
    """Capture from ``{url, scrapedData?}``, scraping the page when no data is supplied."""
    user_id = _require_user(user_id)
    errors = validate_url_capture(data)
    if errors:
        raise ValidationError("Invalid input", errors)
    settings = settings or get_settings()

    url = data["url"].strip()
    if data.get("scrapedData") is not None:
        candidate = CandidateJobRecord.from_dict(data["scrapedData"])
    else:
        logger.debug("Capture stage", stage=CaptureStage.PARSE.value, url=url)
        candidate = scraper(url, settings=settings)
    candidate.url = url

    outcome = CapturePipeline(store, settings).run(candidate, user_id, URL_CAPTURE)
    if outcome.is_duplicate:
        return CaptureResponse(200, {
            "success": False,
            "message": "Job already exists in your list",
            "isDuplicate": True,
            "existingJobId": outcome.match.matched_id,
            "reason": outcome.match.reason.value,
        })
    return CaptureResponse(201, {
        "success": True,
        "message": "Job captured successfully",
        "jobId": outcome.job.id,
    })


def _structured_response(outcome: CaptureOutcome, created_message: str, duplicate_message: str, extra: dict) -> CaptureResponse:
    if outcome.is_duplicate:
        return CaptureResponse(200, {
            "message": duplicate_message,
            "duplicate": True,
            "existingJobId": outcome.match.matched_id,
            "reason": outcome.match.reason.value,
            "job": outcome.match.record.summary(),
            **extra,
        })
    return CaptureResponse(201, {
        "message": created_message,
        "duplicate": False,
        "job": job_summary(outcome.job),
        **extra,
    })


@entry_point("extension")
def capture_from_extension(
    data: Dict[str, Any],
    user_id: Optional[str],
    store: RecordStore,
    settings: Optional[Settings] = None,
) -> CaptureResponse:
    """Capture structured fields sent by the browser extension."""
    user_id = _require_user(user_id)
    errors = validate_extension_capture(data)
    if errors:
        raise ValidationError("Invalid input", errors)

    candidate = CandidateJobRecord(
        url=(data.get("jobUrl") or "").strip() or None,
        title=data["jobTitle"],
        company=data["company"],
        location=data.get("location") or None,
        description=data.get("description") or None,
        salary_range=data.get("salaryRange") or None,
    )
    outcome = CapturePipeline(store, settings).run(
        candidate,
        user_id,
        EXTENSION_CAPTURE,
        job_type=data.get("jobType") or None,
        source_value=data.get("source") or None,
    )
    return _structured_response(outcome, "Job captured successfully", "Duplicate job detected", {})


@entry_point("email")
def capture_from_email(
    data: Dict[str, Any],
    user_id: Optional[str],
    store: RecordStore,
    settings: Optional[Settings] = None,
) -> CaptureResponse:
    """Parse a job alert email and capture the job it describes."""
    user_id = _require_user(user_id)
    errors = validate_email_ingest(data)
    if errors:
        raise ValidationError("Invalid email data", errors)

    logger.debug("Capture stage", stage=CaptureStage.PARSE.value, sender=data.get("fromAddress"))
    candidate = parse_job_email_auto(data["emailBody"], data.get("emailSubject"), data.get("fromAddress"))
    parsed = candidate.to_dict()
    if not candidate.title:
        logger.warning("No job title found in email", sender=data.get("fromAddress"))
        return CaptureResponse(400, {
            "error": "Unable to extract job information",
            "message": "Could not extract job title from email content",
            "parsedData": parsed,
        })

    outcome = CapturePipeline(store, settings).run(candidate, user_id, EMAIL_CAPTURE)
    return _structured_response(
        outcome,
        "Job ingested successfully from email",
        "Duplicate job detected from email",
        {"parsedData": parsed},
    )


@entry_point("import")
def import_job_json(
    payload: str,
    user_id: Optional[str],
    store: RecordStore,
    settings: Optional[Settings] = None,
) -> CaptureResponse:
    """Capture a job described by a JSON document (``title`` and ``company`` required)."""
    user_id = _require_user(user_id)
    data = parse_import_payload(payload)
    candidate = CandidateJobRecord(
        url=(data.get("jobUrl") or "").strip() or None,
        title=data["title"],
        company=data["company"],
        location=data.get("location") or None,
        description=data.get("description") or None,
        salary_range=data.get("salaryRange") or None,
    )
    outcome = CapturePipeline(store, settings).run(
        candidate,
        user_id,
        IMPORT_CAPTURE,
        job_type=data.get("jobType") or None,
        source_value=data.get("source") or None,
        status_value=data.get("status") or DEFAULT_JOB_STATUS,
    )
    return _structured_response(outcome, "Job imported successfully", "Duplicate job detected", {})


@entry_point("preview")
def preview_capture(
    url: str,
    user_id: Optional[str],
    settings: Optional[Settings] = None,
    scraper: Callable[..., CandidateJobRecord] = scrape_job_from_url,
) -> CaptureResponse:
    """Scrape a URL and return what would be captured, without writing anything."""
    _require_user(user_id)
    errors = validate_url_capture({"url": url})
    if errors:
        raise ValidationError("Invalid URL format", errors)
    candidate = scraper(url.strip(), settings=settings or get_settings())
    return CaptureResponse(200, candidate.to_dict())


@entry_point("check")
def check_duplicate(
    company: str,
    title: str,
    url: Optional[str],
    user_id: Optional[str],
    store: RecordStore,
    settings: Optional[Settings] = None,
) -> CaptureResponse:
    """List every job in the candidate window the given posting would duplicate. Read-only."""
    user_id = _require_user(user_id)
    settings = settings or get_settings()
    existing_company = store.find_by_normalized_value("company", normalize_text(company), user_id)
    matches: List[DuplicateMatch] = []
    if existing_company is not None:
        matches = list(iter_duplicates(
            existing_company.id,
            normalize_job_title(title),
            url,
            store,
            user_id=user_id,
            window_days=settings.duplicate_window_days,
            max_records=settings.duplicate_max_records,
            threshold=settings.title_threshold,
        ))
    return CaptureResponse(200, {
        "duplicates": [{**m.record.summary(), "reason": m.reason.value} for m in matches],
    })
