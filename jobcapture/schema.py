import json
import re
from typing import Any, Dict, List
from urllib.parse import urlparse

from .exceptions import ValidationError

FieldErrors = Dict[str, List[str]]

EXTENSION_REQUIRED_FIELDS = ["jobTitle", "company"]
EXTENSION_OPTIONAL_FIELDS = [
    "jobUrl",
    "location",
    "jobType",
    "description",
    "salaryRange",
    "source",
]

SCRAPED_DATA_FIELDS = [
    "title",
    "company",
    "location",
    "description",
    "logoUrl",
    "salaryRange",
]

IMPORT_REQUIRED_FIELDS = ["title", "company"]
IMPORT_OPTIONAL_FIELDS = [
    "location",
    "jobUrl",
    "description",
    "salaryRange",
    "jobType",
    "source",
    "status",
]

_EMAIL = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")


def _is_non_empty_str(v: Any) -> bool:
    return isinstance(v, str) and v.strip() != ""


def _valid_url(v: str) -> bool:
    try:
        p = urlparse(v)
        return bool(p.scheme in ("http", "https") and p.netloc)
    except ValueError:
        return False


def _add(errors: FieldErrors, field: str, message: str) -> None:
    errors.setdefault(field, []).append(message)


def _check_required(data: Dict[str, Any], fields: List[str], errors: FieldErrors) -> None:
    for f in fields:
        if f not in data:
            _add(errors, f, f"Missing required field: {f}")
        elif not _is_non_empty_str(data[f]):
            _add(errors, f, f"Field '{f}' must be a non-empty string")


def _check_optional(data: Dict[str, Any], fields: List[str], errors: FieldErrors) -> None:
    for f in fields:
        if data.get(f) is not None and not isinstance(data[f], str):
            _add(errors, f, f"Field '{f}' must be a string if provided")


def _check_url(data: Dict[str, Any], field: str, errors: FieldErrors) -> None:
    value = data.get(field)
    if isinstance(value, str) and value.strip() and not _valid_url(value.strip()):
        _add(errors, field, f"Field '{field}' must be a valid absolute URL (scheme + host)")


def validate_url_capture(data: Dict[str, Any]) -> FieldErrors:
    """Validate ``{url, scrapedData?}``. Empty dict means valid."""
    if not isinstance(data, dict):
        return {"payload": ["Expected a JSON object"]}
    errors: FieldErrors = {}
    if not _is_non_empty_str(data.get("url")):
        _add(errors, "url", "Missing required field: url")
    else:
        _check_url(data, "url", errors)

    scraped = data.get("scrapedData")
    if scraped is not None:
        if not isinstance(scraped, dict):
            _add(errors, "scrapedData", "Field 'scrapedData' must be an object if provided")
        else:
            if not isinstance(scraped.get("url"), str):
                _add(errors, "scrapedData.url", "Field 'scrapedData.url' must be a string")
            for f in SCRAPED_DATA_FIELDS:
                if scraped.get(f) is not None and not isinstance(scraped[f], str):
                    _add(errors, f"scrapedData.{f}", f"Field 'scrapedData.{f}' must be a string if provided")
    return errors


def validate_extension_capture(data: Dict[str, Any]) -> FieldErrors:
    """Validate a structured capture from the browser extension."""
    if not isinstance(data, dict):
        return {"payload": ["Expected a JSON object"]}
    errors: FieldErrors = {}
    _check_required(data, EXTENSION_REQUIRED_FIELDS, errors)
    _check_optional(data, EXTENSION_OPTIONAL_FIELDS, errors)
    _check_url(data, "jobUrl", errors)
    return errors


def validate_email_ingest(data: Dict[str, Any]) -> FieldErrors:
    if not isinstance(data, dict):
        return {"payload": ["Expected a JSON object"]}
    errors: FieldErrors = {}
    _check_required(data, ["emailBody"], errors)
    _check_optional(data, ["emailSubject", "fromAddress"], errors)
    sender = data.get("fromAddress")
    if isinstance(sender, str) and sender and not _EMAIL.match(sender.strip()):
        _add(errors, "fromAddress", "Field 'fromAddress' must be an email address")
    return errors


def validate_import(data: Dict[str, Any]) -> FieldErrors:
    if not isinstance(data, dict):
        return {"payload": ["Expected a JSON object"]}
    errors: FieldErrors = {}
    _check_required(data, IMPORT_REQUIRED_FIELDS, errors)
    _check_optional(data, IMPORT_OPTIONAL_FIELDS, errors)
    _check_url(data, "jobUrl", errors)
    return errors


def parse_import_payload(payload: str) -> Dict[str, Any]:
    """
    Decode and validate a JSON job import.

    Raises:
        ValidationError: The text is not JSON, not an object, or misses required fields
    """
    try:
        data = json.loads(payload)
    except json.JSONDecodeError as e:
        raise ValidationError("Invalid JSON", {"payload": [f"Invalid JSON: {e.msg} (line {e.lineno})"]}) from e
    if not isinstance(data, dict):
        raise ValidationError("Invalid JSON", {"payload": ["Expected a JSON object"]})
    errors = validate_import(data)
    if errors:
        raise ValidationError("Validation failed", errors)
    return data
