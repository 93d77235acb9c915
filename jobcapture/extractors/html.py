"""
Job metadata extraction from HTML pages.

Three strategies run over the same document and are merged field by field
with priority structured data (JSON-LD) > OpenGraph > basic metadata. Each
strategy is best-effort: missing or malformed markup yields fewer fields,
never an exception.
"""

import json
from typing import Any, Callable, Dict, Iterable, List, NamedTuple, Optional, Sequence, Union

import requests
from bs4 import BeautifulSoup

from ..config import Settings, get_settings
from ..exceptions import ParseError
from ..logger import get_logger
from ..models import CANDIDATE_FIELDS, CandidateJobRecord
from ..retry import RetryableStatusError, RetryError, exponential_backoff, should_retry_http_status

logger = get_logger()

Fields = Dict[str, str]
Markup = Union[str, BeautifulSoup]


class JsonLdBlock(NamedTuple):
    """Outcome of parsing one embedded JSON-LD script."""

    postings: List[Fields]
    error: Optional[ParseError] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _soup(markup: Markup) -> BeautifulSoup:
    if isinstance(markup, BeautifulSoup):
        return markup
    return BeautifulSoup(markup or "", "html.parser")


def _text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _first(value: Any) -> Any:
    if isinstance(value, list):
        return value[0] if value else None
    return value


def _is_job_posting(item: Any) -> bool:
    if not isinstance(item, dict):
        return False
    kind = item.get("@type")
    if isinstance(kind, list):
        return "JobPosting" in kind
    return kind == "JobPosting"


def _format_salary(base_salary: Any) -> Optional[str]:
    if not isinstance(base_salary, dict):
        return _text(base_salary)
    value = base_salary.get("value")
    currency = _text(base_salary.get("currency"))
    if isinstance(value, dict):
        low = _text(value.get("minValue"))
        high = _text(value.get("maxValue"))
        amount = " - ".join(v for v in (low, high) if v) or _text(value.get("value"))
        unit = _text(value.get("unitText"))
        if amount and unit:
            amount = f"{amount} per {unit.lower()}"
    else:
        amount = _text(value)
    if amount and currency:
        return f"{currency} {amount}"
    return amount


def _posting_fields(item: Dict[str, Any], include_country: bool) -> Fields:
    fields: Fields = {}
    title = _text(item.get("title"))
    if title:
        fields["title"] = title
    description = _text(item.get("description"))
    if description:
        fields["description"] = description

    org = _first(item.get("hiringOrganization"))
    if isinstance(org, dict):
        name = _text(org.get("name"))
        logo = org.get("logo")
        logo = _text(logo.get("url")) if isinstance(logo, dict) else _text(logo)
        if name:
            fields["company"] = name
        if logo:
            fields["logo_url"] = logo
    elif _text(org):
        fields["company"] = _text(org)

    place = _first(item.get("jobLocation"))
    address = place.get("address") if isinstance(place, dict) else None
    if isinstance(address, dict):
        keys = ["addressLocality", "addressRegion"]
        if include_country:
            keys.append("addressCountry")
        parts = []
        for key in keys:
            part = address.get(key)
            part = _text(part.get("name")) if isinstance(part, dict) else _text(part)
            if part:
                parts.append(part)
        if parts:
            fields["location"] = ", ".join(parts)

    salary = _format_salary(item.get("baseSalary"))
    if salary:
        fields["salary_range"] = salary
    return fields


def _iter_items(parsed: Any) -> Iterable[Any]:
    items = parsed if isinstance(parsed, list) else [parsed]
    for item in items:
        if isinstance(item, dict) and isinstance(item.get("@graph"), list):
            yield from item["@graph"]
        else:
            yield item


def parse_json_ld_block(content: str, include_country: bool = False) -> JsonLdBlock:
    """Parse one JSON-LD script body into the JobPosting field sets it contains."""
    try:
        parsed = json.loads(content)
    except (json.JSONDecodeError, TypeError) as e:
        return JsonLdBlock([], ParseError(f"Invalid JSON-LD: {e}", snippet=content))
    postings = [
        _posting_fields(item, include_country)
        for item in _iter_items(parsed)
        if _is_job_posting(item)
    ]
    return JsonLdBlock(postings)


def extract_structured_data(markup: Markup, include_country: bool = False) -> Fields:
    """Fields from the first JSON-LD JobPosting that has a title.

    Blocks that fail to parse are skipped. If no posting carries a title, the
    postings found are merged in document order.
    """
    soup = _soup(markup)
    postings: List[Fields] = []
    for script in soup.find_all("script", attrs={"type": "application/ld+json"}):
        content = script.string if script.string is not None else script.get_text()
        block = parse_json_ld_block(content, include_country=include_country)
        if not block.ok:
            logger.debug("Skipping malformed JSON-LD block", error=block.error.message)
            continue
        for posting in block.postings:
            if posting.get("title"):
                return posting
            postings.append(posting)
    return merge_by_priority(postings)


def _meta_content(soup: BeautifulSoup, **attrs: str) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    return _text(tag.get("content")) if tag else None


OPEN_GRAPH_FIELDS = {
    "og:title": "title",
    "og:description": "description",
    "og:image": "logo_url",
    "og:site_name": "company",
}


def extract_open_graph(markup: Markup) -> Fields:
    soup = _soup(markup)
    fields: Fields = {}
    for prop, name in OPEN_GRAPH_FIELDS.items():
        value = _meta_content(soup, property=prop)
        if value:
            fields[name] = value
    return fields


def extract_basic_metadata(markup: Markup) -> Fields:
    soup = _soup(markup)
    fields: Fields = {}
    if soup.title and soup.title.get_text(strip=True):
        fields["title"] = soup.title.get_text(strip=True)
    description = _meta_content(soup, name="description")
    if description:
        fields["description"] = description
    return fields


# Common job-board selectors, most specific first
SELECTORS: Dict[str, Sequence[str]] = {
    "title": (
        "h1.job-title",
        "h1.jobTitle",
        'h1[data-automation="job-title"]',
        ".job-title h1",
        '[class*="job-title"]',
        '[class*="JobTitle"]',
        "h1",
    ),
    "company": (
        '[data-automation="company-name"]',
        ".company-name",
        ".companyName",
        '[class*="company-name"]',
        '[class*="CompanyName"]',
        '[class*="employer"]',
    ),
    "location": (
        '[data-automation="location"]',
        ".location",
        '[class*="location"]',
        '[class*="Location"]',
    ),
    "description": (
        '[data-automation="job-description"]',
        ".job-description",
        '[class*="job-description"]',
        '[class*="JobDescription"]',
        '[id*="job-description"]',
    ),
}


def extract_from_selectors(markup: Markup) -> Fields:
    """Visible-text heuristics used when a page has no usable structured data."""
    soup = _soup(markup)
    fields: Fields = {}
    for name, selectors in SELECTORS.items():
        for selector in selectors:
            el = soup.select_one(selector)
            if el and el.get_text(strip=True):
                fields[name] = el.get_text(" ", strip=True)
                break
    return fields


def merge_by_priority(layers: Sequence[Fields]) -> Fields:
    """Per field, take the value from the first layer that has a non-empty one.

    ``layers`` is ordered highest priority first. A later layer fills only
    the fields earlier layers left empty.
    """
    merged: Fields = {}
    for name in CANDIDATE_FIELDS:
        for layer in layers:
            value = layer.get(name)
            if value:
                merged[name] = value
                break
    return merged


Strategy = Callable[[Markup], Fields]

HTML_STRATEGIES: Sequence[Strategy] = (
    extract_structured_data,
    extract_open_graph,
    extract_basic_metadata,
)


def parse_job_from_html(html: str, url: str) -> CandidateJobRecord:
    """Build a candidate from an HTML document. ``url`` is attached verbatim."""
    soup = _soup(html)
    merged = merge_by_priority([strategy(soup) for strategy in HTML_STRATEGIES])
    return CandidateJobRecord(url=url, **merged)


def parse_job_from_page(html: str, url: str) -> CandidateJobRecord:
    """Extraction profile of the browser extension.

    Structured data includes the address country and, when it yields a
    title, is used on its own. Otherwise page selectors and OpenGraph fill
    the gaps, in that order.
    """
    soup = _soup(html)
    structured = extract_structured_data(soup, include_country=True)
    if structured.get("title"):
        return CandidateJobRecord(url=url, **structured)
    opengraph = extract_open_graph(soup)
    opengraph.pop("logo_url", None)
    merged = merge_by_priority([structured, extract_from_selectors(soup), opengraph])
    return CandidateJobRecord(url=url, **merged)


def _build_fetcher(settings: Settings) -> Callable[[str], requests.Response]:
    def log_retry(attempt, exc, delay):
        logger.debug("Retrying page fetch", attempt=attempt, error=str(exc), delay=delay)

    @exponential_backoff(
        max_retries=settings.max_retries,
        base_delay=settings.retry_base_delay,
        on_retry=log_retry,
    )
    def fetch(url: str) -> requests.Response:
        resp = requests.get(
            url,
            headers={"User-Agent": settings.user_agent},
            timeout=settings.request_timeout,
        )
        if should_retry_http_status(resp.status_code):
            raise RetryableStatusError(resp.status_code, url)
        return resp

    return fetch


def scrape_job_from_url(url: str, settings: Optional[Settings] = None) -> CandidateJobRecord:
    """Fetch a job page and extract a candidate from it.

    Never raises: on timeout, connection failure, non-2xx status or exhausted
    retries the result carries only ``url``.
    """
    settings = settings or get_settings()
    fetch = _build_fetcher(settings)
    logger.record_scrape_attempt()
    try:
        resp = fetch(url)
        resp.raise_for_status()
    except RetryError as e:
        cause = e.__cause__
        status = cause.status_code if isinstance(cause, RetryableStatusError) else None
        logger.record_scrape_failure(type(cause).__name__ if cause else "RetryError")
        logger.warning("Page fetch failed after retries", url=url, attempts=e.attempts, status=status)
        return CandidateJobRecord(url=url)
    except requests.exceptions.HTTPError as e:
        status = e.response.status_code if e.response is not None else None
        logger.record_scrape_failure(f"HTTPError_{status}")
        logger.warning("Page fetch returned an error status", url=url, status=status)
        return CandidateJobRecord(url=url)
    except requests.exceptions.RequestException as e:
        logger.record_scrape_failure(type(e).__name__)
        logger.warning("Page fetch failed", url=url, error=str(e))
        return CandidateJobRecord(url=url)

    candidate = parse_job_from_html(resp.text, url)
    logger.debug("Scraped job page", url=url, fields=sorted(candidate.to_dict()))
    return candidate
