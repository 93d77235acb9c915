"""
Job extraction from email alerts and newsletters.

Each field is read by an ordered cascade of regular expressions; the first
pattern that matches wins. Provider alerts (LinkedIn, Indeed) have tighter
template parsers, chosen through an ordered source table that ends with the
generic parser.
"""

import re
from typing import Callable, List, NamedTuple, Optional, Sequence
from urllib.parse import urlsplit

from ..config import MAX_COMPANY_NAME_LENGTH, MAX_EMAIL_DESCRIPTION_LENGTH
from ..models import CandidateJobRecord

_HREF = re.compile(r"""href=["']([^"']+)["']""")
_BARE_URL = re.compile(r"""https?://[^\s<>"{}|\\^`\[\]]+""")

_BLOCK_BREAKS = re.compile(r"<br\s*/?>|</p>|</div>|</h\d>", re.IGNORECASE)
_TAGS = re.compile(r"<[^>]*>")
_SENDER_DOMAIN = re.compile(r"@([^.]+)\.")


def _collapse(value: str) -> str:
    return " ".join(value.split())


def _group(match: re.Match) -> Optional[str]:
    return _collapse(match.group(1)) or None


def _group_or_whole(match: re.Match) -> Optional[str]:
    if match.re.groups and match.group(1):
        return match.group(1).strip() or None
    return match.group(0).strip() or None


class FieldPattern(NamedTuple):
    """One step of a field cascade: a pattern and how to read its match."""

    pattern: re.Pattern
    transform: Callable[[re.Match], Optional[str]] = _group


TITLE_PATTERNS: Sequence[FieldPattern] = (
    FieldPattern(re.compile(r"(?:position|role|job title|title|opening):\s*([^\n]+?)(?:\n|$)", re.I)),
    FieldPattern(re.compile(
        r"(?:we're hiring|we are hiring|now hiring)(?:\s+a|\s+an)?\s+([A-Z][^\n]+?)(?:\s+at\s+|$)", re.I
    )),
    FieldPattern(re.compile(r"(?:looking for|seeking)(?:\s+a|\s+an)?\s+([^\n]+?)(?:\n|$)", re.I)),
)

COMPANY_PATTERNS: Sequence[FieldPattern] = (
    FieldPattern(re.compile(r"(?:company|organization|employer):\s*([^\n]+?)(?:\n|$)", re.I)),
    # Case-sensitive: the company name must start with a capital letter
    FieldPattern(re.compile(r"(?:at|@)\s+([A-Z][a-zA-Z\s&]+?)(?:\s+is\s+hiring|\s+hiring|\s+seeks|\s+looking)")),
)

LOCATION_PATTERNS: Sequence[FieldPattern] = (
    FieldPattern(re.compile(r"(?:location|where|city|based in):\s*([^\n]+)", re.I), _group_or_whole),
    FieldPattern(re.compile(r"(?:remote|hybrid|on-site|onsite)", re.I), _group_or_whole),
)

SALARY_PATTERNS: Sequence[FieldPattern] = (
    FieldPattern(re.compile(r"(?:salary|compensation|pay):\s*([^\n]+)", re.I), _group_or_whole),
    FieldPattern(re.compile(r"\$[\d,]+\s*[-–—to]\s*\$[\d,]+", re.I), _group_or_whole),
    FieldPattern(re.compile(r"[\d,]+k?\s*[-–—to]\s*[\d,]+k", re.I), _group_or_whole),
)


def first_match(text: str, patterns: Sequence[FieldPattern]) -> Optional[str]:
    """Run ``patterns`` top to bottom and return the first usable value."""
    for field_pattern in patterns:
        match = field_pattern.pattern.search(text)
        if match:
            value = field_pattern.transform(match)
            if value:
                return value
    return None


def extract_urls(text: str) -> List[str]:
    """URLs from href attributes, then bare http(s) links; first-seen order, no repeats."""
    found = _HREF.findall(text) + _BARE_URL.findall(text)
    return list(dict.fromkeys(found))


def extract_job_title(text: str) -> Optional[str]:
    return first_match(text, TITLE_PATTERNS)


def company_from_sender(from_address: Optional[str]) -> Optional[str]:
    """'jobs@techcorp.com' -> 'Techcorp'."""
    if not from_address:
        return None
    match = _SENDER_DOMAIN.search(from_address)
    if not match:
        return None
    label = match.group(1)
    return label[:1].upper() + label[1:]


def extract_company(text: str, from_address: Optional[str] = None) -> Optional[str]:
    return first_match(text, COMPANY_PATTERNS) or company_from_sender(from_address)


def extract_location(text: str) -> Optional[str]:
    return first_match(text, LOCATION_PATTERNS)


def extract_salary_range(text: str) -> Optional[str]:
    return first_match(text, SALARY_PATTERNS)


def html_to_text(content: str) -> str:
    """Strip tags, turning block-level closes into line breaks, and tidy each line."""
    text = _TAGS.sub("", _BLOCK_BREAKS.sub("\n", content))
    lines = (_collapse(line) for line in text.split("\n"))
    return "\n".join(line for line in lines if line)


def parse_job_from_email(
    body: str,
    subject: Optional[str] = None,
    from_address: Optional[str] = None,
) -> CandidateJobRecord:
    """Generic parser for job emails of unknown origin.

    The subject is parsed together with the body so subject-only signals are
    found; when no title pattern matches, the subject itself is the title.
    """
    full_text = f"{subject}\n\n{body}" if subject else body
    # URLs come from the raw text so href attributes are still present
    urls = extract_urls(full_text)
    plain = html_to_text(full_text)

    return CandidateJobRecord(
        url=urls[0] if urls else None,
        title=extract_job_title(plain) or subject or None,
        company=extract_company(plain, from_address),
        location=extract_location(plain),
        description=body[:MAX_EMAIL_DESCRIPTION_LENGTH] or None,
        salary_range=extract_salary_range(plain),
    )


def _url_for_domain(urls: Sequence[str], domain: str) -> Optional[str]:
    for url in urls:
        try:
            host = urlsplit(url).hostname or ""
        except ValueError:
            continue
        if domain in host:
            return url
    return None


LINKEDIN_DOMAIN = "linkedin.com"
INDEED_DOMAIN = "indeed.com"

_LINKEDIN_TITLE = re.compile(r"(?:Job title|Position):\s*([^\n]+)", re.I)
_LINKEDIN_COMPANY = re.compile(r"(?:Company|Employer):\s*([^\n]+)", re.I)
_LINKEDIN_LOCATION = re.compile(r"Location:\s*([^\n]+)", re.I)

_INDEED_TITLE = re.compile(r"(?:Job Alert|New Job):\s*([^\n]+?)(?:\n|$)", re.I)
_INDEED_COMPANY = re.compile(
    rf"^([A-Z][a-zA-Z\s&]{{1,{MAX_COMPANY_NAME_LENGTH}}}?)\s+is hiring", re.I | re.M
)


def parse_linkedin_job_alert(body: str) -> CandidateJobRecord:
    urls = extract_urls(body)
    return CandidateJobRecord(
        url=_url_for_domain(urls, LINKEDIN_DOMAIN),
        title=first_match(body, [FieldPattern(_LINKEDIN_TITLE)]),
        company=first_match(body, [FieldPattern(_LINKEDIN_COMPANY)]),
        location=first_match(body, [FieldPattern(_LINKEDIN_LOCATION)]),
    )


def parse_indeed_job_alert(body: str) -> CandidateJobRecord:
    urls = extract_urls(body)
    return CandidateJobRecord(
        url=_url_for_domain(urls, INDEED_DOMAIN),
        title=first_match(body, [FieldPattern(_INDEED_TITLE)]),
        company=first_match(body, [FieldPattern(_INDEED_COMPANY)]),
    )


EmailParser = Callable[[str, Optional[str], Optional[str]], CandidateJobRecord]


class EmailSource(NamedTuple):
    """A row of the dispatch table: when it applies and how to parse."""

    name: str
    matches: Callable[[str, Optional[str]], bool]
    parse: EmailParser


def mentions(domain: str) -> Callable[[str, Optional[str]], bool]:
    """Predicate: the sender address or the body contains ``domain``."""
    def predicate(body: str, from_address: Optional[str]) -> bool:
        return domain in (from_address or "") or domain in body
    return predicate


def _always(body: str, from_address: Optional[str]) -> bool:
    return True


EMAIL_SOURCES: Sequence[EmailSource] = (
    EmailSource("linkedin", mentions(LINKEDIN_DOMAIN), lambda body, subject, sender: parse_linkedin_job_alert(body)),
    EmailSource("indeed", mentions(INDEED_DOMAIN), lambda body, subject, sender: parse_indeed_job_alert(body)),
    EmailSource("generic", _always, parse_job_from_email),
)


def detect_email_source(
    body: str,
    from_address: Optional[str] = None,
    sources: Sequence[EmailSource] = EMAIL_SOURCES,
) -> EmailSource:
    for source in sources:
        if source.matches(body, from_address):
            return source
    raise LookupError("Email source table has no default entry")


def parse_job_email_auto(
    body: str,
    subject: Optional[str] = None,
    from_address: Optional[str] = None,
) -> CandidateJobRecord:
    source = detect_email_source(body, from_address)
    return source.parse(body, subject, from_address)
