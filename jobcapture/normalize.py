from typing import Optional
from urllib.parse import parse_qsl, urlencode, urlsplit

TRACKING_PARAMS = {
    "utm_source",
    "utm_medium",
    "utm_campaign",
    "utm_content",
    "utm_term",
    "ref",
    "source",
}


def _strip_trailing_parenthetical(s: str) -> str:
    """Remove one trailing "(...)" clause, nested parentheses included."""
    if not s.endswith(")"):
        return s
    depth = 0
    for i in range(len(s) - 1, -1, -1):
        if s[i] == ")":
            depth += 1
        elif s[i] == "(":
            depth -= 1
            if depth == 0:
                # Only a clause separated from the title by whitespace
                if i > 0 and s[i - 1].isspace():
                    return s[:i].rstrip()
                return s
    return s


def normalize_text(s: Optional[str]) -> str:
    if not s:
        return ""
    return " ".join(s.strip().lower().split())


def normalize_job_title(title: Optional[str]) -> str:
    """Lowercase, collapse whitespace and drop trailing parentheticals.

    "Software Engineer (Remote)" -> "software engineer". Parentheses in the
    middle of a title are kept. Stripping repeats until the title no longer
    ends in a parenthetical so the result is stable under re-normalization.
    """
    normalized = normalize_text(title)
    while True:
        stripped = _strip_trailing_parenthetical(normalized)
        if stripped == normalized:
            return normalized
        normalized = stripped


def normalize_url(url: Optional[str]) -> str:
    """Canonical comparison form of a job URL.

    Drops scheme, a leading ``www.``, tracking query parameters, the fragment
    and every trailing slash, then lowercases. Input that is not an absolute
    URL falls back to ``url.strip().lower()``.
    """
    if not url:
        return ""
    raw = url.strip()
    try:
        parts = urlsplit(raw)
        host = parts.hostname
    except ValueError:
        return raw.lower()
    if not parts.scheme or not parts.netloc or not host:
        return raw.lower()

    if host.startswith("www."):
        host = host[4:]
    normalized = (host + parts.path).rstrip("/")

    kept = [
        (k, v)
        for k, v in parse_qsl(parts.query, keep_blank_values=True)
        if k not in TRACKING_PARAMS
    ]
    if kept:
        normalized += "?" + urlencode(kept)
    return normalized.lower().strip()
