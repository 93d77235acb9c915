"""Extractors that turn raw job pages and alert emails into candidate records."""

from .email import parse_job_email_auto, parse_job_from_email
from .html import parse_job_from_html, parse_job_from_page, scrape_job_from_url

__all__ = [
    "parse_job_email_auto",
    "parse_job_from_email",
    "parse_job_from_html",
    "parse_job_from_page",
    "scrape_job_from_url",
]
