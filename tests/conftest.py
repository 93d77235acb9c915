"""
Pytest configuration and shared fixtures.
"""

import os

# Keep test runs from writing log files into the working tree
os.environ.setdefault("JOBCAPTURE_LOG_TO_FILE", "0")

import pytest
from pathlib import Path
from typing import Dict, Any

from jobcapture.config import Settings
from jobcapture.database import init_database
from jobcapture.storage import RecordStore


@pytest.fixture
def user_id() -> str:
    return "user-1"


@pytest.fixture
def db_path(tmp_path) -> Path:
    path = tmp_path / "jobs.db"
    init_database(path)
    return path


@pytest.fixture
def store(db_path):
    """Record store over a fresh database with default statuses seeded."""
    record_store = RecordStore.open(db_path)
    record_store.seed_defaults()
    yield record_store
    record_store.close()


@pytest.fixture
def empty_store(db_path):
    """Record store with no seed data."""
    record_store = RecordStore.open(db_path)
    yield record_store
    record_store.close()


@pytest.fixture
def settings(db_path) -> Settings:
    return Settings(
        db_path=db_path,
        max_retries=0,
        retry_base_delay=0.0,
        request_timeout=5,
        log_to_file=False,
        user_id="user-1",
    )


@pytest.fixture
def json_ld_html() -> str:
    """Job page with a JSON-LD JobPosting plus OpenGraph tags."""
    return """
    <html>
    <head>
        <title>Senior Engineer | Acme Careers</title>
        <meta name="description" content="Meta description">
        <meta property="og:title" content="OG Title">
        <meta property="og:site_name" content="Acme Careers">
        <meta property="og:image" content="https://acme.example/og.png">
        <script type="application/ld+json">
        {
            "@context": "https://schema.org",
            "@type": "JobPosting",
            "title": "Senior Engineer",
            "description": "Build things.",
            "hiringOrganization": {
                "@type": "Organization",
                "name": "Acme Corp",
                "logo": "https://acme.example/logo.png"
            },
            "jobLocation": {
                "@type": "Place",
                "address": {
                    "addressLocality": "Berlin",
                    "addressRegion": "BE",
                    "addressCountry": "DE"
                }
            },
            "baseSalary": {
                "@type": "MonetaryAmount",
                "currency": "EUR",
                "value": {"minValue": 70000, "maxValue": 90000, "unitText": "YEAR"}
            }
        }
        </script>
    </head>
    <body><h1>Senior Engineer</h1></body>
    </html>
    """


@pytest.fixture
def open_graph_html() -> str:
    """Job page with OpenGraph tags and visible markup only."""
    return """
    <html>
    <head>
        <title>Data Analyst - Beta</title>
        <meta name="description" content="Analyze data at Beta.">
        <meta property="og:title" content="Data Analyst">
        <meta property="og:site_name" content="Beta Inc">
        <meta property="og:image" content="https://beta.example/card.png">
    </head>
    <body>
        <h1 class="job-title">Data Analyst (Contract)</h1>
        <div class="company-name">Beta Incorporated</div>
        <div class="location">Lisbon, Portugal</div>
        <div class="job-description">Work with dashboards.</div>
    </body>
    </html>
    """


@pytest.fixture
def linkedin_email() -> str:
    return (
        "Your job alert for software engineer\n"
        "Job title: Backend Engineer\n"
        "Company: Gamma Labs\n"
        "Location: Remote, US\n"
        "View job: https://www.linkedin.com/jobs/view/12345?refId=abc\n"
        "Unsubscribe: https://example.com/unsubscribe\n"
    )


@pytest.fixture
def generic_email() -> str:
    return (
        "<p>Hello,</p>"
        "<p>Position: Platform Engineer</p>"
        "<p>Company: Delta Systems</p>"
        "<p>Location: Austin, TX</p>"
        "<p>Salary: $120,000 - $150,000</p>"
        '<p><a href="https://careers.delta.example/jobs/42">Apply now</a></p>'
    )


@pytest.fixture
def extension_payload() -> Dict[str, Any]:
    return {
        "jobTitle": "Software Engineer (Remote)",
        "company": "Acme Corp",
        "jobUrl": "https://www.acme.example/jobs/1?utm_source=linkedin",
        "location": "Remote",
        "description": "Write code.",
        "salaryRange": "$100k - $120k",
    }
