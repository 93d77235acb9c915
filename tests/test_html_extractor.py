"""
Tests for extractors/html.py - page parsing and scraping.
"""

import json

import pytest
import requests
import responses

from jobcapture.extractors.html import (
    extract_basic_metadata,
    extract_from_selectors,
    extract_open_graph,
    extract_structured_data,
    merge_by_priority,
    parse_job_from_html,
    parse_job_from_page,
    parse_json_ld_block,
    scrape_job_from_url,
)

JOB_URL = "https://careers.acme.example/jobs/1"


def _ld(data) -> str:
    return f'<script type="application/ld+json">{json.dumps(data)}</script>'


class TestStructuredData:
    """Test JSON-LD extraction."""

    def test_extracts_job_posting(self, json_ld_html):
        fields = extract_structured_data(json_ld_html)
        assert fields["title"] == "Senior Engineer"
        assert fields["company"] == "Acme Corp"
        assert fields["location"] == "Berlin, BE"
        assert fields["logo_url"] == "https://acme.example/logo.png"
        assert fields["description"] == "Build things."
        assert fields["salary_range"] == "EUR 70000 - 90000 per year"

    def test_include_country(self, json_ld_html):
        fields = extract_structured_data(json_ld_html, include_country=True)
        assert fields["location"] == "Berlin, BE, DE"

    def test_malformed_block_is_skipped(self):
        html = (
            '<script type="application/ld+json">{not json</script>'
            + _ld({"@type": "JobPosting", "title": "Valid Title"})
        )
        assert extract_structured_data(html)["title"] == "Valid Title"

    def test_ignores_non_job_types(self):
        html = _ld({"@type": "Organization", "name": "Acme"})
        assert extract_structured_data(html) == {}

    def test_graph_and_list_types(self):
        html = _ld({
            "@context": "https://schema.org",
            "@graph": [
                {"@type": "WebPage", "name": "Careers"},
                {"@type": ["JobPosting"], "title": "Graph Title", "hiringOrganization": "Acme"},
            ],
        })
        fields = extract_structured_data(html)
        assert fields["title"] == "Graph Title"
        assert fields["company"] == "Acme"

    def test_first_titled_posting_wins(self):
        html = _ld([
            {"@type": "JobPosting", "description": "No title here"},
            {"@type": "JobPosting", "title": "First"},
            {"@type": "JobPosting", "title": "Second"},
        ])
        assert extract_structured_data(html) == {"title": "First"}

    def test_logo_object(self):
        html = _ld({
            "@type": "JobPosting",
            "title": "Designer",
            "hiringOrganization": {"name": "Acme", "logo": {"url": "https://acme.example/l.png"}},
        })
        assert extract_structured_data(html)["logo_url"] == "https://acme.example/l.png"

    def test_parse_block_reports_error(self):
        block = parse_json_ld_block("{broken")
        assert not block.ok
        assert block.postings == []
        assert block.error.snippet == "{broken"


class TestMetadataStrategies:
    """Test OpenGraph, basic metadata and selector strategies."""

    def test_open_graph(self, open_graph_html):
        assert extract_open_graph(open_graph_html) == {
            "title": "Data Analyst",
            "company": "Beta Inc",
            "logo_url": "https://beta.example/card.png",
        }

    def test_basic_metadata(self, open_graph_html):
        assert extract_basic_metadata(open_graph_html) == {
            "title": "Data Analyst - Beta",
            "description": "Analyze data at Beta.",
        }

    def test_selectors(self, open_graph_html):
        fields = extract_from_selectors(open_graph_html)
        assert fields["title"] == "Data Analyst (Contract)"
        assert fields["company"] == "Beta Incorporated"
        assert fields["location"] == "Lisbon, Portugal"
        assert fields["description"] == "Work with dashboards."

    def test_empty_markup(self):
        assert extract_open_graph("") == {}
        assert extract_basic_metadata("") == {}
        assert extract_from_selectors("") == {}


class TestMergeByPriority:
    """Test field-wise priority merge."""

    def test_higher_layer_wins_per_field(self):
        merged = merge_by_priority([
            {"title": "From LD"},
            {"title": "From OG", "company": "OG Co"},
            {"description": "From meta", "company": "Meta Co"},
        ])
        assert merged == {"title": "From LD", "company": "OG Co", "description": "From meta"}

    def test_empty_values_fall_through(self):
        assert merge_by_priority([{"title": ""}, {"title": "Fallback"}]) == {"title": "Fallback"}


class TestParseJobFromHtml:
    """Test combined extraction."""

    def test_structured_data_beats_open_graph(self, json_ld_html):
        candidate = parse_job_from_html(json_ld_html, JOB_URL)
        assert candidate.url == JOB_URL
        assert candidate.title == "Senior Engineer"
        assert candidate.company == "Acme Corp"
        assert candidate.description == "Build things."

    def test_falls_back_to_open_graph_then_meta(self, open_graph_html):
        candidate = parse_job_from_html(open_graph_html, JOB_URL)
        assert candidate.title == "Data Analyst"
        assert candidate.company == "Beta Inc"
        assert candidate.description == "Analyze data at Beta."
        assert candidate.location is None

    def test_blank_page(self):
        candidate = parse_job_from_html("<html></html>", JOB_URL)
        assert candidate.url == JOB_URL
        assert candidate.is_empty()


class TestParseJobFromPage:
    """Test the browser extension extraction profile."""

    def test_structured_data_used_alone(self, json_ld_html):
        candidate = parse_job_from_page(json_ld_html, JOB_URL)
        assert candidate.title == "Senior Engineer"
        assert candidate.location == "Berlin, BE, DE"

    def test_selectors_before_open_graph(self, open_graph_html):
        candidate = parse_job_from_page(open_graph_html, JOB_URL)
        assert candidate.title == "Data Analyst (Contract)"
        assert candidate.company == "Beta Incorporated"
        assert candidate.location == "Lisbon, Portugal"
        assert candidate.logo_url is None


class TestScrapeJobFromUrl:
    """Test page fetching with mocked HTTP."""

    @responses.activate
    def test_successful_scrape(self, json_ld_html, settings):
        responses.add(responses.GET, JOB_URL, body=json_ld_html, status=200)

        candidate = scrape_job_from_url(JOB_URL, settings=settings)

        assert candidate.title == "Senior Engineer"
        assert candidate.company == "Acme Corp"
        assert responses.calls[0].request.headers["User-Agent"] == settings.user_agent

    @responses.activate
    def test_not_found_returns_url_only(self, settings):
        responses.add(responses.GET, JOB_URL, status=404)

        candidate = scrape_job_from_url(JOB_URL, settings=settings)

        assert candidate.url == JOB_URL
        assert candidate.is_empty()
        assert len(responses.calls) == 1

    @responses.activate
    def test_retries_server_errors(self, json_ld_html, settings):
        settings.max_retries = 2
        responses.add(responses.GET, JOB_URL, status=503)
        responses.add(responses.GET, JOB_URL, body=json_ld_html, status=200)

        candidate = scrape_job_from_url(JOB_URL, settings=settings)

        assert candidate.title == "Senior Engineer"
        assert len(responses.calls) == 2

    @responses.activate
    def test_exhausted_retries_return_url_only(self, settings):
        settings.max_retries = 1
        responses.add(responses.GET, JOB_URL, status=503)

        candidate = scrape_job_from_url(JOB_URL, settings=settings)

        assert candidate.url == JOB_URL
        assert candidate.is_empty()
        assert len(responses.calls) == 2

    @responses.activate
    def test_connection_error_returns_url_only(self, settings):
        responses.add(responses.GET, JOB_URL, body=requests.exceptions.ConnectionError("refused"))

        candidate = scrape_job_from_url(JOB_URL, settings=settings)

        assert candidate.url == JOB_URL
        assert candidate.is_empty()
