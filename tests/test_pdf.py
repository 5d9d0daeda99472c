"""
NicheNav Backend: Report PDF Tests

Checks the rendered document is a PDF, paginates long reports, and names
files from the report id.
"""

import re

from nichenav.models import CompetitorRecord, ValidationReport
from nichenav.parsing import coerce_validation_report
from nichenav.pdf import footer_text, render_report_pdf, report_filename, report_short_id
from tests.conftest import make_report_payload

PAGE_RE = re.compile(rb"/Type\s*/Page\b")


def make_report(**overrides) -> ValidationReport:
    report = coerce_validation_report(make_report_payload(), "niche-1", "Zero-waste kitchens", "user-1")
    return report.model_copy(update={"id": "report-abc123", **overrides})


class TestFileNaming:
    """Tests for report ids and file names."""

    def test_short_id_is_last_six_characters(self):
        assert report_short_id(make_report()) == "abc123"

    def test_unsaved_report_uses_draft(self):
        assert report_short_id(make_report(id="")) == "draft"

    def test_filename(self):
        assert report_filename(make_report()) == "NicheNav-Report-abc123.pdf"

    def test_footer_text(self):
        assert footer_text(2, 3) == "Generated by NicheNav - Page 2 of 3"


class TestRenderReportPdf:
    """Tests for render_report_pdf."""

    def test_returns_pdf_bytes(self):
        content = render_report_pdf(make_report())
        assert content.startswith(b"%PDF")
        assert content.rstrip().endswith(b"%%EOF")

    def test_long_report_spans_more_pages(self):
        competitors = [
            CompetitorRecord(
                name=f"Competitor {i}",
                followers=1000 * i,
                engagement=4.2,
                strengths=["Large audience with strong loyalty and repeat purchases"] * 3,
                weaknesses=["Slow to publish renter-specific content"] * 3,
            )
            for i in range(1, 16)
        ]
        short = render_report_pdf(make_report())
        long = render_report_pdf(make_report(competitor_analysis=competitors))
        assert len(PAGE_RE.findall(short)) >= 1
        assert len(PAGE_RE.findall(long)) > len(PAGE_RE.findall(short))

    def test_report_without_roadmap(self):
        content = render_report_pdf(make_report(success_roadmap=None, content_gaps=[], risk_factors=[]))
        assert content.startswith(b"%PDF")

    def test_long_text_wraps_without_error(self):
        gaps = ["A very long content gap description " * 20]
        content = render_report_pdf(make_report(content_gaps=gaps))
        assert content.startswith(b"%PDF")
