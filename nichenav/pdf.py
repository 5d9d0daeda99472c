"""
NicheNav Backend: Validation Report PDF

Draws a ValidationReport onto A4 pages with reportlab's canvas:
title, report id, date, key metrics, competitors, content gaps,
monetization strategies, risk factors, and the success roadmap when present.
Every page gets a "Page N of M" footer.
"""

import io

from reportlab.lib.pagesizes import A4
from reportlab.lib.utils import simpleSplit
from reportlab.pdfgen import canvas

from nichenav.models import ValidationReport

PAGE_WIDTH, PAGE_HEIGHT = A4
MARGIN = 56
FOOTER_Y = 28
BODY_SIZE = 12
LINE_HEIGHT = 16

FONT = "Helvetica"
FONT_BOLD = "Helvetica-Bold"


def report_short_id(report: ValidationReport) -> str:
    return report.id[-6:] if report.id else "draft"


def report_filename(report: ValidationReport) -> str:
    return f"NicheNav-Report-{report_short_id(report)}.pdf"


def footer_text(page: int, total: int) -> str:
    return f"Generated by NicheNav - Page {page} of {total}"


class _NumberedCanvas(canvas.Canvas):
    """Holds pages back until save() so each footer knows the total page count."""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states: list[dict] = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        total = len(self._saved_page_states)
        for page, state in enumerate(self._saved_page_states, start=1):
            self.__dict__.update(state)
            self.setFont(FONT, 10)
            self.drawCentredString(PAGE_WIDTH / 2, FOOTER_Y, footer_text(page, total))
            super().showPage()
        super().save()


class _PageWriter:
    """Top-down text cursor with wrapping and page breaks."""

    def __init__(self, pdf: canvas.Canvas):
        self.pdf = pdf
        self.y = PAGE_HEIGHT - MARGIN

    def new_page(self) -> None:
        self.pdf.showPage()
        self.y = PAGE_HEIGHT - MARGIN

    def ensure_space(self, height: float) -> None:
        if self.y - height < MARGIN:
            self.new_page()

    def gap(self, height: float) -> None:
        self.y -= height

    def text(self, value: str, indent: float = 0, size: int = BODY_SIZE, bold: bool = False) -> None:
        font = FONT_BOLD if bold else FONT
        width = PAGE_WIDTH - 2 * MARGIN - indent
        lines = simpleSplit(value, font, size, width) or [""]
        line_height = max(LINE_HEIGHT, size + 4)
        for line in lines:
            self.ensure_space(line_height)
            self.pdf.setFont(font, size)
            self.pdf.drawString(MARGIN + indent, self.y, line)
            self.y -= line_height

    def heading(self, value: str, size: int = 16) -> None:
        # Keep a heading together with at least a few lines of its section
        self.ensure_space(size + 4 * LINE_HEIGHT)
        self.gap(6)
        self.text(value, size=size, bold=True)
        self.gap(4)

    def numbered(self, items: list[str]) -> None:
        for index, item in enumerate(items, start=1):
            self.text(f"{index}. {item}")

    def bullets(self, items: list[str], indent: float = 15) -> None:
        for item in items:
            self.text(f"• {item}", indent=indent)


def render_report_pdf(report: ValidationReport) -> bytes:
    """Render the report and return the PDF file contents."""
    buffer = io.BytesIO()
    pdf = _NumberedCanvas(buffer, pagesize=A4)
    pdf.setTitle("NicheNav Validation Report")
    pdf.setAuthor("NicheNav")
    writer = _PageWriter(pdf)

    # Title
    pdf.setFont(FONT_BOLD, 20)
    pdf.drawCentredString(PAGE_WIDTH / 2, writer.y, "NicheNav Validation Report")
    writer.gap(30)

    writer.text(f"Report ID: #{report_short_id(report)}")
    if report.micro_niche_name:
        writer.text(f"Micro-niche: {report.micro_niche_name}")
    writer.text(f"Generated: {report.generated_at.strftime('%B %d, %Y')}")
    writer.gap(12)

    writer.heading("Key Metrics")
    writer.text(f"Profitability Score: {report.profitability_score}%")
    writer.text(f"Audience Size: {report.audience_size:,}")
    writer.text(f"Time to Market: {report.time_to_market}")
    writer.gap(12)

    writer.heading("Competitor Analysis")
    for index, competitor in enumerate(report.competitor_analysis, start=1):
        writer.ensure_space(3 * LINE_HEIGHT)
        writer.text(f"{index}. {competitor.name}", bold=True)
        writer.text(
            f"Followers: {competitor.followers:,} | Engagement: {competitor.engagement}%",
            indent=10,
        )
        if competitor.strengths:
            writer.text("Strengths:", indent=10)
            writer.bullets(competitor.strengths, indent=20)
        if competitor.weaknesses:
            writer.text("Weaknesses:", indent=10)
            writer.bullets(competitor.weaknesses, indent=20)
        writer.gap(6)
    writer.gap(6)

    for title, items in (
        ("Content Gaps", report.content_gaps),
        ("Monetization Strategies", report.monetization_strategies),
        ("Risk Factors", report.risk_factors),
    ):
        writer.heading(title)
        writer.numbered(items)
        writer.gap(12)

    if report.success_roadmap and report.success_roadmap.phases():
        writer.heading("Success Roadmap")
        for number, phase in report.success_roadmap.phases():
            writer.ensure_space(6 * LINE_HEIGHT)
            writer.text(f"PHASE {number}", size=14, bold=True)
            writer.text(f"Timeline: {phase.timeline or 'Not specified'}", indent=10)
            writer.text(f"Budget: {phase.budget or 'Not specified'}", indent=10)
            if phase.objectives:
                writer.text("Objectives:", indent=10, bold=True)
                writer.bullets(phase.objectives, indent=20)
            if phase.key_actions:
                writer.text("Key Actions:", indent=10, bold=True)
                writer.bullets(phase.key_actions, indent=20)
            writer.gap(10)

    pdf.showPage()
    pdf.save()
    return buffer.getvalue()
