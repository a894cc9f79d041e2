"""
Printable procedural history.

Renders a case's timeline (newest first) to a paginated PDF with ReportLab.
Read-only projection of the stored case.
"""

import io
import re
from datetime import date
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import A4
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import mm
from reportlab.pdfgen import canvas
from reportlab.platypus import HRFlowable, KeepTogether, Paragraph, SimpleDocTemplate, Spacer

from case_ledger.models.entities import Case
from case_ledger.services.history import timeline_newest_first

MARGIN = 20 * mm
_UNSAFE_FILENAME_CHARS = re.compile(r'[/\\?%*:|"<>]')


def format_date(value: str) -> str:
    """YYYY-MM-DD as DD/MM/YYYY; unparseable values are returned unchanged"""
    try:
        return date.fromisoformat((value or "")[:10]).strftime("%d/%m/%Y")
    except ValueError:
        return value or ""


def history_filename(case: Case) -> str:
    return f"{_UNSAFE_FILENAME_CHARS.sub('-', case.case_number or 'case')}_History.pdf"


class _NumberedCanvas(canvas.Canvas):
    """Canvas that writes 'Page i of n' footers once the page count is known"""

    footer_label = ""

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self._saved_page_states = []

    def showPage(self):
        self._saved_page_states.append(dict(self.__dict__))
        self._startPage()

    def save(self):
        page_count = len(self._saved_page_states)
        for state in self._saved_page_states:
            self.__dict__.update(state)
            self._draw_footer(page_count)
            super().showPage()
        super().save()

    def _draw_footer(self, page_count: int):
        self.setFont("Helvetica", 8)
        self.setFillColor(colors.HexColor("#94a3b8"))
        self.drawString(
            MARGIN, 12 * mm, f"Procedural History - {self.footer_label} - Page {self._pageNumber} of {page_count}"
        )


def render_history_pdf(case: Case) -> bytes:
    """PDF bytes of the case summary, its timeline and the next listing"""
    buf = io.BytesIO()
    doc = SimpleDocTemplate(
        buf,
        pagesize=A4,
        leftMargin=MARGIN,
        rightMargin=MARGIN,
        topMargin=MARGIN,
        bottomMargin=MARGIN,
        title=f"Procedural History - {case.case_number}",
    )

    styles = getSampleStyleSheet()

    def S(name: str, **kw):
        return ParagraphStyle(name, parent=styles["Normal"], **kw)

    title_st = S("Title", fontName="Helvetica-Bold", fontSize=22, leading=26, textColor=colors.HexColor("#0f172a"))
    label_st = S("Label", fontSize=10, textColor=colors.HexColor("#64748b"), spaceAfter=4)
    case_st = S("Case", fontName="Helvetica-Bold", fontSize=14, leading=18, textColor=colors.HexColor("#0f172a"))
    section_st = S("Section", fontName="Helvetica-Bold", fontSize=12, spaceBefore=12, spaceAfter=8)
    date_st = S(
        "Date",
        fontName="Helvetica-Bold",
        fontSize=9,
        textColor=colors.HexColor("#b45309"),
        backColor=colors.HexColor("#fffbeb"),
        borderPadding=3,
    )
    step_st = S("Step", fontName="Helvetica-Bold", fontSize=11, leftIndent=5 * mm, spaceBefore=6)
    notes_st = S("Notes", fontSize=10, leading=13, leftIndent=5 * mm, textColor=colors.HexColor("#475569"))

    story = [
        Paragraph("Procedural History", title_st),
        Spacer(1, 4 * mm),
        HRFlowable(width="100%", thickness=1, color=colors.HexColor("#e2e8f0")),
        Spacer(1, 6 * mm),
        Paragraph("CASE SUMMARY", label_st),
        Paragraph(f"Case No: {escape(case.case_number or '')}", case_st),
        Paragraph(escape(f"{case.court_name} | {case.case_type}"), styles["Normal"]),
    ]
    if case.case_name_parties:
        story.append(Paragraph(escape(case.case_name_parties), styles["Normal"]))

    story.append(Paragraph("Proceedings Timeline", section_st))

    timeline = timeline_newest_first(case)
    if not timeline:
        story.append(Paragraph("No historical records found for this case.", styles["Normal"]))
    for item in timeline:
        entry = [Paragraph(escape(format_date(item.date)), date_st), Paragraph(f"Step: {escape(item.step or '')}", step_st)]
        if item.notes:
            entry.append(Paragraph(f"Notes: {escape(item.notes)}", notes_st))
        entry.append(Spacer(1, 3 * mm))
        entry.append(HRFlowable(width="100%", thickness=0.5, color=colors.HexColor("#f1f5f9")))
        story.append(KeepTogether(entry))

    story.extend(
        [
            Spacer(1, 6 * mm),
            Paragraph("NEXT SCHEDULED LISTING", label_st),
            Paragraph(escape(format_date(case.next_date)), styles["Normal"]),
        ]
    )

    page_canvas = type("_CaseCanvas", (_NumberedCanvas,), {"footer_label": case.case_number or ""})
    doc.build(story, canvasmaker=page_canvas)
    return buf.getvalue()
