"""
Tests for the printable procedural history.
"""

from conftest import make_case

from case_ledger.models.entities import HistoryItem
from case_ledger.services.history_export import format_date, history_filename, render_history_pdf


def test_filename_replaces_unsafe_characters():
    assert history_filename(make_case(case_number="CR/1/2024")) == "CR-1-2024_History.pdf"
    assert history_filename(make_case(case_number='A:B*C?"<>|')) == "A-B-C-----_History.pdf"


def test_format_date():
    assert format_date("2024-02-10") == "10/02/2024"
    assert format_date("soon") == "soon"
    assert format_date("") == ""


def test_render_produces_pdf_bytes():
    case = make_case(
        case_name_parties="Rao & Sons <Pvt> Ltd vs State",
        history=[HistoryItem("2024-01-10", "Filing", "bring docs"), HistoryItem("2024-02-10", "Arguments")],
    )

    pdf = render_history_pdf(case)

    assert pdf.startswith(b"%PDF")
    assert len(pdf) > 500


def test_render_long_history():
    history = [HistoryItem(f"2023-{m:02d}-{d:02d}", f"Step {m}-{d}", "note " * 40) for m in range(1, 13) for d in (1, 15)]
    short = render_history_pdf(make_case(history=history[:1]))
    long = render_history_pdf(make_case(history=history))

    assert long.startswith(b"%PDF")
    assert len(long) > len(short)


def test_render_without_history():
    assert render_history_pdf(make_case(history=[])).startswith(b"%PDF")
