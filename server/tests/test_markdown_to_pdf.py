from __future__ import annotations

import io

import pytest
from PyPDF2 import PdfReader

from scope_estimator.rendering import Table, parse_estimate
from server.core.markdown_to_pdf import _column_widths, markdown_to_pdf_bytes


def _wide_table(columns: int, note_length: int) -> str:
    header = "| " + " | ".join(f"W{i}" for i in range(1, columns)) + " | Notes |"
    delimiter = "|" + "---|" * columns
    row = "| " + " | ".join("x" for _ in range(1, columns)) + " | " + ("long note " * note_length)[:note_length] + " |"
    return "\n".join(["# Timeline", "", header, delimiter, row])


def _text(pdf: bytes) -> str:
    return "\n".join(page.extract_text() or "" for page in PdfReader(io.BytesIO(pdf)).pages)


def test_link_with_quote_in_href() -> None:
    pdf = markdown_to_pdf_bytes('See [docs](http://x/a"b) now')

    assert pdf.startswith(b"%PDF")
    assert "docs" in _text(pdf)


@pytest.mark.parametrize("columns, note_length", [(13, 300), (8, 600), (4, 2000)])
def test_wide_gantt_tables_fit_the_page(columns, note_length) -> None:
    pdf = markdown_to_pdf_bytes(_wide_table(columns, note_length))

    assert pdf.startswith(b"%PDF")
    assert "Timeline" in _text(pdf)


def test_row_taller_than_a_page_falls_back_to_text() -> None:
    pdf = markdown_to_pdf_bytes(_wide_table(13, 20000))

    assert pdf.startswith(b"%PDF")
    assert "Notes" in _text(pdf)


def test_column_widths_fill_the_frame() -> None:
    table = parse_estimate(_wide_table(13, 300)).blocks_of(Table)[0]

    widths = _column_widths(table, 500.0)

    assert len(widths) == 13
    assert sum(widths) == pytest.approx(500.0)
    assert widths[-1] == max(widths)
