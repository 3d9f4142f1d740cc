"""Utilities for converting estimate Markdown to PDF."""

from __future__ import annotations

import io
import logging
from typing import List, Sequence
from xml.sax.saxutils import escape

from reportlab.lib import colors
from reportlab.lib.pagesizes import letter
from reportlab.lib.styles import ParagraphStyle, getSampleStyleSheet
from reportlab.lib.units import inch
from reportlab.platypus.doctemplate import LayoutError
from reportlab.platypus import (
    Flowable,
    HRFlowable,
    ListFlowable,
    ListItem as PdfListItem,
    Paragraph as PdfParagraph,
    Preformatted,
    SimpleDocTemplate,
    Spacer,
    Table as PdfTable,
    TableStyle,
)

from scope_estimator.rendering import (
    BlockQuote,
    CodeBlock,
    Emphasis,
    Heading,
    Inline,
    InlineCode,
    LineBreak,
    Link,
    ListBlock,
    Paragraph,
    RawBlock,
    RawInline,
    Strikethrough,
    Strong,
    Table,
    Text,
    ThematicBreak,
    parse_estimate,
    plain_inline,
)

logger = logging.getLogger(__name__)

_STYLES = getSampleStyleSheet()
_HEADING_STYLES = {1: "Heading1", 2: "Heading2", 3: "Heading3", 4: "Heading4"}
_QUOTE_STYLE = ParagraphStyle("EstimateQuote", parent=_STYLES["BodyText"], leftIndent=18, textColor=colors.HexColor("#374151"))
_CELL_STYLE = ParagraphStyle("EstimateCell", parent=_STYLES["BodyText"], fontSize=9, leading=11)
_ALIGN = {"left": "LEFT", "center": "CENTER", "right": "RIGHT"}

_ATTRIBUTE_ENTITIES = {'"': "&quot;"}
_MIN_COLUMN_WEIGHT = 4
_MAX_COLUMN_WEIGHT = 60
_NESTED_INDENT = 36


def _markup(nodes: Sequence[Inline]) -> str:
    """Translate inline nodes to reportlab's paragraph mini-markup."""
    out: List[str] = []
    for node in nodes:
        if isinstance(node, Text):
            out.append(escape(node.value))
        elif isinstance(node, Strong):
            out.append(f"<b>{_markup(node.children)}</b>")
        elif isinstance(node, Emphasis):
            out.append(f"<i>{_markup(node.children)}</i>")
        elif isinstance(node, Strikethrough):
            out.append(f"<strike>{_markup(node.children)}</strike>")
        elif isinstance(node, InlineCode):
            out.append(f'<font face="Courier">{escape(node.value)}</font>')
        elif isinstance(node, Link):
            out.append(f'<link href="{escape(node.href, _ATTRIBUTE_ENTITIES)}" color="blue">{_markup(node.children)}</link>')
        elif isinstance(node, RawInline):
            out.append(escape(plain_inline((node,))))
        elif isinstance(node, LineBreak):
            out.append("<br/>")
    return "".join(out)


def _column_widths(table: Table, available: float) -> List[float]:
    """Share the frame width between columns by content length."""
    rows = [table.header] + list(table.rows)
    weights = []
    for col in range(table.column_count):
        longest = max(len(plain_inline(row[col].children)) for row in rows if col < len(row))
        weights.append(min(max(longest, _MIN_COLUMN_WEIGHT), _MAX_COLUMN_WEIGHT))
    total = float(sum(weights))
    return [available * weight / total for weight in weights]


def _table(table: Table, available: float) -> PdfTable:
    rows = [table.header] + list(table.rows)
    data = [[PdfParagraph(_markup(cell.children), _CELL_STYLE) for cell in row] for row in rows]
    commands = [
        ("GRID", (0, 0), (-1, -1), 0.5, colors.HexColor("#d1d5db")),
        ("BACKGROUND", (0, 0), (-1, 0), colors.HexColor("#e5e7eb")),
        ("FONTNAME", (0, 0), (-1, 0), "Helvetica-Bold"),
        ("VALIGN", (0, 0), (-1, -1), "TOP"),
    ]
    for col, align in enumerate(table.alignments):
        if align in _ALIGN:
            commands.append(("ALIGN", (col, 0), (col, -1), _ALIGN[align]))
    pdf_table = PdfTable(data, colWidths=_column_widths(table, available), repeatRows=1, hAlign="LEFT")
    pdf_table.setStyle(TableStyle(commands))
    return pdf_table


def _table_as_text(table: Table) -> List[Flowable]:
    """One paragraph per row, used when a row cannot fit on a page."""
    headers = [_markup(cell.children) for cell in table.header]
    flowables: List[Flowable] = []
    for row in table.rows:
        parts = [f"<b>{header}</b>: {_markup(cell.children)}" for header, cell in zip(headers, row)]
        flowables.append(PdfParagraph("; ".join(parts), _CELL_STYLE))
    return flowables


def _list(block: ListBlock, layout: "_Layout") -> ListFlowable:
    items = []
    for item in block.items:
        flowables: List[Flowable] = []
        for child in item.children:
            flowables.extend(_flowables(child, layout.nested()))
        items.append(PdfListItem(flowables or [Spacer(1, 0)]))
    if block.ordered:
        return ListFlowable(items, bulletType="1", start=block.start)
    return ListFlowable(items, bulletType="bullet", start="•")


class _Layout:
    def __init__(self, width: float, tables_as_text: bool = False) -> None:
        self.width = width
        self.tables_as_text = tables_as_text

    def nested(self) -> "_Layout":
        return _Layout(max(self.width - _NESTED_INDENT, inch), self.tables_as_text)


def _flowables(block, layout: _Layout) -> List[Flowable]:
    if isinstance(block, Heading):
        style = _STYLES[_HEADING_STYLES.get(block.level, "Heading4")]
        return [PdfParagraph(_markup(block.children), style)]
    if isinstance(block, Paragraph):
        return [PdfParagraph(_markup(block.children), _STYLES["BodyText"])]
    if isinstance(block, Table):
        if layout.tables_as_text:
            return _table_as_text(block) + [Spacer(1, 0.15 * inch)]
        return [_table(block, layout.width), Spacer(1, 0.15 * inch)]
    if isinstance(block, CodeBlock):
        return [Preformatted(block.code, _STYLES["Code"])]
    if isinstance(block, RawBlock):
        text = plain_inline((RawInline(block.markup),)).strip()
        return [PdfParagraph(escape(text), _STYLES["BodyText"])] if text else []
    if isinstance(block, BlockQuote):
        flowables: List[Flowable] = []
        for child in block.children:
            if isinstance(child, Paragraph):
                flowables.append(PdfParagraph(_markup(child.children), _QUOTE_STYLE))
            else:
                flowables.extend(_flowables(child, layout.nested()))
        return flowables
    if isinstance(block, ListBlock):
        return [_list(block, layout)]
    if isinstance(block, ThematicBreak):
        return [HRFlowable(width="100%", color=colors.HexColor("#d1d5db"))]
    return []


def _build(content: str, tables_as_text: bool) -> bytes:
    buffer = io.BytesIO()
    doc = SimpleDocTemplate(
        buffer,
        pagesize=letter,
        leftMargin=0.75 * inch,
        rightMargin=0.75 * inch,
        topMargin=0.75 * inch,
        bottomMargin=0.75 * inch,
        title="Estimation",
    )
    layout = _Layout(doc.width, tables_as_text)

    story: List[Flowable] = []
    for block in parse_estimate(content).children:
        story.extend(_flowables(block, layout))
    if not story:
        story.append(PdfParagraph("Estimate", _STYLES["Title"]))

    doc.build(story)
    return buffer.getvalue()


def markdown_to_pdf_bytes(content: str) -> bytes:
    """Convert estimate Markdown into PDF bytes."""
    try:
        return _build(content, tables_as_text=False)
    except LayoutError as exc:
        logger.warning("Table too large for the page, exporting tables as text: %s", exc)
        return _build(content, tables_as_text=True)
