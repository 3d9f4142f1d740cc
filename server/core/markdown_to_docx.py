"""Utilities for converting estimate Markdown to DOCX."""

from __future__ import annotations

import io
import logging
from typing import Sequence

from docx import Document
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.shared import Pt

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

_ALIGNMENTS = {
	"left": WD_ALIGN_PARAGRAPH.LEFT,
	"center": WD_ALIGN_PARAGRAPH.CENTER,
	"right": WD_ALIGN_PARAGRAPH.RIGHT,
}


def _add_runs(paragraph, nodes: Sequence[Inline], bold: bool = False, italic: bool = False, strike: bool = False) -> None:
	"""Add inline nodes to a paragraph as formatted runs."""
	for node in nodes:
		if isinstance(node, Text):
			run = paragraph.add_run(node.value.replace("\n", " "))
		elif isinstance(node, Strong):
			_add_runs(paragraph, node.children, True, italic, strike)
			continue
		elif isinstance(node, Emphasis):
			_add_runs(paragraph, node.children, bold, True, strike)
			continue
		elif isinstance(node, Strikethrough):
			_add_runs(paragraph, node.children, bold, italic, True)
			continue
		elif isinstance(node, InlineCode):
			run = paragraph.add_run(node.value)
			run.font.name = "Consolas"
		elif isinstance(node, Link):
			label = plain_inline(node.children)
			run = paragraph.add_run(label if label == node.href else f"{label} ({node.href})")
			run.underline = True
		elif isinstance(node, RawInline):
			# Markup has no DOCX equivalent; keep only its text.
			run = paragraph.add_run(plain_inline((node,)))
		elif isinstance(node, LineBreak):
			paragraph.add_run().add_break()
			continue
		else:
			continue
		run.bold = bold or None
		run.italic = italic or None
		if strike:
			run.font.strike = True


def _add_table(document, table: Table) -> None:
	"""Convert a parsed table to a DOCX table with a bold header row."""
	rows = [table.header] + list(table.rows)
	docx_table = document.add_table(rows=len(rows), cols=table.column_count)
	# Try to set a nice table style, but fall back if it doesn't exist
	try:
		docx_table.style = "Light Grid Accent 1"
	except (KeyError, ValueError):
		logger.debug("Table style unavailable, using default")

	for row_idx, row in enumerate(rows):
		for col_idx, cell in enumerate(row):
			cell_para = docx_table.rows[row_idx].cells[col_idx].paragraphs[0]
			_add_runs(cell_para, cell.children, bold=row_idx == 0)
			align = table.alignments[col_idx] if col_idx < len(table.alignments) else None
			if align in _ALIGNMENTS:
				cell_para.alignment = _ALIGNMENTS[align]


def _add_block(document, block, list_level: int = 0) -> None:
	if isinstance(block, Heading):
		heading_para = document.add_heading("", level=max(1, min(block.level, 4)))
		_add_runs(heading_para, block.children)
	elif isinstance(block, Paragraph):
		_add_runs(document.add_paragraph(""), block.children)
	elif isinstance(block, Table):
		_add_table(document, block)
	elif isinstance(block, CodeBlock):
		code_para = document.add_paragraph("")
		run = code_para.add_run(block.code)
		run.font.name = "Consolas"
		run.font.size = Pt(9)
	elif isinstance(block, RawBlock):
		text = plain_inline((RawInline(block.markup),)).strip()
		if text:
			document.add_paragraph(text)
	elif isinstance(block, BlockQuote):
		for child in block.children:
			if isinstance(child, Paragraph):
				quote_para = document.add_paragraph("")
				quote_para.style = "Intense Quote"
				_add_runs(quote_para, child.children)
			else:
				_add_block(document, child, list_level)
	elif isinstance(block, ListBlock):
		_add_list(document, block, list_level)
	elif isinstance(block, ThematicBreak):
		document.add_paragraph("")


def _add_list(document, block: ListBlock, level: int) -> None:
	base = "List Number" if block.ordered else "List Bullet"
	style = base if level == 0 else f"{base} {min(level + 1, 3)}"
	for item in block.items:
		for child in item.children:
			if isinstance(child, Paragraph):
				_add_runs(document.add_paragraph(style=style), child.children)
			elif isinstance(child, ListBlock):
				_add_list(document, child, level + 1)
			else:
				_add_block(document, child, level + 1)


def markdown_to_docx_bytes(content: str) -> bytes:
	"""Convert estimate Markdown into DOCX bytes."""
	document = Document()
	for block in parse_estimate(content).children:
		_add_block(document, block)

	buffer = io.BytesIO()
	document.save(buffer)
	return buffer.getvalue()
