"""Projection of estimate markdown into a block/inline element tree.

The estimate returned by the service is GitHub-flavoured markdown: headings,
tables, bullet lists, fenced code and the occasional hand-written HTML
fragment. ``parse_estimate`` turns it into immutable nodes; ``render_html``
and ``render_plain`` turn those nodes into something a UI or a terminal can
show. None of these functions touch the workflow state.
"""

from __future__ import annotations

import html
import re
from dataclasses import dataclass
from typing import Iterator, List, Optional, Sequence, Tuple, Type, TypeVar, Union

from pygments import highlight
from pygments.formatters import HtmlFormatter
from pygments.lexers import get_lexer_by_name
from pygments.util import ClassNotFound


# ----------------------------------------------------------------------
# Inline nodes
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Text:
    value: str


@dataclass(frozen=True)
class Strong:
    children: Tuple["Inline", ...]


@dataclass(frozen=True)
class Emphasis:
    children: Tuple["Inline", ...]


@dataclass(frozen=True)
class Strikethrough:
    children: Tuple["Inline", ...]


@dataclass(frozen=True)
class InlineCode:
    value: str


@dataclass(frozen=True)
class Link:
    href: str
    children: Tuple["Inline", ...]


@dataclass(frozen=True)
class RawInline:
    markup: str


@dataclass(frozen=True)
class LineBreak:
    pass


Inline = Union[Text, Strong, Emphasis, Strikethrough, InlineCode, Link, RawInline, LineBreak]


# ----------------------------------------------------------------------
# Block nodes
# ----------------------------------------------------------------------
@dataclass(frozen=True)
class Heading:
    level: int
    children: Tuple[Inline, ...]


@dataclass(frozen=True)
class Paragraph:
    children: Tuple[Inline, ...]


@dataclass(frozen=True)
class TableCell:
    children: Tuple[Inline, ...]


@dataclass(frozen=True)
class Table:
    header: Tuple[TableCell, ...]
    alignments: Tuple[Optional[str], ...]
    rows: Tuple[Tuple[TableCell, ...], ...]

    @property
    def column_count(self) -> int:
        return len(self.header)


@dataclass(frozen=True)
class CodeBlock:
    code: str
    language: Optional[str] = None

    @property
    def highlight_class(self) -> Optional[str]:
        """CSS class understood by highlight.js style highlighters."""
        if not self.language:
            return None
        return f"language-{self.language}"


@dataclass(frozen=True)
class RawBlock:
    markup: str


@dataclass(frozen=True)
class BlockQuote:
    children: Tuple["Block", ...]


@dataclass(frozen=True)
class ListItem:
    children: Tuple["Block", ...]


@dataclass(frozen=True)
class ListBlock:
    ordered: bool
    items: Tuple[ListItem, ...]
    start: int = 1


@dataclass(frozen=True)
class ThematicBreak:
    pass


Block = Union[Heading, Paragraph, Table, CodeBlock, RawBlock, BlockQuote, ListBlock, ThematicBreak]

B = TypeVar("B")


@dataclass(frozen=True)
class Document:
    children: Tuple[Block, ...]

    def walk(self) -> Iterator[Block]:
        """Yield every block, depth first, including those nested in quotes and lists."""
        yield from _walk_blocks(self.children)

    def blocks_of(self, kind: Type[B]) -> List[B]:
        return [block for block in self.walk() if isinstance(block, kind)]


def _walk_blocks(blocks: Sequence[Block]) -> Iterator[Block]:
    for block in blocks:
        yield block
        if isinstance(block, BlockQuote):
            yield from _walk_blocks(block.children)
        elif isinstance(block, ListBlock):
            for item in block.items:
                yield from _walk_blocks(item.children)


# ----------------------------------------------------------------------
# Block parsing
# ----------------------------------------------------------------------
_FENCE_OPEN = re.compile(r"^( {0,3})(`{3,}|~{3,})[ \t]*([^\s`]*)[^`]*$")
_FENCE_CLOSE = re.compile(r"^ {0,3}(`{3,}|~{3,})[ \t]*$")
_HEADING = re.compile(r"^ {0,3}(#{1,6})(?=[ \t]|$)(.*)$")
_HEADING_CLOSER = re.compile(r"(?:^|[ \t]+)#+[ \t]*$")
_SETEXT = re.compile(r"^ {0,3}(=+|-+)[ \t]*$")
_THEMATIC = re.compile(r"^ {0,3}(?:(?:\*[ \t]*){3,}|(?:-[ \t]*){3,}|(?:_[ \t]*){3,})$")
_QUOTE = re.compile(r"^ {0,3}> ?(.*)$")
_BULLET = re.compile(r"^( {0,3})([-*+])[ \t]+(.*)$")
_ORDERED = re.compile(r"^( {0,3})(\d{1,9})([.)])[ \t]+(.*)$")
_RAW_BLOCK = re.compile(r"^ {0,3}<(?:!--|/?[A-Za-z][A-Za-z0-9-]*(?:[\s/>]|$))")
_DELIMITER_CELL = re.compile(r"^:?-+:?$")
_PIPE_SPLIT = re.compile(r"(?<!\\)\|")

# Quotes and lists nested deeper than this are kept as plain text.
MAX_NESTING = 32


def parse_estimate(text: str) -> Document:
    """Parse estimate markdown into a ``Document`` tree."""

    lines = text.replace("\r\n", "\n").replace("\r", "\n").split("\n")
    return Document(tuple(_parse_blocks(lines)))


def _parse_blocks(lines: List[str], depth: int = 0) -> List[Block]:
    if depth >= MAX_NESTING:
        # Too deep to nest further; keep whatever is left as literal text.
        text = "\n".join(line.strip() for line in lines).strip()
        return [Paragraph((Text(text),))] if text else []

    blocks: List[Block] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if not line.strip():
            i += 1
            continue

        fence = _FENCE_OPEN.match(line)
        if fence:
            block, i = _parse_fence(lines, i, fence)
            blocks.append(block)
            continue

        heading = _HEADING.match(line)
        if heading:
            content = _HEADING_CLOSER.sub("", heading.group(2).strip()).strip()
            blocks.append(Heading(len(heading.group(1)), parse_inline(content)))
            i += 1
            continue

        if _THEMATIC.match(line):
            blocks.append(ThematicBreak())
            i += 1
            continue

        if _is_table_start(lines, i):
            block, i = _parse_table(lines, i)
            blocks.append(block)
            continue

        if _QUOTE.match(line):
            quoted: List[str] = []
            while i < len(lines):
                match = _QUOTE.match(lines[i])
                if not match:
                    break
                quoted.append(match.group(1))
                i += 1
            blocks.append(BlockQuote(tuple(_parse_blocks(quoted, depth + 1))))
            continue

        if _BULLET.match(line) or _ORDERED.match(line):
            block, i = _parse_list(lines, i, depth)
            blocks.append(block)
            continue

        if _RAW_BLOCK.match(line):
            raw: List[str] = []
            while i < len(lines) and lines[i].strip():
                raw.append(lines[i])
                i += 1
            blocks.append(RawBlock("\n".join(raw)))
            continue

        block, i = _parse_paragraph(lines, i)
        blocks.append(block)
    return blocks


def _parse_fence(lines: List[str], start: int, opening: "re.Match[str]") -> Tuple[CodeBlock, int]:
    indent = len(opening.group(1))
    marker = opening.group(2)
    language = opening.group(3) or None
    body: List[str] = []
    i = start + 1
    while i < len(lines):
        closing = _FENCE_CLOSE.match(lines[i])
        if closing and closing.group(1)[0] == marker[0] and len(closing.group(1)) >= len(marker):
            i += 1
            break
        body.append(_dedent(lines[i], indent))
        i += 1
    # An unterminated fence runs to the end of the text.
    return CodeBlock("\n".join(body), language), i


def _split_row(line: str) -> List[str]:
    row = line.strip()
    if row.startswith("|"):
        row = row[1:]
    if row.endswith("|") and not row.endswith("\\|"):
        row = row[:-1]
    return [cell.strip().replace("\\|", "|") for cell in _PIPE_SPLIT.split(row)]


def _is_delimiter_row(line: str) -> bool:
    if "-" not in line:
        return False
    cells = _split_row(line)
    return bool(cells) and all(_DELIMITER_CELL.match(cell) for cell in cells)


def _is_table_start(lines: List[str], i: int) -> bool:
    if i + 1 >= len(lines) or "|" not in lines[i]:
        return False
    if not _is_delimiter_row(lines[i + 1]):
        return False
    return len(_split_row(lines[i])) == len(_split_row(lines[i + 1]))


def _alignment(cell: str) -> Optional[str]:
    left, right = cell.startswith(":"), cell.endswith(":")
    if left and right:
        return "center"
    if right:
        return "right"
    if left:
        return "left"
    return None


def _parse_table(lines: List[str], start: int) -> Tuple[Table, int]:
    header_cells = _split_row(lines[start])
    width = len(header_cells)
    alignments = tuple(_alignment(cell) for cell in _split_row(lines[start + 1]))
    rows: List[Tuple[TableCell, ...]] = []
    i = start + 2
    while i < len(lines) and lines[i].strip() and "|" in lines[i]:
        cells = _split_row(lines[i])[:width]
        cells += [""] * (width - len(cells))
        rows.append(tuple(TableCell(parse_inline(cell)) for cell in cells))
        i += 1
    header = tuple(TableCell(parse_inline(cell)) for cell in header_cells)
    return Table(header, alignments, tuple(rows)), i


def _list_marker(line: str) -> Optional[Tuple[bool, int, int, str]]:
    """Return (ordered, start number, content indent, first line) for a list item line."""
    ordered = _ORDERED.match(line)
    if ordered:
        lead, number, delim, rest = ordered.groups()
        return True, int(number), len(lead) + len(number) + len(delim) + 1, rest
    bullet = _BULLET.match(line)
    if bullet:
        lead, _, rest = bullet.groups()
        return False, 1, len(lead) + 2, rest
    return None


def _indent_of(line: str) -> int:
    return len(line) - len(line.lstrip(" "))


def _dedent(line: str, amount: int) -> str:
    return line[min(amount, _indent_of(line)):]


def _starts_block(lines: List[str], i: int) -> bool:
    line = lines[i]
    return bool(
        _FENCE_OPEN.match(line)
        or _HEADING.match(line)
        or _THEMATIC.match(line)
        or _QUOTE.match(line)
        or _BULLET.match(line)
        or _ORDERED.match(line)
        or _is_table_start(lines, i)
    )


def _parse_list(lines: List[str], start: int, depth: int = 0) -> Tuple[ListBlock, int]:
    marker = _list_marker(lines[start])
    assert marker is not None
    ordered, first_number = marker[0], marker[1]
    items: List[ListItem] = []
    i = start
    while i < len(lines):
        if _THEMATIC.match(lines[i]):
            break
        current = _list_marker(lines[i])
        if current is None or current[0] != ordered:
            break
        _, _, content_indent, first_line = current
        item_lines = [first_line]
        i += 1
        while i < len(lines):
            line = lines[i]
            if not line.strip():
                following = _next_content_line(lines, i)
                if following is not None and _indent_of(lines[following]) >= 2:
                    item_lines.extend([""] * (following - i))
                    i = following
                    continue
                break
            if _indent_of(line) >= 2:
                item_lines.append(_dedent(line, content_indent))
                i += 1
                continue
            if _starts_block(lines, i):
                break
            item_lines.append(line.strip())
            i += 1
        items.append(ListItem(tuple(_parse_blocks(item_lines, depth + 1))))

        following = _next_content_line(lines, i)
        if following is None:
            break
        nxt = _list_marker(lines[following])
        if nxt is None or nxt[0] != ordered or _THEMATIC.match(lines[following]):
            break
        i = following
    return ListBlock(ordered, tuple(items), first_number), i


def _next_content_line(lines: List[str], i: int) -> Optional[int]:
    while i < len(lines):
        if lines[i].strip():
            return i
        i += 1
    return None


def _parse_paragraph(lines: List[str], start: int) -> Tuple[Block, int]:
    collected = [lines[start].strip()]
    i = start + 1
    while i < len(lines) and lines[i].strip():
        setext = _SETEXT.match(lines[i])
        if setext:
            level = 1 if setext.group(1).startswith("=") else 2
            return Heading(level, parse_inline("\n".join(collected))), i + 1
        if _starts_block(lines, i):
            break
        collected.append(lines[i].strip())
        i += 1
    # Keep hard-break markers: only leading whitespace was removed above.
    raw = [lines[j].lstrip() for j in range(start, i)]
    return Paragraph(parse_inline("\n".join(raw).rstrip())), i


# ----------------------------------------------------------------------
# Inline parsing
# ----------------------------------------------------------------------
_INLINE = re.compile(
    r"(?P<code>(?P<ticks>`+)(?P<code_body>.+?)(?P=ticks))"
    r"|(?P<autolink><(?P<auto_href>https?://[^\s<>]+)>)"
    r"|(?P<raw><!--.*?-->|</?[A-Za-z][A-Za-z0-9-]*(?:\s[^<>]*)?/?>)"
    r"|(?P<link>\[(?P<link_text>[^\]]*)\]\((?P<link_href>[^)\s]+)(?:\s+\"[^\"]*\")?\))"
    r"|(?P<strong>\*\*(?P<strong_a>.+?)\*\*|__(?P<strong_u>.+?)__)"
    r"|(?P<strike>~~(?P<strike_body>.+?)~~)"
    r"|(?P<em>\*(?P<em_a>[^\s*](?:.*?[^\s])?)\*|(?<!\w)_(?P<em_u>[^\s_](?:.*?[^\s])?)_(?!\w))"
    r"|(?P<escape>\\(?P<escaped>[!-/:-@\[-`{-~]))"
    r"|(?P<hardbreak>(?: {2,}|\\)\n)",
    re.DOTALL,
)


def parse_inline(text: str) -> Tuple[Inline, ...]:
    """Split inline markdown into ``Inline`` nodes."""

    nodes: List[Inline] = []
    position = 0
    for match in _INLINE.finditer(text):
        if match.start() > position:
            nodes.append(Text(text[position:match.start()]))
        nodes.append(_inline_node(match))
        position = match.end()
    if position < len(text):
        nodes.append(Text(text[position:]))
    return _merge_text(nodes)


def _inline_node(match: "re.Match[str]") -> Inline:
    kind = match.lastgroup
    if match.group("code") is not None:
        body = match.group("code_body")
        if len(body) > 2 and body.startswith(" ") and body.endswith(" "):
            body = body[1:-1]
        return InlineCode(body)
    if match.group("autolink") is not None:
        href = match.group("auto_href")
        return Link(href, (Text(href),))
    if match.group("raw") is not None:
        return RawInline(match.group("raw"))
    if match.group("link") is not None:
        return Link(match.group("link_href"), parse_inline(match.group("link_text")))
    if match.group("strong") is not None:
        return Strong(parse_inline(match.group("strong_a") or match.group("strong_u") or ""))
    if match.group("strike") is not None:
        return Strikethrough(parse_inline(match.group("strike_body")))
    if match.group("em") is not None:
        return Emphasis(parse_inline(match.group("em_a") or match.group("em_u") or ""))
    if match.group("escape") is not None:
        return Text(match.group("escaped"))
    if match.group("hardbreak") is not None:
        return LineBreak()
    raise ValueError(f"Unhandled inline token {kind!r}")


def _merge_text(nodes: List[Inline]) -> Tuple[Inline, ...]:
    merged: List[Inline] = []
    for node in nodes:
        if isinstance(node, Text) and merged and isinstance(merged[-1], Text):
            merged[-1] = Text(merged[-1].value + node.value)
        else:
            merged.append(node)
    return tuple(merged)


# ----------------------------------------------------------------------
# HTML projection
# ----------------------------------------------------------------------
def render_html(document: Document) -> str:
    """Render the tree as HTML; raw fragments are passed through untouched."""
    return "\n".join(_html_block(block) for block in document.children)


_CODE_FORMATTER = HtmlFormatter(nowrap=True)


def highlight_code(block: CodeBlock) -> str:
    """Return the block's code as HTML, split into Pygments token spans.

    Unknown or missing languages fall back to the escaped code.
    """
    if block.language:
        try:
            lexer = get_lexer_by_name(block.language)
        except ClassNotFound:
            lexer = None
        if lexer is not None:
            highlighted = highlight(block.code, lexer, _CODE_FORMATTER)
            if not block.code.endswith("\n"):
                highlighted = highlighted.rstrip("\n")
            return highlighted
    return html.escape(block.code, quote=False)


def highlight_css(selector: str = "pre code") -> str:
    """Stylesheet for the token classes emitted by ``highlight_code``."""
    return _CODE_FORMATTER.get_style_defs(selector)


def _html_block(block: Block) -> str:
    if isinstance(block, Heading):
        return f"<h{block.level}>{_html_inline(block.children)}</h{block.level}>"
    if isinstance(block, Paragraph):
        return f"<p>{_html_inline(block.children)}</p>"
    if isinstance(block, Table):
        return _html_table(block)
    if isinstance(block, CodeBlock):
        attr = f' class="{html.escape(block.highlight_class)}"' if block.highlight_class else ""
        return f"<pre><code{attr}>{highlight_code(block)}</code></pre>"
    if isinstance(block, RawBlock):
        return block.markup
    if isinstance(block, BlockQuote):
        inner = "\n".join(_html_block(child) for child in block.children)
        return f"<blockquote>\n{inner}\n</blockquote>"
    if isinstance(block, ListBlock):
        tag = "ol" if block.ordered else "ul"
        start = f' start="{block.start}"' if block.ordered and block.start != 1 else ""
        items = "\n".join(_html_list_item(item) for item in block.items)
        return f"<{tag}{start}>\n{items}\n</{tag}>"
    if isinstance(block, ThematicBreak):
        return "<hr />"
    raise TypeError(f"Unknown block {block!r}")


def _html_list_item(item: ListItem) -> str:
    # Tight items render their single paragraph inline.
    if len(item.children) == 1 and isinstance(item.children[0], Paragraph):
        return f"<li>{_html_inline(item.children[0].children)}</li>"
    inner = "\n".join(_html_block(child) for child in item.children)
    return f"<li>\n{inner}\n</li>"


def _html_table(table: Table) -> str:
    def cell(tag: str, value: TableCell, align: Optional[str]) -> str:
        style = f' style="text-align: {align}"' if align else ""
        return f"<{tag}{style}>{_html_inline(value.children)}</{tag}>"

    head = "".join(cell("th", c, a) for c, a in zip(table.header, table.alignments))
    body = "\n".join(
        "<tr>" + "".join(cell("td", c, a) for c, a in zip(row, table.alignments)) + "</tr>"
        for row in table.rows
    )
    parts = ["<table>", f"<thead>\n<tr>{head}</tr>\n</thead>"]
    if table.rows:
        parts.append(f"<tbody>\n{body}\n</tbody>")
    parts.append("</table>")
    return "\n".join(parts)


def _html_inline(nodes: Sequence[Inline]) -> str:
    out: List[str] = []
    for node in nodes:
        if isinstance(node, Text):
            out.append(html.escape(node.value, quote=False))
        elif isinstance(node, Strong):
            out.append(f"<strong>{_html_inline(node.children)}</strong>")
        elif isinstance(node, Emphasis):
            out.append(f"<em>{_html_inline(node.children)}</em>")
        elif isinstance(node, Strikethrough):
            out.append(f"<del>{_html_inline(node.children)}</del>")
        elif isinstance(node, InlineCode):
            out.append(f"<code>{html.escape(node.value, quote=False)}</code>")
        elif isinstance(node, Link):
            out.append(f'<a href="{html.escape(node.href)}">{_html_inline(node.children)}</a>')
        elif isinstance(node, RawInline):
            out.append(node.markup)
        elif isinstance(node, LineBreak):
            out.append("<br />\n")
    return "".join(out)


# ----------------------------------------------------------------------
# Terminal projection
# ----------------------------------------------------------------------
_TAG = re.compile(r"<[^>]+>")


def plain_inline(nodes: Sequence[Inline]) -> str:
    """Flatten inline nodes to text without markup."""
    out: List[str] = []
    for node in nodes:
        if isinstance(node, Text):
            out.append(node.value)
        elif isinstance(node, (Strong, Emphasis, Strikethrough)):
            out.append(plain_inline(node.children))
        elif isinstance(node, InlineCode):
            out.append(node.value)
        elif isinstance(node, Link):
            label = plain_inline(node.children)
            out.append(label if label == node.href else f"{label} ({node.href})")
        elif isinstance(node, RawInline):
            out.append(_TAG.sub("", node.markup))
        elif isinstance(node, LineBreak):
            out.append("\n")
    return "".join(out)


def render_plain(document: Document) -> str:
    """Render the tree for a terminal: underlined headings, padded table columns."""
    return "\n\n".join(filter(None, (_plain_block(block) for block in document.children)))


def _plain_block(block: Block) -> str:
    if isinstance(block, Heading):
        title = plain_inline(block.children)
        if block.level <= 2:
            rule = "=" if block.level == 1 else "-"
            return f"{title}\n{rule * max(len(title), 3)}"
        return f"{'#' * block.level} {title}"
    if isinstance(block, Paragraph):
        return plain_inline(block.children)
    if isinstance(block, Table):
        return _plain_table(block)
    if isinstance(block, CodeBlock):
        label = f"[{block.language}]\n" if block.language else ""
        return label + "\n".join(f"    {line}" for line in block.code.split("\n"))
    if isinstance(block, RawBlock):
        return _TAG.sub("", block.markup).strip()
    if isinstance(block, BlockQuote):
        inner = "\n\n".join(_plain_block(child) for child in block.children)
        return "\n".join(f"> {line}" if line else ">" for line in inner.split("\n"))
    if isinstance(block, ListBlock):
        lines: List[str] = []
        for offset, item in enumerate(block.items):
            marker = f"{block.start + offset}. " if block.ordered else "- "
            body = "\n".join(_plain_block(child) for child in item.children)
            pad = " " * len(marker)
            for index, line in enumerate(body.split("\n")):
                lines.append((marker if index == 0 else pad) + line)
        return "\n".join(lines)
    if isinstance(block, ThematicBreak):
        return "-" * 40
    raise TypeError(f"Unknown block {block!r}")


def _plain_table(table: Table) -> str:
    header = [plain_inline(cell.children) for cell in table.header]
    rows = [[plain_inline(cell.children) for cell in row] for row in table.rows]
    widths = [max([len(header[col])] + [len(row[col]) for row in rows] + [3]) for col in range(table.column_count)]

    def fmt(values: List[str]) -> str:
        cells = []
        for col, value in enumerate(values):
            align = table.alignments[col] if col < len(table.alignments) else None
            if align == "right":
                cells.append(value.rjust(widths[col]))
            elif align == "center":
                cells.append(value.center(widths[col]))
            else:
                cells.append(value.ljust(widths[col]))
        return "| " + " | ".join(cells) + " |"

    rule = "|" + "|".join("-" * (w + 2) for w in widths) + "|"
    return "\n".join([fmt(header), rule] + [fmt(row) for row in rows])


__all__ = [
    "MAX_NESTING",
    "Block",
    "BlockQuote",
    "CodeBlock",
    "Document",
    "Emphasis",
    "Heading",
    "Inline",
    "InlineCode",
    "LineBreak",
    "Link",
    "ListBlock",
    "ListItem",
    "Paragraph",
    "RawBlock",
    "RawInline",
    "Strikethrough",
    "Strong",
    "Table",
    "TableCell",
    "Text",
    "ThematicBreak",
    "parse_estimate",
    "parse_inline",
    "plain_inline",
    "highlight_code",
    "highlight_css",
    "render_html",
    "render_plain",
]
