from __future__ import annotations

import logging
import re
from functools import lru_cache
from typing import Iterable, List

from markdown_it import MarkdownIt
from mdit_py_plugins.texmath import texmath_plugin

from .model import (
    Block,
    CodeBlock,
    Document,
    EquationBlock,
    FigureBlock,
    Header,
    InlineElement,
    InlineLink,
    InlineText,
    ListBlock,
    NoteBlock,
    Paragraph,
)

logger = logging.getLogger(__name__)

# Paragraph content may only use these inline constructs; nothing block-level.
INLINE_RULES = ["emphasis", "link", "escape", "newline"]

ALERT_STYLES = {
    "NOTE": "info",
    "INFO": "info",
    "IMPORTANT": "info",
    "TIP": "success",
    "SUCCESS": "success",
    "WARNING": "warning",
    "CAUTION": "warning",
    "ERROR": "error",
    "DANGER": "error",
}

_ALERT_RE = re.compile(r"^\[!(?P<kind>[A-Za-z]+)\]\s*")


@lru_cache(maxsize=1)
def inline_markdown() -> MarkdownIt:
    """Parser for paragraph markup: bold, italic and links only."""
    return MarkdownIt("zero").enable(INLINE_RULES)


def render_inline(text: str) -> str:
    return inline_markdown().renderInline(text)


def parse_inline_markup(text: str) -> List[InlineElement]:
    tokens = inline_markdown().parseInline(text)
    if not tokens:
        return []
    return _parse_inline(tokens[0].children or [])


def parse_markdown(text: str, default_language: str = "text") -> Document:
    """Import a Markdown document as a block list."""
    md = MarkdownIt("commonmark").use(texmath_plugin).enable(["table"])
    tokens = md.parse(text)
    return Document(blocks=_parse_blocks(tokens, default_language), metadata={"source": "markdown"})


def _parse_blocks(tokens, default_language: str) -> list[Block]:
    blocks: List[Block] = []
    i = 0
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == "heading_open":
            level = int(tok.tag[1])
            inline = tokens[i + 1]
            blocks.append(Header(level=level, content=inline.content.strip()))
            i += 3
        elif tok.type == "paragraph_open":
            inline = tokens[i + 1]
            blocks.append(_paragraph_block(inline))
            i += 3
        elif tok.type in ("bullet_list_open", "ordered_list_open"):
            close = _matching_close(tokens, i)
            items = _list_items(tokens[i + 1 : close], item_level=tok.level + 1)
            blocks.append(ListBlock(ordered=tok.type == "ordered_list_open", items=items))
            i = close + 1
        elif tok.type in ("fence", "code_block"):
            language = tok.info.split()[0] if tok.info.strip() else default_language
            blocks.append(CodeBlock(language=language, content=tok.content.rstrip("\n")))
            i += 1
        elif tok.type in ("math_block", "math_block_eqno"):
            caption = f"({tok.info})" if tok.type == "math_block_eqno" and tok.info else None
            blocks.append(EquationBlock(content=tok.content.strip(), caption=caption))
            i += 1
        elif tok.type == "blockquote_open":
            close = _matching_close(tokens, i)
            note = _note_from_quote(tokens[i + 1 : close])
            if note is not None:
                blocks.append(note)
            i = close + 1
        elif tok.type == "table_open":
            logger.debug("Skipping table at line %s; tables have no block type", _line(tok))
            i = _matching_close(tokens, i) + 1
        else:
            i += 1
    return blocks


def _paragraph_block(inline) -> Block:
    content = inline.content or ""
    display_latex = _extract_display_math_inline(content)
    if display_latex is not None:
        return EquationBlock(content=display_latex)
    children = [child for child in inline.children or [] if child.type != "softbreak"]
    if len(children) == 1 and children[0].type == "image":
        image = children[0]
        caption = image.attrGet("title") or image.content or None
        return FigureBlock(src=image.attrGet("src") or "", caption=caption)
    return Paragraph(content=content.strip())


def _list_items(tokens, item_level: int) -> list[str]:
    items: list[str] = []
    parts: list[str] | None = None
    for tok in tokens:
        if tok.type == "list_item_open" and tok.level == item_level:
            parts = []
        elif tok.type == "list_item_close" and tok.level == item_level:
            items.append(" ".join(part for part in parts or [] if part))
            parts = None
        elif tok.type == "inline" and parts is not None:
            parts.append(tok.content.strip())
    return items


def _note_from_quote(tokens) -> NoteBlock | None:
    paragraphs = [tok.content.strip() for tok in tokens if tok.type == "inline" and tok.content.strip()]
    if not paragraphs:
        return None
    style = "info"
    match = _ALERT_RE.match(paragraphs[0])
    if match and match.group("kind").upper() in ALERT_STYLES:
        style = ALERT_STYLES[match.group("kind").upper()]
        paragraphs[0] = paragraphs[0][match.end() :].strip()
        paragraphs = [p for p in paragraphs if p]
    return NoteBlock(style=style, content="\n\n".join(paragraphs))


def _matching_close(tokens, index: int) -> int:
    open_tok = tokens[index]
    close_type = open_tok.type.replace("_open", "_close")
    for j in range(index + 1, len(tokens)):
        if tokens[j].type == close_type and tokens[j].level == open_tok.level:
            return j
    return len(tokens) - 1


def _line(tok) -> int | None:
    return tok.map[0] + 1 if tok.map else None


def _parse_inline(children: Iterable) -> List[InlineElement]:
    result: List[InlineElement] = []
    bold = False
    italic = False
    i = 0
    children_list = list(children)
    while i < len(children_list):
        tok = children_list[i]
        if tok.type == "text":
            result.append(InlineText(tok.content, bold=bold, italic=italic))
            i += 1
        elif tok.type in {"softbreak", "hardbreak"}:
            result.append(InlineText(" ", bold=bold, italic=italic))
            i += 1
        elif tok.type == "strong_open":
            bold = True
            i += 1
        elif tok.type == "strong_close":
            bold = False
            i += 1
        elif tok.type == "em_open":
            italic = True
            i += 1
        elif tok.type == "em_close":
            italic = False
            i += 1
        elif tok.type == "link_open":
            href = tok.attrGet("href") or ""
            link_text, consumed = _collect_text(children_list, i + 1, "link_close")
            result.append(InlineLink(text=link_text or href, url=href))
            i = consumed + 1
        else:
            i += 1
    return result


def _collect_text(tokens, index: int, closing_type: str) -> tuple[str, int]:
    texts: list[str] = []
    i = index
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == closing_type:
            break
        if tok.type == "text":
            texts.append(tok.content)
        i += 1
    return "".join(texts), i


def _extract_display_math_inline(text: str) -> str | None:
    stripped = text.strip()
    if not (stripped.startswith("$$") and stripped.endswith("$$")) or len(stripped) < 4:
        return None
    inner = stripped[2:-2].strip()
    return inner or None
