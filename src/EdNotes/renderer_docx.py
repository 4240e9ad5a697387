from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path, PurePosixPath
from typing import BinaryIO, Iterable, Mapping, assert_never

from docx import Document as DocxDocument
from docx.enum.table import WD_TABLE_ALIGNMENT
from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Cm, Pt

from . import docx_format
from .errors import RenderFallback, format_path
from .markdown_parser import parse_inline_markup
from .model import (
    Block,
    CodeBlock,
    DemoBlock,
    Document,
    EquationBlock,
    FigureBlock,
    Header,
    ImageResourceBlock,
    InlineElement,
    InlineLink,
    InlineText,
    ListBlock,
    NoteBlock,
    Paragraph,
    TabsBlock,
    UnknownBlock,
)
from .model import Path as BlockPath
from .resources import BlobStore

logger = logging.getLogger(__name__)

NOTE_LABELS = {"info": "Note", "warning": "Warning", "success": "Tip", "error": "Important"}


@dataclass
class RenderState:
    figure_counter: int = 0
    equation_counter: int = 0
    asset_root: Path | None = None
    resources: Mapping[str, str] = field(default_factory=dict)
    blob_store: BlobStore | None = None
    fallbacks: list[RenderFallback] = field(default_factory=list)


LATEX_TO_UNICODE = {
    r"\pm": "±",
    r"\times": "×",
    r"\cdot": "·",
    r"\leq": "≤",
    r"\geq": "≥",
    r"\neq": "≠",
    r"\infty": "∞",
    r"\sum": "∑",
    r"\pi": "π",
    r"\alpha": "α",
    r"\beta": "β",
    r"\gamma": "γ",
    r"\delta": "δ",
    r"\epsilon": "ε",
    r"\theta": "θ",
    r"\lambda": "λ",
    r"\mu": "μ",
    r"\sigma": "σ",
    r"\phi": "φ",
    r"\omega": "ω",
}


def render_document(
    doc: Document,
    output_path: str | Path,
    resources: Mapping[str, str] | None = None,
    blob_store: BlobStore | None = None,
    asset_root: Path | None = None,
) -> list[RenderFallback]:
    """Write ``doc`` as a .docx file and return the blocks that fell back."""
    output_path = Path(output_path)
    state = RenderState(asset_root=asset_root, resources=resources or {}, blob_store=blob_store)
    docx = DocxDocument()
    docx_format.apply_page_layout(docx)

    for index, block in enumerate(doc.blocks):
        _render_isolated(docx, block, (index,), state)

    output_path.parent.mkdir(parents=True, exist_ok=True)
    docx.save(output_path)
    return state.fallbacks


def _render_isolated(docx: DocxDocument, block: Block, path: BlockPath, state: RenderState) -> None:
    try:
        _dispatch_block(docx, block, path, state)
    except Exception as exc:
        reason = f"{type(exc).__name__}: {exc}"
        logger.warning("Block %s could not be exported: %s", format_path(path), reason)
        _fallback(docx, path, reason, state)


def _fallback(docx: DocxDocument, path: BlockPath, reason: str, state: RenderState) -> None:
    state.fallbacks.append(RenderFallback(path, reason))
    _render_placeholder(docx, f"[Block {format_path(path)} could not be rendered: {reason}]")


def _dispatch_block(docx: DocxDocument, block: Block, path: BlockPath, state: RenderState) -> None:
    if isinstance(block, Header):
        _render_heading(docx, block)
    elif isinstance(block, Paragraph):
        _render_paragraph(docx, parse_inline_markup(block.content))
    elif isinstance(block, CodeBlock):
        _render_code_block(docx, block)
    elif isinstance(block, NoteBlock):
        _render_note(docx, block)
    elif isinstance(block, FigureBlock):
        _render_figure(docx, block, state)
    elif isinstance(block, EquationBlock):
        _render_equation_block(docx, block, state)
    elif isinstance(block, ListBlock):
        _render_list(docx, block)
    elif isinstance(block, ImageResourceBlock):
        reference = state.resources.get(block.resource_id, block.src)
        _add_centered_image(docx, reference, state)
    elif isinstance(block, DemoBlock):
        _render_placeholder(docx, f"[Interactive demo: {block.demo_type}]")
    elif isinstance(block, TabsBlock):
        _render_tabs(docx, block, path, state)
    elif isinstance(block, UnknownBlock):
        _fallback(docx, path, block.reason, state)
    else:
        assert_never(block)


def _render_heading(docx: DocxDocument, heading: Header) -> None:
    paragraph = docx.add_paragraph(heading.content)
    docx_format.apply_heading_format(paragraph, heading.level)


def _render_paragraph(docx: DocxDocument, inline_elements: Iterable[InlineElement]) -> None:
    paragraph = docx.add_paragraph()
    for inline in inline_elements:
        if isinstance(inline, InlineText):
            run = paragraph.add_run(inline.text)
            docx_format.set_run_font(run, bold=inline.bold, italic=inline.italic)
        elif isinstance(inline, InlineLink):
            run = paragraph.add_run(inline.text)
            docx_format.set_run_font(run)
            run.font.underline = True
    docx_format.apply_body_paragraph_format(paragraph)


def _render_code_block(docx: DocxDocument, block: CodeBlock) -> None:
    paragraph = docx.add_paragraph()
    run = paragraph.add_run(block.content)
    docx_format.set_run_font(run, code=True)
    paragraph.paragraph_format.first_line_indent = Cm(0)
    paragraph.paragraph_format.space_before = Pt(0)
    paragraph.paragraph_format.space_after = Pt(docx_format.LINE_SPACING_PT)
    paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT
    docx_format.shade_paragraph(paragraph, docx_format.CODE_FILL)


def _render_note(docx: DocxDocument, block: NoteBlock) -> None:
    paragraph = docx.add_paragraph()
    label = paragraph.add_run(f"{NOTE_LABELS.get(block.style, 'Note')}: ")
    docx_format.set_run_font(label, bold=True)
    body = paragraph.add_run(block.content)
    docx_format.set_run_font(body)
    docx_format.apply_body_paragraph_format(paragraph)
    docx_format.shade_paragraph(paragraph, docx_format.NOTE_FILLS.get(block.style, docx_format.NOTE_FILLS["info"]))


def _render_list(docx: DocxDocument, block: ListBlock) -> None:
    for idx, item in enumerate(block.items, start=1):
        paragraph = docx.add_paragraph()
        prefix = f"{idx}. " if block.ordered else "• "
        run = paragraph.add_run(prefix + item)
        docx_format.set_run_font(run)
        docx_format.apply_body_paragraph_format(paragraph)
        paragraph.paragraph_format.left_indent = Cm(0.75)
        paragraph.paragraph_format.space_after = Pt(0)


def _render_figure(docx: DocxDocument, block: FigureBlock, state: RenderState) -> None:
    pending = block.extra.get("content")
    if isinstance(pending, str) and pending.strip():
        _render_placeholder(docx, f"TODO: {pending.strip()}")
        return

    _add_centered_image(docx, _resolve_src(block.src, state.resources), state)

    state.figure_counter += 1
    caption_text = f"Figure {state.figure_counter}"
    if block.caption:
        caption_text += f": {block.caption}"
    caption_paragraph = docx.add_paragraph(caption_text)
    docx_format.apply_caption_format(caption_paragraph)


def _render_equation_block(docx: DocxDocument, block: EquationBlock, state: RenderState) -> None:
    state.equation_counter += 1
    number = state.equation_counter

    # Two-column table keeps the formula centred and the number at the right edge
    section = docx.sections[0]
    text_width_cm = (section.page_width - section.left_margin - section.right_margin) / 360000
    number_width_cm = 1.5
    formula_width_cm = text_width_cm - number_width_cm

    table = docx.add_table(rows=1, cols=2)
    table.alignment = WD_TABLE_ALIGNMENT.CENTER
    table.autofit = False
    table.columns[0].width = Cm(formula_width_cm)
    table.columns[1].width = Cm(number_width_cm)
    _clear_table_borders(table)

    p_formula = table.cell(0, 0).paragraphs[0]
    p_formula.paragraph_format.first_line_indent = Cm(0)
    p_formula.alignment = WD_ALIGN_PARAGRAPH.CENTER
    _append_math(p_formula, _latex_to_plain_text(block.content))

    p_num = table.cell(0, 1).paragraphs[0]
    p_num.paragraph_format.first_line_indent = Cm(0)
    p_num.alignment = WD_ALIGN_PARAGRAPH.RIGHT
    run_number = p_num.add_run(f"({number})")
    docx_format.set_run_font(run_number)

    if block.caption:
        caption_paragraph = docx.add_paragraph(f"Equation {number}: {block.caption}")
        docx_format.apply_caption_format(caption_paragraph)


def _render_tabs(docx: DocxDocument, block: TabsBlock, path: BlockPath, state: RenderState) -> None:
    for tab_index, tab in enumerate(block.tabs):
        label = docx.add_paragraph()
        run = label.add_run(tab.label)
        docx_format.set_run_font(run, bold=True)
        docx_format.apply_body_paragraph_format(label)
        label.paragraph_format.keep_with_next = True
        if tab.description:
            description = docx.add_paragraph(tab.description)
            docx_format.apply_caption_format(description, centered=False)
        for child_index, child in enumerate(tab.blocks):
            _render_isolated(docx, child, (*path, tab_index, child_index), state)


def _render_placeholder(docx: DocxDocument, text: str) -> None:
    paragraph = docx.add_paragraph(text)
    docx_format.apply_placeholder_format(paragraph)


def _add_centered_image(docx: DocxDocument, reference: str, state: RenderState) -> None:
    paragraph = docx.add_paragraph()
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER
    run = paragraph.add_run()
    try:
        image = _open_image(reference, state)
        try:
            run.add_picture(image, width=Cm(12))
        finally:
            if not isinstance(image, str):
                image.close()
    except FileNotFoundError:
        run.add_text(f"[Missing image: {reference}]")
    docx_format.set_run_font(run)


def _open_image(reference: str, state: RenderState) -> BinaryIO | str:
    if state.blob_store is not None and reference in state.blob_store:
        return state.blob_store.resolve(reference)
    image_path = Path(reference)
    if state.asset_root:
        candidate = state.asset_root / reference
        if candidate.exists():
            image_path = candidate
    if not image_path.is_file():
        raise FileNotFoundError(reference)
    return str(image_path)


def _resolve_src(src: str, resources: Mapping[str, str]) -> str:
    if src in resources:
        return resources[src]
    return resources.get(PurePosixPath(src).stem, src)


def _latex_to_plain_text(expr: str) -> str:
    """Convert a small subset of LaTeX commands to Unicode glyphs for DOCX text."""
    text = expr.strip()
    for latex, uni in LATEX_TO_UNICODE.items():
        text = text.replace(latex, uni)
    return text


def _append_math(paragraph, text: str) -> None:
    """Insert a simple Word math object centered in the paragraph."""
    omath_para = OxmlElement("m:oMathPara")
    omath_para_pr = OxmlElement("m:oMathParaPr")
    jc = OxmlElement("m:jc")
    jc.set(qn("m:val"), "center")
    omath_para_pr.append(jc)
    omath_para.append(omath_para_pr)
    o_math = OxmlElement("m:oMath")

    run = OxmlElement("m:r")
    text_el = OxmlElement("m:t")
    text_el.text = text
    run.append(text_el)
    o_math.append(run)
    omath_para.append(o_math)
    paragraph._p.append(omath_para)


def _clear_table_borders(table) -> None:
    tbl_pr = table._element.tblPr
    if tbl_pr is None:
        return
    for child in list(tbl_pr):
        if child.tag == qn("w:tblBorders"):
            tbl_pr.remove(child)
    borders = OxmlElement("w:tblBorders")
    for border_name in ("top", "left", "bottom", "right", "insideH", "insideV"):
        border = OxmlElement(f"w:{border_name}")
        border.set(qn("w:val"), "nil")
        borders.append(border)
    tbl_pr.append(borders)
