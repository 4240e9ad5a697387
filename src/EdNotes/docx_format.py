from __future__ import annotations

from docx.enum.text import WD_ALIGN_PARAGRAPH
from docx.oxml import OxmlElement
from docx.oxml.ns import qn
from docx.shared import Cm, Pt, RGBColor

A4_WIDTH_MM = 210
A4_HEIGHT_MM = 297

FONT_NAME = "Calibri"
CODE_FONT_NAME = "Consolas"
FONT_SIZE_PT = 11
CODE_FONT_SIZE_PT = 10
LINE_SPACING_PT = 15

HEADING_SIZES_PT = {1: 20, 2: 16, 3: 14, 4: 12, 5: 11, 6: 11}

MARGIN_CM = 2.0

NOTE_FILLS = {
    "info": "DBEAFE",
    "warning": "FEF3C7",
    "success": "DCFCE7",
    "error": "FEE2E2",
}
CODE_FILL = "F3F4F6"
PLACEHOLDER_COLOR = RGBColor(0x6B, 0x72, 0x80)


def apply_page_layout(doc) -> None:
    """A4 pages with even margins."""
    section = doc.sections[0]
    section.page_height = Cm(A4_HEIGHT_MM / 10)
    section.page_width = Cm(A4_WIDTH_MM / 10)
    section.left_margin = Cm(MARGIN_CM)
    section.right_margin = Cm(MARGIN_CM)
    section.top_margin = Cm(MARGIN_CM)
    section.bottom_margin = Cm(MARGIN_CM)


def set_run_font(run, bold: bool = False, italic: bool = False, code: bool = False, size: int | None = None) -> None:
    run.font.name = CODE_FONT_NAME if code else FONT_NAME
    run.font.size = Pt(size or (CODE_FONT_SIZE_PT if code else FONT_SIZE_PT))
    run.bold = bold
    run.italic = italic


def apply_body_paragraph_format(paragraph) -> None:
    paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT
    paragraph.paragraph_format.space_before = Pt(0)
    paragraph.paragraph_format.space_after = Pt(6)
    paragraph.paragraph_format.line_spacing = Pt(LINE_SPACING_PT)
    paragraph.paragraph_format.first_line_indent = Cm(0)


def apply_heading_format(paragraph, level: int) -> None:
    paragraph.alignment = WD_ALIGN_PARAGRAPH.LEFT
    paragraph.paragraph_format.space_before = Pt(12)
    paragraph.paragraph_format.space_after = Pt(6)
    paragraph.paragraph_format.first_line_indent = Cm(0)
    paragraph.paragraph_format.keep_with_next = True
    for run in paragraph.runs:
        set_run_font(run, bold=True, size=HEADING_SIZES_PT.get(level, FONT_SIZE_PT))


def apply_caption_format(paragraph, centered: bool = True) -> None:
    paragraph.alignment = WD_ALIGN_PARAGRAPH.CENTER if centered else WD_ALIGN_PARAGRAPH.LEFT
    paragraph.paragraph_format.space_before = Pt(0)
    paragraph.paragraph_format.space_after = Pt(12)
    paragraph.paragraph_format.first_line_indent = Cm(0)
    for run in paragraph.runs:
        set_run_font(run, italic=True)


def apply_placeholder_format(paragraph) -> None:
    apply_body_paragraph_format(paragraph)
    for run in paragraph.runs:
        set_run_font(run, italic=True)
        run.font.color.rgb = PLACEHOLDER_COLOR


def shade_paragraph(paragraph, fill: str) -> None:
    """Give the paragraph a solid background colour (hex RGB)."""
    p_pr = paragraph._p.get_or_add_pPr()
    for child in list(p_pr):
        if child.tag == qn("w:shd"):
            p_pr.remove(child)
    shd = OxmlElement("w:shd")
    shd.set(qn("w:val"), "clear")
    shd.set(qn("w:color"), "auto")
    shd.set(qn("w:fill"), fill)
    p_pr.append(shd)
