from pathlib import Path

from docx import Document as DocxReader

from EdNotes.model import (
    CodeBlock,
    DemoBlock,
    Document,
    EquationBlock,
    FigureBlock,
    Header,
    ListBlock,
    NoteBlock,
    Paragraph,
    Tab,
    TabsBlock,
)
from EdNotes.renderer_docx import render_document
from EdNotes.resources import InMemoryBlobStore, ResourceMap
from EdNotes.schema import decode_lenient

# 1x1 transparent PNG
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d49484452000000010000000108060000001f15c489"
    "0000000a49444154789c63000100000500010d0a2db40000000049454e44ae426082"
)


def _texts(path: Path) -> list[str]:
    return [p.text for p in DocxReader(path).paragraphs]


def test_render_creates_docx(tmp_path: Path):
    doc = Document(
        blocks=[
            Header(level=1, content="Introduction"),
            Paragraph(content="A **bold** example with a [link](https://example.com)."),
            CodeBlock(language="python", content="print(1)"),
            NoteBlock(style="warning", content="Careful"),
            ListBlock(ordered=True, items=["one", "two"]),
            DemoBlock(demo_type="bubbleSort"),
        ]
    )
    output_file = tmp_path / "out" / "report.docx"
    fallbacks = render_document(doc, output_file)
    assert fallbacks == []
    assert output_file.exists()
    texts = _texts(output_file)
    assert "Introduction" in texts
    assert "A bold example with a link." in texts
    assert "Warning: Careful" in texts
    assert "1. one" in texts and "2. two" in texts
    assert "[Interactive demo: bubbleSort]" in texts
    bold_runs = [run.text for p in DocxReader(output_file).paragraphs for run in p.runs if run.bold]
    assert "bold" in bold_runs


def test_equation_renders_math_and_number(tmp_path: Path):
    doc = Document(blocks=[EquationBlock(content="S = \\pi r^2", caption="Area")])
    out = tmp_path / "eq.docx"
    render_document(doc, out)
    reader = DocxReader(out)
    xml = reader.element.body.xml
    assert "π" in xml
    assert "<m:oMath" in xml
    assert "(1)" in xml
    assert "Equation 1: Area" in [p.text for p in reader.paragraphs]


def test_figures_are_numbered_and_resolved(tmp_path: Path):
    store = InMemoryBlobStore()
    reference = store.put(PNG_BYTES, "image/png")
    resources = ResourceMap({"diagram": reference})
    doc = Document(
        blocks=[
            FigureBlock(src="diagram.png", caption="Flow"),
            FigureBlock(src="missing.png"),
        ]
    )
    out = tmp_path / "fig.docx"
    render_document(doc, out, resources=resources, blob_store=store)
    reader = DocxReader(out)
    texts = [p.text for p in reader.paragraphs]
    assert "Figure 1: Flow" in texts
    assert "Figure 2" in texts
    assert "[Missing image: missing.png]" in texts
    assert len(reader.inline_shapes) == 1


def test_local_images_resolve_against_asset_root(tmp_path: Path):
    (tmp_path / "img.png").write_bytes(PNG_BYTES)
    out = tmp_path / "local.docx"
    render_document(Document(blocks=[FigureBlock(src="img.png")]), out, asset_root=tmp_path)
    assert len(DocxReader(out).inline_shapes) == 1


def test_tabs_become_labelled_sections(tmp_path: Path):
    doc = Document(
        blocks=[
            TabsBlock(
                tabs=[
                    Tab(value="py", label="Python", description="CPython", blocks=[Paragraph(content="py body")]),
                    Tab(value="js", label="JavaScript", blocks=[Paragraph(content="js body")]),
                ]
            )
        ]
    )
    out = tmp_path / "tabs.docx"
    render_document(doc, out)
    texts = _texts(out)
    assert texts[-5:] == ["Python", "CPython", "py body", "JavaScript", "js body"]


def test_unrenderable_blocks_fall_back(tmp_path: Path):
    store = InMemoryBlobStore()
    reference = store.put(b"not an image")
    doc = decode_lenient(
        [
            {"type": "video", "src": "clip.mp4"},
            {"type": "imageResource", "id": "broken", "src": reference},
            {"type": "paragraph", "content": "still here"},
        ]
    )
    out = tmp_path / "fallback.docx"
    fallbacks = render_document(doc, out, blob_store=store)
    assert [fallback.path for fallback in fallbacks] == [(0,), (1,)]
    assert "still here" in _texts(out)

