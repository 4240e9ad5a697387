from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any, ClassVar, List, Tuple, Union

NOTE_STYLES = ("info", "warning", "success", "error")

Path = Tuple[int, ...]


def new_uid() -> str:
    return uuid.uuid4().hex


@dataclass
class BaseBlock:
    """Base class for block-level nodes.

    ``uid`` is a stable identity that survives copy-on-write edits and is never
    serialized. ``extra`` holds wire fields the variant does not declare; it is
    only populated by lenient decoding.
    """

    TYPE: ClassVar[str] = ""

    uid: str = field(default_factory=new_uid, compare=False, repr=False, kw_only=True)
    extra: dict[str, Any] = field(default_factory=dict, repr=False, kw_only=True)


@dataclass
class Header(BaseBlock):
    TYPE: ClassVar[str] = "header"

    level: int
    content: str


@dataclass
class Paragraph(BaseBlock):
    TYPE: ClassVar[str] = "paragraph"

    content: str


@dataclass
class CodeBlock(BaseBlock):
    TYPE: ClassVar[str] = "code"

    language: str
    content: str


@dataclass
class NoteBlock(BaseBlock):
    TYPE: ClassVar[str] = "note"

    style: str
    content: str


@dataclass
class FigureBlock(BaseBlock):
    TYPE: ClassVar[str] = "figure"

    src: str
    caption: str | None = None


@dataclass
class EquationBlock(BaseBlock):
    TYPE: ClassVar[str] = "equation"

    content: str
    caption: str | None = None


@dataclass
class ListBlock(BaseBlock):
    TYPE: ClassVar[str] = "list"

    ordered: bool
    items: List[str]


@dataclass
class DemoBlock(BaseBlock):
    TYPE: ClassVar[str] = "demo"

    demo_type: str
    image_id: str | None = None
    args: dict[str, Any] | None = None


@dataclass
class ImageResourceBlock(BaseBlock):
    TYPE: ClassVar[str] = "imageResource"

    resource_id: str
    src: str
    alt: str | None = None


@dataclass
class Tab:
    value: str
    label: str
    blocks: List["Block"]
    description: str | None = None
    uid: str = field(default_factory=new_uid, compare=False, repr=False, kw_only=True)
    extra: dict[str, Any] = field(default_factory=dict, repr=False, kw_only=True)


@dataclass
class TabsBlock(BaseBlock):
    TYPE: ClassVar[str] = "tabs"

    tabs: List[Tab]
    default_value: str | None = None


@dataclass
class UnknownBlock(BaseBlock):
    """Undecodable payload kept verbatim so re-serialization loses nothing."""

    TYPE: ClassVar[str] = "unknown"

    data: Any
    reason: str


Block = Union[
    Header,
    Paragraph,
    CodeBlock,
    NoteBlock,
    FigureBlock,
    EquationBlock,
    ListBlock,
    DemoBlock,
    ImageResourceBlock,
    TabsBlock,
    UnknownBlock,
]

BLOCK_CLASSES: dict[str, type] = {
    cls.TYPE: cls
    for cls in (
        Header,
        Paragraph,
        CodeBlock,
        NoteBlock,
        FigureBlock,
        EquationBlock,
        ListBlock,
        DemoBlock,
        ImageResourceBlock,
        TabsBlock,
    )
}


@dataclass
class Document:
    blocks: List[Block] = field(default_factory=list)
    metadata: dict[str, Any] | None = None


@dataclass
class InlineElement:
    """Base class for inline nodes."""


@dataclass
class InlineText(InlineElement):
    text: str
    bold: bool = False
    italic: bool = False


@dataclass
class InlineLink(InlineElement):
    text: str
    url: str


def new_block(block_type: str) -> Block:
    """Return the starter block the editor inserts for an "add block" action."""
    if block_type == "header":
        return Header(level=2, content="New Section")
    if block_type == "paragraph":
        return Paragraph(content="Enter paragraph text here...")
    if block_type == "code":
        return CodeBlock(language="javascript", content='console.log("Hello");')
    if block_type == "note":
        return NoteBlock(style="info", content="Note content")
    if block_type == "figure":
        return FigureBlock(src="image.jpg", caption="Figure caption")
    if block_type == "equation":
        return EquationBlock(content="x = \\frac{-b \\pm \\sqrt{b^2 - 4ac}}{2a}")
    if block_type == "list":
        return ListBlock(ordered=False, items=["Item 1", "Item 2"])
    if block_type == "demo":
        return DemoBlock(demo_type="bubbleSort", args={})
    if block_type == "imageResource":
        return ImageResourceBlock(resource_id="image", src="image.jpg")
    if block_type == "tabs":
        return TabsBlock(
            default_value="tab-1",
            tabs=[
                Tab(
                    value="tab-1",
                    label="Tab 1",
                    description="Example tab",
                    blocks=[Paragraph(content="Tab 1 content")],
                ),
                Tab(
                    value="tab-2",
                    label="Tab 2",
                    description="Another tab",
                    blocks=[Paragraph(content="Tab 2 content")],
                ),
            ],
        )
    raise ValueError(f"Unknown block type: {block_type!r}")
