"""HTML preview for a block document.

Every block is rendered by one dispatcher; tab panels recurse into it. A block
that fails to render is replaced by an inline marker and recorded as a
``RenderFallback`` so the rest of the page is unaffected.
"""

from __future__ import annotations

import html
import logging
from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Mapping, assert_never

from .demos import DemoProvider
from .errors import RenderFallback, format_path
from .markdown_parser import render_inline
from .model import (
    Block,
    CodeBlock,
    DemoBlock,
    Document,
    EquationBlock,
    FigureBlock,
    Header,
    ImageResourceBlock,
    ListBlock,
    NoteBlock,
    Paragraph,
    Path,
    TabsBlock,
    UnknownBlock,
)

logger = logging.getLogger(__name__)

MATHJAX_URL = "https://cdn.jsdelivr.net/npm/mathjax@3/es5/tex-mml-chtml.js"

PAGE_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>{title}</title>
<script>
window.MathJax = {{
  tex: {{displayMath: [['\\\\[', '\\\\]']]}}
}};
</script>
<script id="MathJax-script" async src="{mathjax_url}"></script>
</head>
<body>
{body}
</body>
</html>
"""


@dataclass
class RenderedDocument:
    html: str
    fallbacks: list[RenderFallback] = field(default_factory=list)


@dataclass
class RenderState:
    fallbacks: list[RenderFallback] = field(default_factory=list)


def _esc(value: object) -> str:
    return html.escape(str(value), quote=True)


def _dom_id(prefix: str, path: Path) -> str:
    return "-".join([prefix, *(str(i) for i in path)])


class HtmlRenderer:
    def __init__(self, demos: DemoProvider | None = None, resources: Mapping[str, str] | None = None) -> None:
        self.demos = demos
        self.resources: Mapping[str, str] = resources if resources is not None else {}

    def render(self, document: Document) -> RenderedDocument:
        state = RenderState()
        parts = [self._render_isolated(block, (index,), state) for index, block in enumerate(document.blocks)]
        body = "\n".join(parts)
        return RenderedDocument(html=f'<div class="ednotes-document">\n{body}\n</div>', fallbacks=state.fallbacks)

    def render_page(self, document: Document, title: str = "EdNotes", mathjax_url: str = MATHJAX_URL) -> RenderedDocument:
        rendered = self.render(document)
        page = PAGE_TEMPLATE.format(title=_esc(title), mathjax_url=_esc(mathjax_url), body=rendered.html)
        return RenderedDocument(html=page, fallbacks=rendered.fallbacks)

    def _render_isolated(self, block: Block, path: Path, state: RenderState) -> str:
        try:
            return self._dispatch_block(block, path, state)
        except Exception as exc:
            reason = f"{type(exc).__name__}: {exc}"
            logger.warning("Block %s could not be rendered: %s", format_path(path), reason)
            return self._fallback(path, reason, state)

    def _fallback(self, path: Path, reason: str, state: RenderState) -> str:
        state.fallbacks.append(RenderFallback(path, reason))
        return (
            f'<div class="render-fallback" role="alert" data-path="{_esc(format_path(path))}">'
            f"Block could not be rendered: {_esc(reason)}</div>"
        )

    def _dispatch_block(self, block: Block, path: Path, state: RenderState) -> str:
        if isinstance(block, Header):
            return f"<h{block.level}>{_esc(block.content)}</h{block.level}>"
        if isinstance(block, Paragraph):
            return f'<p class="paragraph">{render_inline(block.content)}</p>'
        if isinstance(block, CodeBlock):
            return (
                f'<pre class="code-block"><code class="language-{_esc(block.language)}">'
                f"{_esc(block.content)}</code></pre>"
            )
        if isinstance(block, NoteBlock):
            return f'<div class="note note-{_esc(block.style)}" role="note">{_esc(block.content)}</div>'
        if isinstance(block, FigureBlock):
            return self._figure(block)
        if isinstance(block, EquationBlock):
            return self._equation(block)
        if isinstance(block, ListBlock):
            tag = "ol" if block.ordered else "ul"
            items = "".join(f"<li>{_esc(item)}</li>" for item in block.items)
            return f'<{tag} class="list">{items}</{tag}>'
        if isinstance(block, ImageResourceBlock):
            return self._image_resource(block)
        if isinstance(block, DemoBlock):
            return self._demo(block)
        if isinstance(block, TabsBlock):
            return self._tabs(block, path, state)
        if isinstance(block, UnknownBlock):
            logger.debug("Unknown block at %s: %s", format_path(path), block.reason)
            return self._fallback(path, block.reason, state)
        assert_never(block)

    def _figure(self, block: FigureBlock) -> str:
        pending = block.extra.get("content")
        if isinstance(pending, str) and pending.strip():
            return f'<div class="figure-pending" role="note"><strong>TODO:</strong> {_esc(pending)}</div>'
        src = self._resolve_src(block.src)
        caption = f"<figcaption>{_esc(block.caption)}</figcaption>" if block.caption else ""
        return f'<figure class="figure"><img src="{_esc(src)}" alt="{_esc(block.caption or "")}">{caption}</figure>'

    def _equation(self, block: EquationBlock) -> str:
        caption = f'<p class="equation-caption">{_esc(block.caption)}</p>' if block.caption else ""
        return f'<div class="equation"><div class="math">\\[{_esc(block.content)}\\]</div>{caption}</div>'

    def _image_resource(self, block: ImageResourceBlock) -> str:
        src = self.resources.get(block.resource_id, block.src)
        resource_id = _esc(block.resource_id)
        return (
            f'<div class="image-resource" data-resource-id="{resource_id}">'
            f'<img src="{_esc(src)}" alt="{_esc(block.alt or "")}">'
            f'<label class="image-resource-replace">Replace image'
            f'<input type="file" accept="image/*" data-resource-id="{resource_id}" hidden></label>'
            "</div>"
        )

    def _demo(self, block: DemoBlock) -> str:
        demo = self.demos.get(block.demo_type) if self.demos is not None else None
        if demo is None:
            logger.info("Demo %r is not registered", block.demo_type)
            return (
                f'<div class="demo demo-missing" role="alert" data-demo="{_esc(block.demo_type)}">'
                f"Demo not available: {_esc(block.demo_type)}</div>"
            )
        kwargs = {"image_src": self._demo_image(block), **(block.args or {})}
        output = demo(**kwargs)
        body = "" if output is None else str(output)
        return f'<div class="demo" data-demo="{_esc(block.demo_type)}">{body}</div>'

    def _demo_image(self, block: DemoBlock) -> str | None:
        if block.image_id is not None and block.image_id in self.resources:
            return self.resources[block.image_id]
        return next(iter(self.resources.values()), None)

    def _resolve_src(self, src: str) -> str:
        if src in self.resources:
            return self.resources[src]
        stem = PurePosixPath(src).stem
        return self.resources.get(stem, src)

    def _tabs(self, block: TabsBlock, path: Path, state: RenderState) -> str:
        base = _dom_id("tabs", path)
        if not block.tabs:
            return f'<div class="tabs tabs-empty" id="{base}"></div>'
        values = [tab.value for tab in block.tabs]
        active = block.default_value if block.default_value in values else values[0]
        buttons: list[str] = []
        panels: list[str] = []
        for index, tab in enumerate(block.tabs):
            selected = tab.value == active
            tab_id = f"{base}-tab-{index}"
            panel_id = f"{base}-panel-{index}"
            buttons.append(
                f'<button type="button" role="tab" id="{tab_id}" aria-controls="{panel_id}" '
                f'aria-selected="{"true" if selected else "false"}" tabindex="{0 if selected else -1}" '
                f'data-value="{_esc(tab.value)}">{_esc(tab.label)}</button>'
            )
            children = [
                self._render_isolated(child, (*path, index, child_index), state)
                for child_index, child in enumerate(tab.blocks)
            ]
            description = f'<p class="tab-description">{_esc(tab.description)}</p>' if tab.description else ""
            hidden = "" if selected else ' inert aria-hidden="true"'
            panels.append(
                f'<div role="tabpanel" id="{panel_id}" aria-labelledby="{tab_id}" '
                f'data-state="{"active" if selected else "inactive"}"{hidden}>'
                f"{description}{''.join(children)}</div>"
            )
        return (
            f'<div class="tabs" id="{base}" data-active="{_esc(active)}">'
            f'<div role="tablist">{"".join(buttons)}</div>'
            f'{"".join(panels)}</div>'
        )


def render(
    document: Document,
    resources: Mapping[str, str] | None = None,
    registry: DemoProvider | None = None,
) -> RenderedDocument:
    return HtmlRenderer(registry, resources).render(document)


def render_page(
    document: Document,
    resources: Mapping[str, str] | None = None,
    registry: DemoProvider | None = None,
    title: str = "EdNotes",
) -> RenderedDocument:
    """Standalone HTML page with the MathJax typesetter loaded."""
    return HtmlRenderer(registry, resources).render_page(document, title=title)
