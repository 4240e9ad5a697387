"""Editor session: one document being authored against an article store."""

from __future__ import annotations

import json
import logging
from dataclasses import asdict, dataclass
from pathlib import Path
from typing import Any, Mapping, Protocol

from .codec import JsonCodec, get_codec
from .demos import DemoProvider
from .errors import ParseError, SessionError, ValidationError
from .model import Document
from .renderer_html import HtmlRenderer, RenderedDocument
from .resources import BlobStore, DirectoryBlobStore, InMemoryBlobStore, ResourceMap, upload_image
from .schema import validate
from .settings import EditorSettings
from .sync import DualViewSynchronizer
from .tree import BlockTree

logger = logging.getLogger(__name__)


@dataclass
class ArticleRecord:
    id: int
    title: str
    content: str
    category_id: int | None = None


@dataclass
class ArticleMetadata:
    title: str = ""
    description: str = ""
    category_id: int | None = None


class ArticleStore(Protocol):
    def create(self, title: str, content: str, category_id: int | None = None) -> ArticleRecord: ...

    def fetch(self, article_id: int) -> ArticleRecord: ...

    def update(self, article_id: int, payload: Mapping[str, Any]) -> ArticleRecord: ...


class InMemoryArticleStore:
    def __init__(self) -> None:
        self._articles: dict[int, ArticleRecord] = {}
        self._next_id = 1

    def create(self, title: str, content: str, category_id: int | None = None) -> ArticleRecord:
        record = ArticleRecord(id=self._next_id, title=title, content=content, category_id=category_id)
        self._articles[record.id] = record
        self._next_id += 1
        return record

    def fetch(self, article_id: int) -> ArticleRecord:
        try:
            return self._articles[article_id]
        except KeyError:
            raise KeyError(f"Article {article_id} not found") from None

    def update(self, article_id: int, payload: Mapping[str, Any]) -> ArticleRecord:
        current = self.fetch(article_id)
        record = ArticleRecord(
            id=article_id,
            title=payload.get("title", current.title),
            content=payload.get("content", current.content),
            category_id=payload.get("categoryId", current.category_id),
        )
        self._articles[article_id] = record
        return record


class EditorSession:
    def __init__(
        self,
        store: ArticleStore,
        demos: DemoProvider | None = None,
        settings: EditorSettings | None = None,
        blob_store: BlobStore | None = None,
    ) -> None:
        self.store = store
        self.settings = settings or EditorSettings()
        if blob_store is None:
            blob_store = DirectoryBlobStore(self.settings.blob_dir) if self.settings.blob_dir else InMemoryBlobStore()
        self.blob_store = blob_store
        self.tree = BlockTree()
        self.sync = DualViewSynchronizer(self.tree, codec=get_codec(self.settings.raw_format, self.settings.indent))
        self.resources = ResourceMap()
        self.renderer = HtmlRenderer(demos, self.resources)
        self.metadata = ArticleMetadata()
        self.article_id: int | None = None
        self.preview: RenderedDocument = self.renderer.render(self.document)
        self.sync.subscribe(self._on_document)
        self.resources.subscribe(self._on_resource)

    @property
    def document(self) -> Document:
        return self.tree.document

    def new_document(self) -> Document:
        self.article_id = None
        self.metadata = ArticleMetadata()
        return self._load(Document())

    def load_article(self, article_id: int) -> Document:
        try:
            record = self.store.fetch(article_id)
        except KeyError as exc:
            raise SessionError(f"Article {article_id} not found") from exc
        # Blank content is an empty article.
        content = record.content if record.content and record.content.strip() else "[]"
        try:
            document = JsonCodec().parse(content)
        except (ParseError, ValidationError) as exc:
            raise SessionError(f"Article {article_id} has invalid content: {exc}") from exc
        self.article_id = record.id
        self.metadata = ArticleMetadata(title=record.title, category_id=record.category_id)
        logger.info("Loaded article %s (%d blocks)", record.id, len(document.blocks))
        return self._load(document)

    def load_content(self, text: str) -> Document:
        """Strictly parse raw text in the session's format and make it the document."""
        return self._load(self.sync.codec.parse(text))

    def save(self) -> ArticleRecord:
        title = self.metadata.title.strip()
        if not title:
            raise SessionError("Article title is required")
        content = JsonCodec().compact(self.document)
        if self.article_id is None:
            record = self.store.create(title, content, self.metadata.category_id)
            self.article_id = record.id
            logger.info("Created article %s", record.id)
        else:
            payload = {"title": title, "content": content, "categoryId": self.metadata.category_id}
            try:
                record = self.store.update(self.article_id, payload)
            except KeyError as exc:
                raise SessionError(f"Article {self.article_id} not found") from exc
            logger.info("Updated article %s", record.id)
        return record

    def upload_image(self, resource_id: str, data: bytes, content_type: str | None = None) -> str:
        return upload_image(self.resources, self.blob_store, resource_id, data, content_type)

    def save_draft(self, path: str | Path) -> Path:
        """Write the blocks, metadata and article id to a local draft file."""
        path = Path(path)
        draft = {
            "blocks": json.loads(JsonCodec().compact(self.document)),
            "metadata": asdict(self.metadata),
            "articleId": self.article_id,
        }
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(json.dumps(draft, indent=2, ensure_ascii=False), encoding="utf-8")
        logger.debug("Draft saved to %s", path)
        return path

    def restore_draft(self, path: str | Path) -> Document:
        draft = json.loads(Path(path).read_text(encoding="utf-8"))
        if not isinstance(draft, dict):
            raise SessionError(f"Draft {path} is not an object")
        try:
            document = validate(draft.get("blocks", []))
        except ValidationError as exc:
            raise SessionError(f"Draft {path} has invalid blocks: {exc}") from exc
        metadata = draft.get("metadata") or {}
        if not isinstance(metadata, dict):
            raise SessionError(f"Draft {path} has invalid metadata")
        self.metadata = ArticleMetadata(
            title=metadata.get("title", ""),
            description=metadata.get("description", ""),
            category_id=metadata.get("category_id"),
        )
        self.article_id = draft.get("articleId")
        return self._load(document)

    def _load(self, document: Document) -> Document:
        self.resources.reset(document)
        return self.sync.load(document)

    def _on_document(self, document: Document) -> None:
        self.resources.merge(document)
        self._rerender()

    def _on_resource(self, resource_id: str, reference: str) -> None:
        self._rerender()

    def _rerender(self) -> None:
        self.preview = self.renderer.render(self.document)
        for fallback in self.preview.fallbacks:
            logger.debug("Preview fallback at %s", fallback)
