import json
from pathlib import Path

import pytest

from EdNotes.demos import DemoRegistry
from EdNotes.errors import SessionError, ValidationError
from EdNotes.model import ImageResourceBlock, Paragraph
from EdNotes.session import EditorSession, InMemoryArticleStore
from EdNotes.settings import EditorSettings

ARTICLE = json.dumps(
    [
        {"type": "header", "level": 1, "content": "Sorting"},
        {"type": "imageResource", "id": "cover", "src": "cover.png"},
        {"type": "demo", "demoType": "viewer", "imageId": "cover"},
    ]
)


def make_session() -> tuple[EditorSession, InMemoryArticleStore]:
    store = InMemoryArticleStore()
    demos = DemoRegistry({"viewer": lambda image_src=None: f"<img class='viewer' src='{image_src}'>"})
    return EditorSession(store, demos=demos), store


def test_save_requires_title():
    session, _ = make_session()
    with pytest.raises(SessionError):
        session.save()
    session.metadata.title = "   "
    with pytest.raises(SessionError):
        session.save()


def test_save_creates_then_updates():
    session, store = make_session()
    session.tree.insert_top(Paragraph(content="hello"))
    session.metadata.title = "Greeting"
    created = session.save()
    assert session.article_id == created.id
    assert json.loads(created.content) == [{"type": "paragraph", "content": "hello"}]

    session.tree.update((0,), {"content": "bye"})
    updated = session.save()
    assert updated.id == created.id
    assert json.loads(store.fetch(created.id).content)[0]["content"] == "bye"


def test_load_article_validates_content():
    session, store = make_session()
    good = store.create("Sorting", ARTICLE, category_id=3)
    bad = store.create("Broken", json.dumps([{"type": "header", "content": "no level"}]))

    session.load_article(good.id)
    assert session.metadata.title == "Sorting" and session.metadata.category_id == 3
    assert len(session.document.blocks) == 3

    before = session.document
    with pytest.raises(SessionError):
        session.load_article(bad.id)
    assert session.document is before
    assert session.article_id == good.id


def test_preview_follows_edits_and_uploads():
    session, store = make_session()
    session.load_article(store.create("Sorting", ARTICLE).id)
    assert "<h1>Sorting</h1>" in session.preview.html
    assert "src='cover.png'" in session.preview.html

    session.tree.update((0,), {"content": "Sorted"})
    assert "<h1>Sorted</h1>" in session.preview.html

    reference = session.upload_image("cover", b"png-bytes", "image/png")
    assert reference in session.blob_store
    assert f"src='{reference}'" in session.preview.html
    assert f'<img src="{reference}"' in session.preview.html


def test_new_resource_blocks_join_the_map():
    session, _ = make_session()
    session.tree.insert_top(ImageResourceBlock(resource_id="fresh", src="fresh.png"))
    assert session.resources["fresh"] == "fresh.png"


def test_raw_edits_reach_the_preview():
    session, _ = make_session()
    session.sync.edit_raw('[{"type": "paragraph", "content": "from raw"}]')
    assert "from raw" in session.preview.html
    with pytest.raises(ValidationError):
        session.load_content('[{"type": "paragraph"}]')


def test_new_document_resets_state():
    session, store = make_session()
    session.load_article(store.create("Sorting", ARTICLE).id)
    session.new_document()
    assert session.article_id is None
    assert session.metadata.title == ""
    assert session.document.blocks == []
    assert len(session.resources) == 0


def test_draft_round_trip(tmp_path: Path):
    session, _ = make_session()
    session.load_content(ARTICLE)
    session.metadata.title = "Draft"
    path = session.save_draft(tmp_path / "drafts" / "draft.json")

    restored, _ = make_session()
    restored.restore_draft(path)
    assert restored.document == session.document
    assert restored.metadata.title == "Draft"
    assert restored.article_id is None


def test_yaml_settings_change_the_raw_view():
    session = EditorSession(InMemoryArticleStore(), settings=EditorSettings(raw_format="yaml"))
    session.load_content("- type: paragraph\n  content: from yaml\n")
    assert session.sync.raw_text == "- type: paragraph\n  content: from yaml\n"


@pytest.mark.parametrize("content", ["", "   \n"])
def test_blank_article_content_loads_as_empty_document(content):
    session, store = make_session()
    record = store.create("Fresh", content)
    document = session.load_article(record.id)
    assert document.blocks == []
    assert session.article_id == record.id
    assert session.metadata.title == "Fresh"


def test_unknown_article_id_is_a_session_error():
    session, _ = make_session()
    with pytest.raises(SessionError):
        session.load_article(42)
    session.article_id = 42
    session.metadata.title = "Gone"
    with pytest.raises(SessionError):
        session.save()


def test_draft_with_invalid_metadata_is_rejected(tmp_path: Path):
    session, _ = make_session()
    path = tmp_path / "draft.json"
    path.write_text(json.dumps({"blocks": [], "metadata": ["title"]}), encoding="utf-8")
    with pytest.raises(SessionError):
        session.restore_draft(path)
