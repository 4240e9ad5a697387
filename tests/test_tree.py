import pytest

from EdNotes.errors import PathError, ValidationError
from EdNotes.model import Document, Header, NoteBlock, Paragraph, Tab, TabsBlock
from EdNotes.tree import BlockTree


def three_paragraphs() -> BlockTree:
    return BlockTree(
        Document(blocks=[Paragraph(content="A"), Paragraph(content="B"), Paragraph(content="C")])
    )


def nested_tree() -> BlockTree:
    tabs = TabsBlock(
        default_value="one",
        tabs=[
            Tab(value="one", label="One", blocks=[Paragraph(content="first"), Header(level=3, content="h")]),
            Tab(value="two", label="Two", blocks=[NoteBlock(style="info", content="n")]),
        ],
    )
    return BlockTree(Document(blocks=[Header(level=1, content="Top"), Paragraph(content="intro"), tabs]))


def test_appended_block_is_addressable_at_old_length():
    tree = three_paragraphs()
    n = len(tree.document.blocks)
    block = Header(level=2, content="End")
    tree.insert_top(block)
    assert tree.get((n,)) == block


def test_delete_shifts_later_siblings():
    tree = three_paragraphs()
    tree.delete((1,))
    assert tree.get((1,)) == Paragraph(content="C")
    assert len(tree.document.blocks) == 2


def test_nested_addressing_and_tab_delete():
    tree = nested_tree()
    assert tree.get((2, 0, 0)) == Paragraph(content="first")
    assert tree.get((2, 1)).label == "Two"
    assert tree.get((2, 1, 0)).content == "n"

    tree.delete((2, 0))
    tabs = tree.get((2,))
    assert [tab.value for tab in tabs.tabs] == ["two"]
    assert tree.get((2, 0, 0)).content == "n"


def test_get_out_of_range_returns_none():
    tree = nested_tree()
    assert tree.get((9,)) is None
    assert tree.get((0, 0)) is None
    assert tree.get((2, 5, 0)) is None


def test_invalid_path_leaves_document_untouched():
    tree = three_paragraphs()
    before = tree.document
    with pytest.raises(PathError):
        tree.delete((7,))
    with pytest.raises(PathError):
        tree.insert((5,), Paragraph(content="x"))
    with pytest.raises(PathError):
        tree.insert((0, 0), Paragraph(content="x"))
    with pytest.raises(PathError):
        tree.update((1, 0), {"label": "x"})
    assert tree.document is before


def test_insert_into_tab():
    tree = nested_tree()
    tree.insert((2, 1, 0), Paragraph(content="new"))
    assert tree.get((2, 1, 0)).content == "new"
    assert tree.get((2, 1, 1)).content == "n"


def test_update_merges_fields_and_keeps_identity():
    tree = three_paragraphs()
    uid = tree.get((0,)).uid
    tree.update((0,), {"content": "changed"})
    assert tree.get((0,)).content == "changed"
    assert tree.get((0,)).uid == uid


def test_update_rejects_unknown_field():
    tree = three_paragraphs()
    before = tree.document
    with pytest.raises(ValidationError):
        tree.update((0,), {"colour": "red"})
    with pytest.raises(ValidationError):
        tree.update((0,), {"content": 3})
    assert tree.document is before


def test_type_change_fills_required_fields():
    tree = three_paragraphs()
    tree.update((0,), {"type": "header"})
    block = tree.get((0,))
    assert isinstance(block, Header)
    assert block.content == "A"
    assert block.level == 2


def test_tab_update_is_limited_to_header_fields():
    tree = nested_tree()
    tree.update((2, 0), {"label": "First", "description": "Intro tab"})
    tab = tree.get((2, 0))
    assert tab.label == "First" and tab.description == "Intro tab"
    assert len(tab.blocks) == 2
    with pytest.raises(ValidationError):
        tree.update((2, 0), {"blocks": []})


def test_updating_tabs_block_keeps_its_tabs():
    tree = nested_tree()
    tab_uids = [tab.uid for tab in tree.get((2,)).tabs]
    tree.update((2,), {"defaultValue": "two"})
    tabs = tree.get((2,))
    assert tabs.default_value == "two"
    assert [tab.uid for tab in tabs.tabs] == tab_uids


def test_edits_are_copy_on_write():
    tree = nested_tree()
    before = tree.document
    untouched = before.blocks[0]
    tree.update((2, 0, 0), {"content": "edited"})
    assert before.blocks[2].tabs[0].blocks[0].content == "first"
    assert tree.document.blocks[0] is untouched
    assert tree.document.blocks[2].tabs[1] is before.blocks[2].tabs[1]


def test_move_and_identity_lookup():
    tree = three_paragraphs()
    uid = tree.get((0,)).uid
    tree.move((0,), 2)
    assert [block.content for block in tree.document.blocks] == ["B", "C", "A"]
    assert tree.path_of(uid) == (2,)
    tree.update_by_id(uid, {"content": "A2"})
    assert tree.get((2,)).content == "A2"
    tree.delete_by_id(uid)
    assert tree.get_by_id(uid) is None
    with pytest.raises(PathError):
        tree.move((0,), -1)


def test_inserting_the_same_block_twice_gets_distinct_ids():
    tree = BlockTree()
    block = Paragraph(content="twice")
    tree.insert_top(block)
    tree.insert_top(block)
    first, second = tree.document.blocks
    assert first == second
    assert first.uid != second.uid


def test_add_tab():
    tree = nested_tree()
    tree.add_tab((2,), Tab(value="three", label="Three", blocks=[]), index=0)
    assert [tab.value for tab in tree.get((2,)).tabs] == ["three", "one", "two"]
    with pytest.raises(PathError):
        tree.add_tab((0,), Tab(value="x", label="X", blocks=[]))


def test_listeners_see_committed_documents():
    tree = three_paragraphs()
    seen = []
    unsubscribe = tree.subscribe(lambda document, source: seen.append((document, source)))
    tree.delete((0,))
    assert seen == [(tree.document, "structural")]
    unsubscribe()
    tree.delete((0,))
    assert len(seen) == 1


def test_flatten_lists_blocks_and_tabs_with_paths():
    labels = [entry.label for entry in nested_tree().flatten()]
    assert labels == [
        "0: header (h1)",
        "1: paragraph",
        "2: tabs (2 tabs)",
        "  ↳ Tab: One",
        "  2.0.0: paragraph",
        "  2.0.1: header (h3)",
        "  ↳ Tab: Two",
        "  2.1.0: note (info)",
    ]


def doubly_nested_tree() -> BlockTree:
    inner = TabsBlock(
        tabs=[
            Tab(value="a", label="A", blocks=[Paragraph(content="deep")]),
            Tab(value="b", label="B", blocks=[]),
        ]
    )
    outer = TabsBlock(tabs=[Tab(value="outer", label="Outer", blocks=[inner])])
    return BlockTree(Document(blocks=[outer]))


def test_paths_reach_tabs_nested_in_tabs():
    tree = doubly_nested_tree()
    assert tree.get((0, 0, 0, 0, 0)) == Paragraph(content="deep")
    assert tree.get((0, 0, 0, 1)).label == "B"

    tree.update((0, 0, 0, 1), {"label": "Bee"})
    assert tree.get((0, 0, 0, 1)).label == "Bee"

    tree.insert((0, 0, 0, 1, 0), Paragraph(content="new"))
    assert tree.get((0, 0, 0, 1, 0)).content == "new"

    tree.update((0, 0, 0, 0, 0), {"content": "deeper"})
    assert tree.get((0, 0, 0, 0, 0)).content == "deeper"

    tree.delete((0, 0, 0, 0))
    inner = tree.get((0, 0, 0))
    assert [tab.value for tab in inner.tabs] == ["b"]
    assert tree.get((0, 0, 0, 0, 0)).content == "new"
    assert tree.get((0, 0, 0, 1)) is None


def test_flatten_indents_nested_tabs():
    labels = [entry.label for entry in doubly_nested_tree().flatten()]
    assert labels == [
        "0: tabs (1 tabs)",
        "  ↳ Tab: Outer",
        "  0.0.0: tabs (2 tabs)",
        "    ↳ Tab: A",
        "    0.0.0.0.0: paragraph",
        "    ↳ Tab: B",
    ]
    entries = doubly_nested_tree().flatten()
    assert entries[4].path == (0, 0, 0, 0, 0)
    assert entries[4].depth == 2
