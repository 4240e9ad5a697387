import pytest

from EdNotes.errors import ValidationError
from EdNotes.model import DemoBlock, Header, ImageResourceBlock, TabsBlock, UnknownBlock
from EdNotes.schema import decode_lenient, diagnose, validate


def _tabs(*children):
    return {
        "type": "tabs",
        "defaultValue": "a",
        "tabs": [{"value": "a", "label": "A", "blocks": list(children)}],
    }


def test_validate_decodes_every_variant():
    data = [
        {"type": "header", "level": 1, "content": "Title"},
        {"type": "paragraph", "content": "Some **bold** text"},
        {"type": "code", "language": "python", "content": "print(1)"},
        {"type": "note", "style": "warning", "content": "Careful"},
        {"type": "figure", "src": "tree.png", "caption": "A tree"},
        {"type": "equation", "content": "a^2 + b^2 = c^2"},
        {"type": "list", "ordered": True, "items": ["one", "two"]},
        {"type": "demo", "demoType": "bubbleSort", "imageId": "img", "args": {"speed": 2}},
        {"type": "imageResource", "id": "img", "src": "img.png", "alt": "An image"},
        _tabs({"type": "paragraph", "content": "inside"}),
    ]
    document = validate(data)
    assert len(document.blocks) == 10
    assert document.blocks[0] == Header(level=1, content="Title")
    demo = document.blocks[7]
    assert isinstance(demo, DemoBlock)
    assert demo.demo_type == "bubbleSort" and demo.image_id == "img" and demo.args == {"speed": 2}
    resource = document.blocks[8]
    assert isinstance(resource, ImageResourceBlock) and resource.resource_id == "img"
    tabs = document.blocks[9]
    assert isinstance(tabs, TabsBlock)
    assert tabs.default_value == "a"
    assert tabs.tabs[0].blocks[0].content == "inside"


def test_extra_field_on_header_is_rejected_with_path():
    data = [
        {"type": "paragraph", "content": "ok"},
        {"type": "header", "level": 2, "content": "Title", "color": "red"},
    ]
    with pytest.raises(ValidationError) as excinfo:
        validate(data)
    assert excinfo.value.path == (1,)
    assert excinfo.value.field == "color"
    assert "unknown field for 'header'" in str(excinfo.value)


def test_nested_error_reports_full_path():
    data = [
        {"type": "paragraph", "content": "ok"},
        _tabs({"type": "paragraph", "content": "ok"}, {"type": "note", "style": "loud", "content": "x"}),
    ]
    with pytest.raises(ValidationError) as excinfo:
        validate(data)
    assert excinfo.value.path == (1, 0, 1)
    assert excinfo.value.field == "style"


@pytest.mark.parametrize("level", [0, 7, True, "2", 2.0])
def test_header_level_must_be_integer_in_range(level):
    with pytest.raises(ValidationError):
        validate([{"type": "header", "level": level, "content": "x"}])


def test_missing_required_field_and_unknown_type():
    with pytest.raises(ValidationError) as excinfo:
        validate([{"type": "code", "content": "x"}])
    assert excinfo.value.field == "language"

    with pytest.raises(ValidationError) as excinfo:
        validate([{"type": "video", "src": "x"}])
    assert excinfo.value.field == "type"


def test_document_must_be_a_list():
    with pytest.raises(ValidationError) as excinfo:
        validate({"type": "paragraph", "content": "x"})
    assert excinfo.value.path == ()


def test_diagnose_collects_every_problem():
    data = [
        {"type": "header", "level": 9, "content": "x"},
        {"type": "paragraph"},
        {"type": "list", "ordered": "yes", "items": ["a", 1]},
    ]
    errors = diagnose(data)
    assert [error.path for error in errors] == [(0,), (1,), (2,), (2,)]
    assert diagnose([{"type": "paragraph", "content": "fine"}]) == []


def test_lenient_decode_keeps_unknown_data():
    data = [
        {"type": "figure", "src": "a.png", "content": "draw the diagram"},
        {"type": "video", "src": "clip.mp4"},
        {"type": "paragraph", "content": "after"},
    ]
    document = decode_lenient(data)
    figure, unknown, paragraph = document.blocks
    assert figure.extra == {"content": "draw the diagram"}
    assert isinstance(unknown, UnknownBlock)
    assert unknown.data == {"type": "video", "src": "clip.mp4"}
    assert paragraph.content == "after"
    assert decode_lenient("not a list").blocks == []
