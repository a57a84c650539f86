"""Unit tests for core/builder.py"""

import inspect

import pytest

from dastkit.core import builder as b
from dastkit.core.errors import EmptyChildrenError, RangeError, StructuralError
from dastkit.core.models import (
    Blockquote, ExistingEntityRef, InlineItem, ListItem, ListStyle, Mark, MetaEntry,
    NewEntity, Paragraph, Span,
)


def test_bare_strings_become_spans():
    """Strings passed as children are wrapped as unmarked spans."""
    p = b.paragraph("hello ", b.span("world", ["strong"]))
    assert p.children == (Span(value="hello "), Span(value="world", marks=[Mark.strong]))


def test_span_accepts_single_mark_string():
    """A single mark name is not split into characters."""
    assert b.span("x", "code").marks == {Mark.code}


@pytest.mark.parametrize("make", [
    lambda: b.entity_link("id", []),
    lambda: b.external_link("http://x", []),
    lambda: b.entity_link("id"),
    lambda: b.external_link("http://x"),
])
def test_links_without_children_fail(make):
    """Link constructors reject an empty child list."""
    with pytest.raises(EmptyChildrenError):
        make()


def test_entity_reference_has_no_children_parameter():
    """entity_reference only takes the target id."""
    assert list(inspect.signature(b.entity_reference).parameters) == ["target_id"]
    with pytest.raises(TypeError):
        b.entity_reference("x", "text")


def test_entity_reference_builds_inline_item():
    """entity_reference yields a childless inline item."""
    node = b.entity_reference("author-1")
    assert isinstance(node, InlineItem)
    assert node.target_id == "author-1"
    assert not hasattr(node, "children")


@pytest.mark.parametrize("level", [0, 7])
def test_heading_level_range(level):
    """Heading levels outside 1-6 raise RangeError."""
    with pytest.raises(RangeError):
        b.heading(level, "Title")


def test_list_item_wraps_inline_content_in_paragraph():
    """Inline children of a list item are grouped into one paragraph."""
    item = b.list_item("a ", b.span("b", ["emphasis"]), b.list_("bulleted", "nested"))
    assert [c.type for c in item.children] == ["paragraph", "list"]
    assert len(item.children[0].children) == 2


def test_list_wraps_items():
    """Plain list entries become list items."""
    lst = b.list_("numbered", "one", "two")
    assert lst.style == ListStyle.numbered
    assert all(isinstance(i, ListItem) for i in lst.children)
    assert lst.children[1].children[0] == Paragraph(children=[Span(value="two")])


def test_blockquote_attribution():
    """blockquote wraps text in a paragraph and keeps the attribution."""
    quote = b.blockquote("Quoted", attribution="Author")
    assert isinstance(quote, Blockquote)
    assert quote.attribution == "Author"
    assert quote.children[0].type == "paragraph"


def test_link_meta_keeps_order():
    """meta accepts a mapping or pairs and preserves order."""
    from_map = b.external_link("https://x", "x", meta={"rel": "nofollow", "target": "_blank"})
    from_pairs = b.external_link("https://x", "x", meta=[("rel", "nofollow"), ("target", "_blank")])
    assert from_map.meta == (MetaEntry(id="rel", value="nofollow"), MetaEntry(id="target", value="_blank"))
    assert from_map == from_pairs


def test_embedded_block_from_id_and_entity():
    """embedded_block accepts an id string or an embedded entity."""
    assert b.embedded_block("blk-1").item == ExistingEntityRef(id="blk-1")
    entity = NewEntity(entity_type="cta", attributes={"title": "Go"})
    assert b.embedded_block(entity).item is entity


def test_root_rejects_inline_strings():
    """Root only holds block-level nodes."""
    with pytest.raises(StructuralError):
        b.root("loose text")


def test_children_given_as_list():
    """Children may be passed as a single list."""
    assert b.paragraph(["a", "b"]) == b.paragraph("a", "b")
    assert b.root([b.paragraph("x")]) == b.root(b.paragraph("x"))


def test_code_and_break():
    """code keeps language and highlight lines; thematic_break is a leaf."""
    node = b.code("x = 1", language="python", highlight=[0])
    assert (node.code, node.language, node.highlight) == ("x = 1", "python", (0,))
    assert b.thematic_break().is_leaf()
