"""Unit tests for core/validation.py"""

import pytest

from dastkit.core import builder as b
from dastkit.core.embedding import embed_existing_entity, embed_new_entity
from dastkit.core.validation import ErrorKind, Schema, load_schema, validate, validate_block, validate_blocks
from dastkit.crud.resolvers import MemoryResolver


class CountingResolver(MemoryResolver):
    """MemoryResolver that records every lookup."""

    def __init__(self, types: dict[str, str]):
        super().__init__(dict(types))
        self.calls: list[str] = []

    def resolve_type(self, entity_id):
        self.calls.append(entity_id)
        return super().resolve_type(entity_id)


@pytest.fixture(name="resolver")
def resolver_fixture():
    return MemoryResolver({"article-1": "article", "author-1": "author", "blk-1": "cta", "img-1": "image"})


def _block(entity_type: str, **attributes):
    return b.embedded_block(embed_new_entity(entity_type, attributes))


def test_reports_each_disallowed_block_in_order():
    """Three blocks A (allowed), B and C (not) yield two errors naming B then C."""
    tree = b.root(_block("A"), b.paragraph("x"), _block("B"), _block("C"))
    errors = validate(tree, Schema(allowed_block_types={"A"}))
    assert [e.kind for e in errors] == [ErrorKind.disallowed_block_type] * 2
    assert [e.path for e in errors] == [(2,), (3,)]
    assert "'B'" in errors[0].detail
    assert "'C'" in errors[1].detail


def test_validation_is_deterministic(resolver):
    """Running validate twice gives identical, identically ordered results."""
    tree = b.root(
        _block("B"),
        b.paragraph(b.entity_link("author-1", "who"), b.entity_link("missing", "x")),
        _block("C"),
    )
    schema = Schema(allowed_block_types={"A"}, allowed_link_target_types={"article"}, max_size=10)
    assert validate(tree, schema, resolver) == validate(tree, schema, resolver)


def test_empty_allowed_set_rejects_every_block():
    """An empty allowed_block_types set is valid input that fails every block."""
    tree = b.root(_block("A"), b.embedded_block("blk-1"))
    errors = validate(tree, Schema(), MemoryResolver({"blk-1": "cta"}))
    assert len(errors) == 2


def test_valid_tree_has_no_errors(resolver):
    """A tree matching the schema validates cleanly."""
    tree = b.root(
        b.paragraph(b.entity_link("article-1", "read"), b.entity_reference("author-1")),
        _block("cta"),
        b.embedded_block("blk-1"),
    )
    schema = Schema(allowed_block_types={"cta"}, allowed_link_target_types={"article"})
    assert validate(tree, schema, resolver) == []


def test_link_target_type_checked(resolver):
    """Item links to disallowed types or unknown ids are reported."""
    tree = b.root(b.paragraph(b.entity_link("author-1", "a"), b.entity_link("ghost", "g")))
    errors = validate(tree, Schema(allowed_link_target_types={"article"}), resolver)
    assert [(e.path, e.kind) for e in errors] == [
        ((0, 0), ErrorKind.disallowed_link_target),
        ((0, 1), ErrorKind.unknown_entity),
    ]


def test_inline_items_are_unconstrained(resolver):
    """Inline items are never checked against the schema."""
    tree = b.root(b.paragraph(b.entity_reference("ghost"), b.entity_reference("author-1")))
    assert validate(tree, Schema(), resolver) == []


def test_existing_block_type_is_resolved(resolver):
    """An existing block is checked by its resolved type."""
    tree = b.root(b.embedded_block("img-1"), b.embedded_block("nope"))
    errors = validate(tree, Schema(allowed_block_types={"cta"}), resolver)
    assert [e.kind for e in errors] == [ErrorKind.disallowed_block_type, ErrorKind.unknown_entity]


def test_lookups_are_memoized():
    """Each id is resolved at most once per validate call."""
    resolver = CountingResolver({"article-1": "article"})
    tree = b.root(
        b.paragraph(b.entity_link("article-1", "a")),
        b.paragraph(b.entity_link("article-1", "b")),
    )
    validate(tree, Schema(allowed_link_target_types={"article"}), resolver)
    assert resolver.calls == ["article-1"]


def test_without_resolver_id_checks_are_skipped():
    """Link and existing-block checks need a resolver; without one they are skipped."""
    tree = b.root(b.paragraph(b.entity_link("x", "a")), b.embedded_block("blk-1"), _block("B"))
    errors = validate(tree, Schema(allowed_block_types={"A"}))
    assert [e.path for e in errors] == [(2,)]


def test_size_exceeded_reported_once_at_end():
    """max_size produces a single error after all node errors."""
    tree = b.root(_block("B"), b.paragraph("x" * 200))
    errors = validate(tree, Schema(max_size=50))
    assert [e.kind for e in errors] == [ErrorKind.disallowed_block_type, ErrorKind.size_exceeded]
    assert errors[-1].path == ()


def test_size_within_limit():
    """A document under max_size passes."""
    assert validate(b.root(b.paragraph("x")), Schema(max_size=10_000)) == []


def test_list_nesting_limit():
    """Lists nested deeper than max_nesting are reported."""
    inner = b.list_("bulleted", "deep")
    tree = b.root(b.list_("bulleted", b.list_item("top", b.list_("bulleted", b.list_item("mid", inner)))))
    errors = validate(tree, Schema(max_nesting=2))
    assert len(errors) == 1
    assert errors[0].kind == ErrorKind.nesting_exceeded
    assert errors[0].path == (0, 0, 1, 0, 1)


def test_nested_field_contexts(resolver):
    """block_fields rules apply inside structured-text and modular fields of a block."""
    section = embed_new_entity("section", {
        "body": b.root(b.paragraph("inner"), _block("video")),
        "slides": [embed_new_entity("slide"), embed_new_entity("cta"), embed_existing_entity("img-1")],
    })
    schema = Schema(
        allowed_block_types={"section"},
        block_fields={"section": {
            "body": Schema(allowed_block_types={"cta"}),
            "slides": Schema(allowed_block_types={"slide", "image"}),
        }},
    )
    errors = validate(b.root(b.embedded_block(section)), schema, resolver)
    assert [(e.path, e.kind) for e in errors] == [
        ((0, "body", 1), ErrorKind.disallowed_block_type),
        ((0, "slides", 1), ErrorKind.disallowed_block_type),
    ]


def test_validate_blocks_modular_context(resolver):
    """A modular-content array is validated item by item."""
    errors = validate_blocks(
        [embed_new_entity("cta"), "img-1", embed_new_entity("video")],
        Schema(allowed_block_types={"cta", "image"}),
        resolver,
    )
    assert [e.path for e in errors] == [(2,)]


def test_validate_block_single_context(resolver):
    """A single-block field accepts None and checks one entity."""
    schema = Schema(allowed_block_types={"cta"})
    assert validate_block(None, schema, resolver) == []
    assert validate_block("blk-1", schema, resolver) == []
    assert validate_block(embed_new_entity("video"), schema, resolver)[0].path == ()


def test_non_block_value_in_block_field():
    """A value that is not a block is reported, not raised."""
    errors = validate_blocks([embed_new_entity("cta"), 42], Schema(allowed_block_types={"cta"}))
    assert [(e.path, e.kind) for e in errors] == [((1,), ErrorKind.invalid_value)]


# --- load_schema ---

def test_load_schema_from_yaml(tmp_path):
    """load_schema builds nested contexts from YAML."""
    path = tmp_path / "schema.yaml"
    path.write_text(
        "allowed_block_types: [cta, section]\n"
        "allowed_link_target_types: [article]\n"
        "max_size: 5000\n"
        "block_fields:\n"
        "  section:\n"
        "    body:\n"
        "      allowed_block_types: [cta]\n"
    )
    schema = load_schema(path)
    assert schema.allowed_block_types == {"cta", "section"}
    assert schema.max_size == 5000
    assert schema.block_fields["section"]["body"].allowed_block_types == {"cta"}


@pytest.mark.parametrize("content", [
    "allowed_block_types: [unclosed\n",
    "- just\n- a list\n",
    "max_size: -1\n",
])
def test_load_schema_invalid(tmp_path, content):
    """Bad schema files raise ValueError naming the file."""
    path = tmp_path / "schema.yaml"
    path.write_text(content)
    with pytest.raises(ValueError, match="Invalid schema file"):
        load_schema(path)
