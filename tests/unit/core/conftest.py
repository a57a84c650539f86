"""Shared fixtures for core unit tests"""

import pytest

from dastkit.core import builder as b
from dastkit.core.embedding import embed_existing_entity, embed_new_entity


@pytest.fixture(name="cta")
def cta_fixture():
    """A new call-to-action block."""
    return embed_new_entity("cta", {"title": "Sign up", "url": "https://example.com/signup"})


@pytest.fixture(name="rich_tree")
def rich_tree_fixture(cta):
    """A document using every node kind."""
    return b.root(
        b.heading(1, "Title", style="hero"),
        b.paragraph(
            "Plain ",
            b.span("bold", ["strong"]),
            b.span(" both", ["emphasis", "strong"]),
            b.external_link("https://example.com", "site", meta={"rel": "noopener", "target": "_blank"}),
            b.entity_link("article-1", "the article"),
            b.entity_reference("author-1"),
        ),
        b.list_(
            "bulleted",
            b.list_item("one"),
            b.list_item("two", b.list_("numbered", "two.a", "two.b")),
        ),
        b.blockquote("Quoted text", attribution="Someone"),
        b.code("print('x')", language="python", highlight=[0]),
        b.thematic_break(),
        b.embedded_block(cta),
        b.embedded_block(embed_existing_entity("block-9")),
    )
