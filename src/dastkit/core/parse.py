"""Markdown import: markdown-it tokenization mapped onto document nodes"""

import re
from pathlib import Path
from typing import Iterable

from loguru import logger
from markdown_it import MarkdownIt

from dastkit.core.models import (
    Blockquote,
    Code,
    Heading,
    Link,
    List,
    ListItem,
    ListStyle,
    Mark,
    Node,
    Paragraph,
    Root,
    Span,
    ThematicBreak,
)


FRONTMATTER_RE = re.compile(r'^---\s*\n(.*?)\n---\s*\n', re.DOTALL)

INLINE_MARKS: dict[str, Mark] = {
    'strong': Mark.strong,
    'em':     Mark.emphasis,
    's':      Mark.strikethrough,
}


def _make_parser(preset: str) -> MarkdownIt:
    """Build a MarkdownIt instance for the given preset name."""
    return MarkdownIt(preset, options_update={"linkify": False})


def _strip_frontmatter(text: str) -> str:
    """Return text with a leading YAML header removed."""
    m = FRONTMATTER_RE.match(text)
    return text[m.end():] if m else text


def _merge_spans(nodes: list[Node]) -> list[Node]:
    """Join neighbouring spans that carry the same marks."""
    out: list[Node] = []
    for node in nodes:
        prev = out[-1] if out else None
        if isinstance(node, Span) and isinstance(prev, Span) and prev.marks == node.marks:
            out[-1] = Span(value=prev.value + node.value, marks=node.marks)
        else:
            out.append(node)
    return out


def _inline(tokens: Iterable) -> list[Node]:
    """Convert the children of an inline token to spans and links."""
    out: list[Node] = []
    marks: list[Mark] = []
    link_url = None
    link_spans: list[Node] = []

    for tok in tokens:
        base, _, edge = tok.type.rpartition('_')
        if base in INLINE_MARKS and edge in ('open', 'close'):
            if edge == 'open':
                marks.append(INLINE_MARKS[base])
            elif INLINE_MARKS[base] in marks:
                marks.remove(INLINE_MARKS[base])
            continue
        if tok.type == 'link_open':
            link_url, link_spans = tok.attrGet('href') or '', []
            continue
        if tok.type == 'link_close':
            out.append(Link(url=link_url, children=_merge_spans(link_spans) or [Span(value=link_url)]))
            link_url = None
            continue

        if tok.type == 'text':
            if not tok.content:
                continue
            span = Span(value=tok.content, marks=frozenset(marks))
        elif tok.type == 'code_inline':
            span = Span(value=tok.content, marks=frozenset(marks + [Mark.code]))
        elif tok.type in ('softbreak', 'hardbreak'):
            span = Span(value='\n', marks=frozenset(marks))
        else:
            logger.debug("Dropping inline token '{}'", tok.type)
            continue
        (link_spans if link_url is not None else out).append(span)

    return _merge_spans(out)


def _keep(nodes: list[Node], parent: str, allowed: frozenset[str]) -> list[Node]:
    """Drop children a container cannot hold."""
    kept = []
    for node in nodes:
        if node.type in allowed:
            kept.append(node)
        else:
            logger.debug("Dropping '{}' inside '{}'", node.type, parent)
    return kept


def _skip(tokens: list, i: int) -> int:
    """Return the index after the close token matching the open token at i."""
    depth = 0
    while i < len(tokens):
        depth += tokens[i].nesting
        i += 1
        if depth <= 0:
            break
    return i


def _blocks(tokens: list, i: int, stop: str | None = None) -> tuple[list[Node], int]:
    """Convert block tokens from i up to the `stop` close token. Returns (nodes, next index)."""
    nodes: list[Node] = []
    while i < len(tokens):
        tok = tokens[i]
        if tok.type == stop:
            return nodes, i + 1

        if tok.type == 'heading_open':
            children = _inline(tokens[i + 1].children or [])
            nodes.append(Heading(level=int(tok.tag[1:]), children=children))
            i += 3
        elif tok.type == 'paragraph_open':
            children = _inline(tokens[i + 1].children or [])
            if children:
                nodes.append(Paragraph(children=children))
            i += 3
        elif tok.type in ('bullet_list_open', 'ordered_list_open'):
            close = tok.type.replace('_open', '_close')
            items, i = _blocks(tokens, i + 1, close)
            style = ListStyle.numbered if tok.type == 'ordered_list_open' else ListStyle.bulleted
            nodes.append(List(style=style, children=_keep(items, 'list', List.allowed_children)))
        elif tok.type == 'list_item_open':
            children, i = _blocks(tokens, i + 1, 'list_item_close')
            nodes.append(ListItem(children=_keep(children, 'listItem', ListItem.allowed_children)))
        elif tok.type == 'blockquote_open':
            children, i = _blocks(tokens, i + 1, 'blockquote_close')
            nodes.append(Blockquote(children=_keep(children, 'blockquote', Blockquote.allowed_children)))
        elif tok.type in ('fence', 'code_block'):
            info = tok.info.split() if tok.type == 'fence' else []
            nodes.append(Code(code=tok.content.rstrip('\n'), language=info[0] if info else None))
            i += 1
        elif tok.type == 'hr':
            nodes.append(ThematicBreak())
            i += 1
        elif tok.nesting == 1:
            logger.debug("Dropping unsupported block '{}'", tok.type)
            i = _skip(tokens, i)
        else:
            logger.debug("Dropping unsupported token '{}'", tok.type)
            i += 1
    return nodes, i


def parse_markdown(text: str, preset: str = 'gfm-like') -> Root:
    """Convert Markdown text (optionally with a YAML header) into a document tree."""
    tokens = _make_parser(preset).parse(_strip_frontmatter(text))
    nodes, _ = _blocks(tokens, 0)
    return Root(children=_keep(nodes, 'root', Root.allowed_children))


def parse_file(path: Path, preset: str = 'gfm-like') -> Root:
    """Parse a single Markdown file into a document tree."""
    return parse_markdown(Path(path).read_text(encoding='utf-8'), preset)
