"""Plain-text and Markdown rendering of document trees

Records referenced from a document are rendered by the caller: inline items
and blocks through callbacks, item links through an optional callback that
receives the node and its already-rendered text.
"""

from typing import Callable, Optional

from dastkit.core.models import (
    Block,
    Blockquote,
    Code,
    Heading,
    InlineItem,
    ItemLink,
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


InlineItemRenderer = Callable[[InlineItem], str]
BlockRenderer = Callable[[Block], str]
ItemLinkRenderer = Callable[[ItemLink, str], str]

# Innermost first; underline and highlight have no Markdown syntax.
_MD_MARKS = ((Mark.code, "`"), (Mark.strikethrough, "~~"), (Mark.emphasis, "_"), (Mark.strong, "**"))


def to_plain_text(
    tree: Node,
    render_inline_item: Optional[InlineItemRenderer] = None,
    render_block: Optional[BlockRenderer] = None,
    ) -> str:
    """Text content only; top-level blocks separated by a blank line."""

    def _render(node: Node) -> str:
        match node:
            case Span(value=value):
                return value
            case InlineItem():
                return render_inline_item(node) if render_inline_item else ""
            case Block():
                return render_block(node) if render_block else ""
            case Code(code=source):
                return source
            case ThematicBreak():
                return ""
            case Link() | ItemLink() | Paragraph() | Heading():
                return "".join(_render(c) for c in node.children)
            case List() | ListItem() | Blockquote():
                return "\n".join(_render(c) for c in node.children)
            case Root():
                return "\n\n".join(t for t in (_render(c) for c in node.children) if t)
        raise TypeError(f"Cannot render {type(node).__name__}")

    return _render(tree)


def _span_markdown(span: Span) -> str:
    text = span.value
    if not text.strip():
        return text
    for mark, token in _MD_MARKS:
        if mark in span.marks:
            text = f"{token}{text}{token}"
    return text


def _indent(text: str, first: str, rest: str) -> str:
    lines = text.split("\n")
    return "\n".join([first + lines[0]] + [(rest + line) if line else line for line in lines[1:]])


def to_markdown(
    tree: Node,
    render_block: Optional[BlockRenderer] = None,
    render_inline_item: Optional[InlineItemRenderer] = None,
    render_item_link: Optional[ItemLinkRenderer] = None,
    ) -> str:
    """Render a tree as CommonMark (plus GFM strikethrough)."""

    def _inline(children: tuple[Node, ...]) -> str:
        return "".join(_render(c) for c in children)

    def _render(node: Node) -> str:
        match node:
            case Span():
                return _span_markdown(node)
            case Link(url=url, children=children):
                return f"[{_inline(children)}]({url})"
            case ItemLink(children=children):
                text = _inline(children)
                return render_item_link(node, text) if render_item_link else text
            case InlineItem():
                return render_inline_item(node) if render_inline_item else ""
            case Block():
                return render_block(node) if render_block else ""
            case Paragraph(children=children):
                return _inline(children)
            case Heading(level=level, children=children):
                return f"{'#' * level} {_inline(children)}"
            case Code(code=source, language=language):
                return f"```{language or ''}\n{source}\n```"
            case ThematicBreak():
                return "---"
            case ListItem(children=children):
                return "\n".join(_render(c) for c in children)
            case List(style=style, children=children):
                items = []
                for n, item in enumerate(children, start=1):
                    bullet = f"{n}. " if style == ListStyle.numbered else "- "
                    items.append(_indent(_render(item), bullet, " " * len(bullet)))
                return "\n".join(items)
            case Blockquote(attribution=attribution, children=children):
                body = "\n\n".join(_render(c) for c in children)
                if attribution:
                    body += f"\n\n-- {attribution}"
                return "\n".join(f"> {line}" if line else ">" for line in body.split("\n"))
            case Root(children=children):
                parts = [t for t in (_render(c) for c in children) if t]
                return "\n\n".join(parts) + "\n" if parts else ""
        raise TypeError(f"Cannot render {type(node).__name__}")

    return _render(tree)
