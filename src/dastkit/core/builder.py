"""Fluent constructors for document trees; one function per node kind"""

from typing import Iterable, Mapping, Optional, Sequence, Union

from dastkit.core.errors import EmptyChildrenError
from dastkit.core.models import (
    Block,
    Blockquote,
    Code,
    EmbeddedEntity,
    ExistingEntityRef,
    Heading,
    InlineItem,
    ItemLink,
    Link,
    List,
    ListItem,
    ListStyle,
    Mark,
    MetaEntry,
    Node,
    Paragraph,
    Root,
    Span,
    ThematicBreak,
)


Child = Union[Node, str]
Meta = Union[Mapping[str, str], Sequence[tuple[str, str]], None]


def _flatten(children: Iterable) -> list:
    """Expand list or tuple arguments in place so callers may pass either form."""
    out = []
    for child in children:
        if isinstance(child, (list, tuple)):
            out.extend(_flatten(child))
        else:
            out.append(child)
    return out


def _spans(children: Iterable[Child]) -> tuple[Node, ...]:
    """Wrap bare strings as unmarked spans."""
    return tuple(Span(value=c) if isinstance(c, str) else c for c in _flatten(children))


def _paragraphs(children: Iterable[Child]) -> tuple[Node, ...]:
    """Group bare strings and inline nodes into paragraphs (list items, quotes)."""
    out: list[Node] = []
    pending: list[Node] = []
    for child in _spans(children):
        if child.type in Paragraph.allowed_children:
            pending.append(child)
            continue
        if pending:
            out.append(Paragraph(children=pending))
            pending = []
        out.append(child)
    if pending:
        out.append(Paragraph(children=pending))
    return tuple(out)


def _meta(meta: Meta) -> tuple[MetaEntry, ...]:
    if not meta:
        return ()
    pairs = meta.items() if isinstance(meta, Mapping) else meta
    return tuple(MetaEntry(id=k, value=v) for k, v in pairs)


def root(*children: Child) -> Root:
    return Root(children=_spans(children))


def paragraph(*children: Child, style: Optional[str] = None) -> Paragraph:
    return Paragraph(children=_spans(children), style=style)


def heading(level: int, *children: Child, style: Optional[str] = None) -> Heading:
    """Heading of the given level (1-6); RangeError otherwise."""
    return Heading(level=level, children=_spans(children), style=style)


def list_(style: Union[ListStyle, str], *items: Child) -> List:
    """List of the given style. Items that are not list items are wrapped in one."""
    wrapped = tuple(i if isinstance(i, ListItem) else list_item(i) for i in _flatten(items))
    return List(style=style, children=wrapped)


def list_item(*children: Child) -> ListItem:
    return ListItem(children=_paragraphs(children))


def blockquote(*children: Child, attribution: Optional[str] = None) -> Blockquote:
    return Blockquote(children=_paragraphs(children), attribution=attribution)


def code(source: str, language: Optional[str] = None, highlight: Iterable[int] = ()) -> Code:
    return Code(code=source, language=language, highlight=tuple(highlight))


def thematic_break() -> ThematicBreak:
    return ThematicBreak()


def span(text: str, marks: Union[Iterable[Union[Mark, str]], str] = ()) -> Span:
    if isinstance(marks, str):
        marks = (marks,)
    return Span(value=text, marks=frozenset(Mark(m) for m in marks))


def external_link(url: str, *children: Child, meta: Meta = None) -> Link:
    children = _flatten(children)
    if not children:
        raise EmptyChildrenError(f"external_link({url!r}) requires at least one child")
    return Link(url=url, meta=_meta(meta), children=_spans(children))


def entity_link(target_id: str, *children: Child, meta: Meta = None) -> ItemLink:
    children = _flatten(children)
    if not children:
        raise EmptyChildrenError(f"entity_link({target_id!r}) requires at least one child")
    return ItemLink(target_id=target_id, meta=_meta(meta), children=_spans(children))


def entity_reference(target_id: str) -> InlineItem:
    """Inline reference to a record. Takes no children: the consumer renders it."""
    return InlineItem(target_id=target_id)


def embedded_block(entity: Union[EmbeddedEntity, str]) -> Block:
    """Embed a block record; a bare string is taken as an existing record id."""
    if isinstance(entity, str):
        entity = ExistingEntityRef(id=entity)
    return Block(item=entity)
