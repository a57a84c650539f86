"""Tree traversal and query: pre-order iteration, search, rewriting and positional diff

All functions are pure. A path is the tuple of child indices leading from the
tree root to a node; the root itself has the empty path. Walks that enter
documents nested in block attributes add the attribute key to the path.
"""

from collections.abc import Mapping
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Sequence

from pydantic import BaseModel, ConfigDict

from dastkit.core.models import Block, ExistingEntityRef, InlineItem, ItemLink, NewEntity, Node, Root


Path = tuple[int, ...]
Predicate = Callable[[Node], bool]
Visitor = Callable[[Node], Optional[Node]]


def children_of(node: Node) -> tuple[Node, ...]:
    return getattr(node, "children", ())


def node_attributes(node: Node) -> dict[str, Any]:
    """Every field of a node except its kind and its children."""
    return {
        name: getattr(node, name)
        for name in type(node).model_fields
        if name not in ("type", "children")
    }


def _documents_in(value: Any, path: tuple) -> Iterator[tuple[tuple, Root]]:
    if isinstance(value, Root):
        yield path, value
    elif isinstance(value, NewEntity):
        for key, v in value.attributes.items():
            yield from _documents_in(v, path + (key,))
    elif isinstance(value, (list, tuple)):
        for i, v in enumerate(value):
            yield from _documents_in(v, path + (i,))
    elif isinstance(value, Mapping):
        for key, v in value.items():
            yield from _documents_in(v, path + (key,))


def nested_documents(tree: Node, path: tuple = ()) -> Iterator[tuple[tuple, Root]]:
    """Yield (path, root) for structured text held in the attributes of new blocks.

    Paths continue from the block's path with the attribute key (and list
    index), as in validation error paths. Only the first level is yielded.
    """
    for node, node_path in iter_nodes(tree, path):
        if isinstance(node, Block) and isinstance(node.item, NewEntity):
            yield from _documents_in(node.item, node_path)


def iter_nodes(tree: Node, path: tuple = (), deep: bool = False) -> Iterator[tuple[Node, tuple]]:
    """Yield (node, path) pairs depth-first, parents before children.

    By default the walk stays inside one document. With deep=True the
    documents nested in new blocks are walked right after their block.
    """
    yield tree, path
    if deep and isinstance(tree, Block) and isinstance(tree.item, NewEntity):
        for doc_path, doc in _documents_in(tree.item, path):
            yield from iter_nodes(doc, doc_path, deep=True)
    for i, child in enumerate(children_of(tree)):
        yield from iter_nodes(child, path + (i,), deep)


def find_all(tree: Node, predicate: Predicate, deep: bool = False) -> list[tuple[Node, tuple]]:
    return [(node, path) for node, path in iter_nodes(tree, deep=deep) if predicate(node)]


def find_first(tree: Node, predicate: Predicate, deep: bool = False) -> Optional[tuple[Node, tuple]]:
    return next(((n, p) for n, p in iter_nodes(tree, deep=deep) if predicate(n)), None)


def node_at(tree: Node, path: Sequence[int]) -> Node:
    """Return the node at path. Raises IndexError if the path leaves the tree."""
    node = tree
    for depth, index in enumerate(path):
        children = children_of(node)
        if not 0 <= index < len(children):
            raise IndexError(f"No child {index} under path {tuple(path[:depth])}")
        node = children[index]
    return node


def _map_documents(value: Any, fn: Callable[[Root], Optional[Root]]) -> Any:
    """Apply fn to every document held in value; returns value itself when nothing changed."""
    if isinstance(value, Root):
        return fn(value)
    if isinstance(value, NewEntity):
        attributes = {k: _map_documents(v, fn) for k, v in value.attributes.items()}
        if all(attributes[k] is v for k, v in value.attributes.items()):
            return value
        return NewEntity(entity_type=value.entity_type, attributes=attributes)
    if isinstance(value, (list, tuple)):
        items = tuple(_map_documents(v, fn) for v in value)
        return value if all(a is b for a, b in zip(items, value)) else items
    if isinstance(value, Mapping):
        mapped = {k: _map_documents(v, fn) for k, v in value.items()}
        return value if all(mapped[k] is v for k, v in value.items()) else mapped
    return value


def transform(tree: Node, visitor: Visitor, deep: bool = False) -> Optional[Node]:
    """Rewrite a tree bottom-up.

    visitor receives each node after its children have been rewritten and
    returns the replacement node, the same node, or None to drop it from its
    parent. Parents are rebuilt through normal model validation, so an invalid
    replacement raises StructuralError or EmptyChildrenError. Untouched
    subtrees are shared with the input. Returns None if the root is dropped.

    Documents nested in the attributes of new blocks are left alone unless
    deep=True; then they are rewritten first and the block is rebuilt. A
    nested root the visitor drops becomes None in the attributes.
    """
    node = tree
    if deep and isinstance(node, Block) and isinstance(node.item, NewEntity):
        item = _map_documents(node.item, lambda doc: transform(doc, visitor, deep=True))
        if item is not node.item:
            node = Block(item=item)
    if not node.is_leaf():
        kept = [new for new in (transform(c, visitor, deep) for c in node.children) if new is not None]
        if len(kept) != len(node.children) or any(a is not b for a, b in zip(kept, node.children)):
            node = type(node)(**{**dict(node), "children": kept})
    return visitor(node)


def referenced_entity_ids(tree: Node) -> list[str]:
    """Ids referenced by item links, inline items and existing blocks, first-seen order.

    Also walks nested documents and new blocks held in block attributes.
    """
    seen: dict[str, None] = {}
    for node, _ in iter_nodes(tree, deep=True):
        if isinstance(node, (ItemLink, InlineItem)):
            seen.setdefault(node.target_id)
        elif isinstance(node, Block) and isinstance(node.item, ExistingEntityRef):
            seen.setdefault(node.item.id)
    return list(seen)


# --- diff ---

class ChangeKind(str, Enum):
    added = "added"
    removed = "removed"
    changed = "changed"


class Change(BaseModel):
    """One difference between two trees at a given path."""
    model_config = ConfigDict(frozen=True)

    path: Path
    kind: ChangeKind
    before: Optional[Node] = None
    after: Optional[Node] = None


def diff(before: Node, after: Node) -> list[Change]:
    """Positional structural diff of two trees.

    Children are aligned by index within their parent only; there is no
    sequence matching, so inserting a node near the front of a list reports
    every later sibling as changed plus one trailing addition. When two
    aligned nodes differ in kind the whole subtree is reported as a single
    change and not descended into.
    """
    changes: list[Change] = []
    _diff(before, after, (), changes)
    return changes


def _diff(a: Node, b: Node, path: Path, out: list[Change]) -> None:
    if a.type != b.type:
        out.append(Change(path=path, kind=ChangeKind.changed, before=a, after=b))
        return
    if node_attributes(a) != node_attributes(b):
        out.append(Change(path=path, kind=ChangeKind.changed, before=a, after=b))

    ca, cb = children_of(a), children_of(b)
    for i in range(max(len(ca), len(cb))):
        child_path = path + (i,)
        if i >= len(ca):
            out.append(Change(path=child_path, kind=ChangeKind.added, after=cb[i]))
        elif i >= len(cb):
            out.append(Change(path=child_path, kind=ChangeKind.removed, before=ca[i]))
        else:
            _diff(ca[i], cb[i], child_path, out)
