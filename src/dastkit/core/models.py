"""Structured-text node model: a closed set of frozen, self-validating node types"""

from collections.abc import Iterator, Mapping
from enum import Enum
from typing import Any, ClassVar, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from dastkit.core.errors import (
    AmbiguousAttributeError,
    EmptyChildrenError,
    RangeError,
    StructuralError,
)


RESERVED_TYPE_KEY = "item_type"
HEADING_LEVELS = range(1, 7)

INLINE_KINDS = frozenset({"span", "link", "itemLink", "inlineItem"})
BLOCK_KINDS = frozenset({"paragraph", "heading", "list", "code", "blockquote", "block", "thematicBreak"})


class Mark(str, Enum):
    """Formatting marks a span can carry; set semantics, order irrelevant."""
    strong = "strong"
    emphasis = "emphasis"
    code = "code"
    strikethrough = "strikethrough"
    underline = "underline"
    highlight = "highlight"


class ListStyle(str, Enum):
    bulleted = "bulleted"
    numbered = "numbered"


class MetaEntry(BaseModel):
    """A single (id, value) pair attached to a link, e.g. rel or target."""
    model_config = ConfigDict(frozen=True)
    id: str
    value: str


class ExistingEntityRef(BaseModel):
    """Points at a block record that is already persisted."""
    model_config = ConfigDict(frozen=True)
    id: str


class FrozenDict(Mapping):
    """Read-only, hashable mapping used for block attributes."""

    __slots__ = ("_data",)

    def __init__(self, data: Mapping[str, Any] = ()):
        self._data = dict(data)

    def __getitem__(self, key: str) -> Any:
        return self._data[key]

    def __iter__(self) -> Iterator[str]:
        return iter(self._data)

    def __len__(self) -> int:
        return len(self._data)

    def __hash__(self) -> int:
        return hash(frozenset(self._data.items()))

    def __repr__(self) -> str:
        return f"FrozenDict({self._data!r})"


class NewEntity(BaseModel):
    """A block record created together with the record that embeds it.

    entity_type and attributes stay separate until the wire encoding step, so
    a field can never be confused with the type reference. Attributes are
    stored read-only: mappings as FrozenDict, sequences as tuples.
    """
    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)
    entity_type: str
    attributes: FrozenDict = FrozenDict()

    @field_validator("attributes", mode="before")
    @classmethod
    def _canonical_attributes(cls, value: Any) -> Any:
        if not isinstance(value, Mapping):
            return value
        if RESERVED_TYPE_KEY in value:
            raise AmbiguousAttributeError(
                f"Attribute '{RESERVED_TYPE_KEY}' collides with the reserved block type key"
            )
        return FrozenDict({k: _canonical(v) for k, v in value.items()})


EmbeddedEntity = Union[NewEntity, ExistingEntityRef]


def _canonical(value: Any) -> Any:
    """Reduce an attribute value to the read-only shape it has after a wire round trip."""
    if isinstance(value, ExistingEntityRef):
        return value.id
    if isinstance(value, (list, tuple)):
        return tuple(_canonical(v) for v in value)
    if isinstance(value, Mapping):
        return FrozenDict({k: _canonical(v) for k, v in value.items()})
    return value


class Node(BaseModel):
    """Base of every document node. `type` is the wire discriminator."""
    model_config = ConfigDict(frozen=True, extra="forbid")

    type: str
    allowed_children: ClassVar[frozenset[str]] = frozenset()

    @property
    def kind(self) -> str:
        return self.type

    @classmethod
    def is_leaf(cls) -> bool:
        return "children" not in cls.model_fields

    @model_validator(mode="before")
    @classmethod
    def _reject_leaf_children(cls, data: Any) -> Any:
        if isinstance(data, dict) and "children" in data and cls.is_leaf():
            raise StructuralError("children", cls.model_fields["type"].default, frozenset())
        return data


class _Container(Node):
    children: tuple[Node, ...] = ()

    @model_validator(mode="after")
    def _check_children(self):
        for child in self.children:
            if child.type not in self.allowed_children:
                raise StructuralError(child.type, self.type, self.allowed_children)
        return self


class Span(Node):
    type: Literal["span"] = "span"
    value: str
    marks: frozenset[Mark] = frozenset()


class Link(_Container):
    """External hyperlink; its children are the visible link text."""
    type: Literal["link"] = "link"
    url: str
    meta: tuple[MetaEntry, ...] = ()
    allowed_children: ClassVar[frozenset[str]] = frozenset({"span"})

    @model_validator(mode="after")
    def _require_text(self):
        if not self.children:
            raise EmptyChildrenError("link requires at least one child")
        return self


class ItemLink(_Container):
    """Link to another record; the author supplies the link text."""
    type: Literal["itemLink"] = "itemLink"
    target_id: str
    meta: tuple[MetaEntry, ...] = ()
    allowed_children: ClassVar[frozenset[str]] = frozenset({"span"})

    @model_validator(mode="after")
    def _require_text(self):
        if not self.children:
            raise EmptyChildrenError("itemLink requires at least one child")
        return self


class InlineItem(Node):
    """Inline reference to another record. Rendering belongs to the consumer."""
    type: Literal["inlineItem"] = "inlineItem"
    target_id: str


class Block(Node):
    """A block record embedded in the document body."""
    type: Literal["block"] = "block"
    item: Union[NewEntity, ExistingEntityRef]


class Paragraph(_Container):
    type: Literal["paragraph"] = "paragraph"
    style: Optional[str] = None
    allowed_children: ClassVar[frozenset[str]] = INLINE_KINDS


class Heading(_Container):
    type: Literal["heading"] = "heading"
    level: int
    style: Optional[str] = None
    allowed_children: ClassVar[frozenset[str]] = INLINE_KINDS

    @model_validator(mode="after")
    def _check_level(self):
        if self.level not in HEADING_LEVELS:
            raise RangeError(
                f"heading level must be between {HEADING_LEVELS.start} and "
                f"{HEADING_LEVELS.stop - 1}, got {self.level}"
            )
        return self


class ListItem(_Container):
    type: Literal["listItem"] = "listItem"
    allowed_children: ClassVar[frozenset[str]] = frozenset({"paragraph", "list"})


class List(_Container):
    type: Literal["list"] = "list"
    style: ListStyle = ListStyle.bulleted
    allowed_children: ClassVar[frozenset[str]] = frozenset({"listItem"})


class Blockquote(_Container):
    type: Literal["blockquote"] = "blockquote"
    attribution: Optional[str] = None
    allowed_children: ClassVar[frozenset[str]] = frozenset({"paragraph"})


class Code(Node):
    type: Literal["code"] = "code"
    code: str
    language: Optional[str] = None
    highlight: tuple[int, ...] = ()


class ThematicBreak(Node):
    type: Literal["thematicBreak"] = "thematicBreak"


class Root(_Container):
    """Document root. No container lists 'root' as a child, so it only appears on top."""
    type: Literal["root"] = "root"
    allowed_children: ClassVar[frozenset[str]] = BLOCK_KINDS


NODE_TYPES: dict[str, type[Node]] = {
    cls.model_fields["type"].default: cls
    for cls in (Root, Paragraph, Heading, List, ListItem, Blockquote, Code,
                ThematicBreak, Span, Link, ItemLink, InlineItem, Block)
}
