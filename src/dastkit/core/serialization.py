"""Wire encoding and decoding of documents: a schema tag plus a nested JSON tree"""

import json
from typing import Any, Mapping, Optional, Union

from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from dastkit.core.errors import DastError, DecodeError, StructuralError
from dastkit.core.models import (
    NODE_TYPES,
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
    Mark,
    MetaEntry,
    NewEntity,
    Node,
    Paragraph,
    Root,
    Span,
    ThematicBreak,
)


SCHEMA_TAG = "dast"
ENTITY_OBJECT_TYPE = "item"
ENTITY_TYPE_RELATIONSHIP = "item_type"

# Model field names whose wire key differs; only the wire key is accepted.
_RENAMED_FIELDS = frozenset({"target_id"})


class WireDocument(BaseModel):
    """The transport form of a structured-text value."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    schema_tag: str = Field(default=SCHEMA_TAG, alias="schema")
    document: dict[str, Any]

    def to_dict(self) -> dict[str, Any]:
        return self.model_dump(by_alias=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        return json.dumps(self.to_dict(), indent=indent, ensure_ascii=False)


# --- encoding ---

def _meta(meta: tuple[MetaEntry, ...]) -> list[dict[str, str]]:
    return [{"id": m.id, "value": m.value} for m in meta]


def _children(children: tuple[Node, ...]) -> list[dict[str, Any]]:
    return [encode_node(c) for c in children]


def encode_node(node: Node) -> dict[str, Any]:
    """Encode a single node (and its subtree) to its JSON object."""
    match node:
        case Span(value=value, marks=marks):
            out: dict[str, Any] = {"type": "span", "value": value}
            if marks:
                out["marks"] = [m.value for m in Mark if m in marks]
            return out
        case Link(url=url, meta=meta, children=children):
            out = {"type": "link", "url": url}
            if meta:
                out["meta"] = _meta(meta)
            out["children"] = _children(children)
            return out
        case ItemLink(target_id=target_id, meta=meta, children=children):
            out = {"type": "itemLink", "item": target_id}
            if meta:
                out["meta"] = _meta(meta)
            out["children"] = _children(children)
            return out
        case InlineItem(target_id=target_id):
            return {"type": "inlineItem", "item": target_id}
        case Block(item=item):
            return {"type": "block", "item": encode_embedded(item)}
        case Paragraph(style=style, children=children):
            out = {"type": "paragraph"}
            if style is not None:
                out["style"] = style
            out["children"] = _children(children)
            return out
        case Heading(level=level, style=style, children=children):
            out = {"type": "heading", "level": level}
            if style is not None:
                out["style"] = style
            out["children"] = _children(children)
            return out
        case List(style=style, children=children):
            return {"type": "list", "style": style.value, "children": _children(children)}
        case ListItem(children=children):
            return {"type": "listItem", "children": _children(children)}
        case Blockquote(attribution=attribution, children=children):
            out = {"type": "blockquote"}
            if attribution is not None:
                out["attribution"] = attribution
            out["children"] = _children(children)
            return out
        case Code(code=source, language=language, highlight=highlight):
            out = {"type": "code", "code": source}
            if language is not None:
                out["language"] = language
            if highlight:
                out["highlight"] = list(highlight)
            return out
        case ThematicBreak():
            return {"type": "thematicBreak"}
        case Root(children=children):
            return {"type": "root", "children": _children(children)}
    raise TypeError(f"Cannot encode {type(node).__name__}")


def encode(tree: Root) -> WireDocument:
    """Encode a document tree for transport."""
    if not isinstance(tree, Root):
        raise StructuralError(tree.type, "document", frozenset({"root"}))
    return WireDocument(document=encode_node(tree))


def encode_embedded(entity: EmbeddedEntity) -> Union[str, dict[str, Any]]:
    """A new entity becomes an item object, an existing one its bare id."""
    match entity:
        case ExistingEntityRef(id=entity_id):
            return entity_id
        case NewEntity(entity_type=entity_type, attributes=attributes):
            return {
                "type": ENTITY_OBJECT_TYPE,
                "attributes": {k: encode_value(v) for k, v in attributes.items()},
                "relationships": {
                    ENTITY_TYPE_RELATIONSHIP: {
                        "data": {"id": entity_type, "type": ENTITY_TYPE_RELATIONSHIP},
                    },
                },
            }
    raise TypeError(f"Cannot encode embedded entity {entity!r}")


def encode_value(value: Any) -> Any:
    """Encode an attribute value; nested blocks and documents are lifted to wire form."""
    if isinstance(value, (NewEntity, ExistingEntityRef)):
        return encode_embedded(value)
    if isinstance(value, Root):
        return encode(value).to_dict()
    if isinstance(value, (list, tuple)):
        return [encode_value(v) for v in value]
    if isinstance(value, Mapping):
        return {k: encode_value(v) for k, v in value.items()}
    return value


# --- decoding ---

def _is_entity_payload(value: Mapping) -> bool:
    return value.get("type") == ENTITY_OBJECT_TYPE and "relationships" in value


def _is_wire_document(value: Mapping) -> bool:
    return value.get("schema") == SCHEMA_TAG and "document" in value


def decode_value(value: Any, path: tuple = ()) -> Any:
    """Inverse of encode_value. Bare strings stay strings."""
    if isinstance(value, Mapping):
        if _is_entity_payload(value):
            return decode_embedded(value, path)
        if _is_wire_document(value):
            return decode(value, path)
        return {k: decode_value(v, path + (k,)) for k, v in value.items()}
    if isinstance(value, list):
        return [decode_value(v, path + (i,)) for i, v in enumerate(value)]
    return value


def decode_embedded(payload: Any, path: tuple = ()) -> EmbeddedEntity:
    """Decode a block slot: a string is an existing record, an object a new one."""
    if isinstance(payload, str):
        return ExistingEntityRef(id=payload)
    if not isinstance(payload, Mapping):
        raise DecodeError(f"block item must be an id or an object, got {type(payload).__name__}", path)

    try:
        entity_type = payload["relationships"][ENTITY_TYPE_RELATIONSHIP]["data"]["id"]
    except (KeyError, TypeError) as e:
        raise DecodeError("block item has no item_type relationship", path) from e
    attributes = payload.get("attributes", {})
    if not isinstance(attributes, Mapping):
        raise DecodeError("block item attributes must be an object", path)

    decoded = {k: decode_value(v, path + (k,)) for k, v in attributes.items()}
    try:
        return NewEntity(entity_type=entity_type, attributes=decoded)
    except (DastError, PydanticValidationError) as e:
        raise DecodeError(f"invalid block item: {e}", path) from e


def decode_node(data: Any, path: tuple = ()) -> Node:
    """Decode one JSON node and its subtree. Raises DecodeError on any unknown shape."""
    if not isinstance(data, Mapping):
        raise DecodeError(f"expected a node object, got {type(data).__name__}", path)
    kind = data.get("type")
    cls = NODE_TYPES.get(kind)
    if cls is None:
        raise DecodeError(f"unknown node type {kind!r}", path)

    fields: dict[str, Any] = {}
    for key, value in data.items():
        if key == "type":
            continue
        if key == "children":
            if cls.is_leaf():
                raise DecodeError(f"'{kind}' cannot have children", path)
            if not isinstance(value, list):
                raise DecodeError("children must be a list", path)
            fields["children"] = [decode_node(c, path + (i,)) for i, c in enumerate(value)]
        elif key == "item" and cls is Block:
            fields["item"] = decode_embedded(value, path)
        elif key == "item" and cls in (ItemLink, InlineItem):
            fields["target_id"] = value
        elif key in _RENAMED_FIELDS:
            raise DecodeError(f"unknown key {key!r} on '{kind}'", path)
        else:
            fields[key] = value

    try:
        return cls(**fields)
    except (DastError, PydanticValidationError) as e:
        raise DecodeError(f"invalid '{kind}' node: {e}", path) from e


def decode(wire: Union[WireDocument, Mapping, str, bytes], path: tuple = ()) -> Root:
    """Decode a wire document (model, mapping or JSON text) back into a tree."""
    if isinstance(wire, WireDocument):
        data: Any = wire.to_dict()
    elif isinstance(wire, (str, bytes)):
        try:
            data = json.loads(wire)
        except ValueError as e:
            raise DecodeError(f"invalid JSON: {e}", path) from e
    else:
        data = wire

    if not isinstance(data, Mapping):
        raise DecodeError("expected a JSON object", path)
    if data.get("schema") != SCHEMA_TAG:
        raise DecodeError(f"unsupported schema {data.get('schema')!r}", path)

    try:
        node = decode_node(data.get("document"), path)
    except RecursionError as e:
        raise DecodeError("document nested too deeply", path) from e
    if not isinstance(node, Root):
        raise DecodeError(f"document must be a 'root' node, got '{node.type}'", path)
    logger.debug("Decoded document with {} top-level node(s)", len(node.children))
    return node
