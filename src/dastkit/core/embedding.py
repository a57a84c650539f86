"""Embedding adapter: flat block descriptions in, embedded entities out"""

from typing import Any, Mapping, Optional, Union

from dastkit.core.errors import AmbiguousAttributeError
from dastkit.core.models import RESERVED_TYPE_KEY, EmbeddedEntity, ExistingEntityRef, NewEntity
from dastkit.core.serialization import decode_embedded as _decode_embedded
from dastkit.core.serialization import encode_embedded


TypeRef = Union[str, Mapping[str, Any]]


def _type_id(type_ref: TypeRef) -> str:
    """Accept either a bare type id or a {"id": ..., "type": "item_type"} reference."""
    if isinstance(type_ref, Mapping):
        type_id = type_ref.get("id")
    else:
        type_id = type_ref
    if not isinstance(type_id, str) or not type_id:
        raise AmbiguousAttributeError(f"Invalid block type reference: {type_ref!r}")
    return type_id


def embed_new_entity(type_ref: TypeRef, attributes: Optional[Mapping[str, Any]] = None) -> NewEntity:
    """Describe a block record to be created along with the enclosing record.

    Raises AmbiguousAttributeError if attributes carry the reserved type key.
    """
    attributes = dict(attributes or {})
    if RESERVED_TYPE_KEY in attributes:
        raise AmbiguousAttributeError(
            f"Attribute '{RESERVED_TYPE_KEY}' collides with the block type reference; "
            f"pass the type as type_ref instead"
        )
    return NewEntity(entity_type=_type_id(type_ref), attributes=attributes)


def embed_existing_entity(entity_id: str) -> ExistingEntityRef:
    return ExistingEntityRef(id=entity_id)


def build_block_record(flat: Mapping[str, Any]) -> NewEntity:
    """Split a flat {item_type: ..., **fields} description into a NewEntity."""
    if RESERVED_TYPE_KEY not in flat:
        raise AmbiguousAttributeError(f"Block description has no '{RESERVED_TYPE_KEY}' key")
    fields = {k: v for k, v in flat.items() if k != RESERVED_TYPE_KEY}
    return embed_new_entity(flat[RESERVED_TYPE_KEY], fields)


def decode_embedded(payload: Any) -> EmbeddedEntity:
    """Rebuild an embedded entity from its wire payload; DecodeError if unrecognized."""
    return _decode_embedded(payload)
