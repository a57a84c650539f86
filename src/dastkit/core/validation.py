"""Schema validation of documents and block fields

Findings are returned as data, in traversal order, never raised. A schema
describes one field context; `block_fields` nests further contexts for the
structured-text and modular-content fields of embedded block types.
"""

import json
from enum import Enum
from pathlib import Path
from typing import Any, Optional, Sequence, Union

import yaml
from loguru import logger
from pydantic import BaseModel, ConfigDict, Field
from pydantic import ValidationError as PydanticValidationError

from dastkit.core.models import Block, EmbeddedEntity, ExistingEntityRef, ItemLink, List, NewEntity, Node, Root
from dastkit.core.serialization import encode_embedded, encode_node
from dastkit.core.traversal import children_of
from dastkit.protocols import TypeResolver


class Schema(BaseModel):
    """Validation rules for one field context. Empty type sets allow nothing."""
    model_config = ConfigDict(frozen=True)

    allowed_block_types: frozenset[str] = frozenset()
    allowed_link_target_types: frozenset[str] = frozenset()
    max_size: Optional[int] = Field(default=None, ge=0, description="Max compact JSON length")
    max_nesting: Optional[int] = Field(default=None, ge=1, description="Max list nesting depth")
    block_fields: dict[str, dict[str, "Schema"]] = Field(
        default_factory=dict, description="Rules for nested fields, keyed by block type then field",
    )


class ErrorKind(str, Enum):
    disallowed_block_type = "disallowed_block_type"
    disallowed_link_target = "disallowed_link_target"
    unknown_entity = "unknown_entity"
    invalid_value = "invalid_value"
    nesting_exceeded = "nesting_exceeded"
    size_exceeded = "size_exceeded"


class ValidationError(BaseModel):
    """A single finding. Strings in path name the block field that was entered."""
    model_config = ConfigDict(frozen=True)

    path: tuple[Union[int, str], ...]
    kind: ErrorKind
    detail: str


def _allowed(types: frozenset[str]) -> str:
    return ", ".join(sorted(types)) or "none"


class _Run:
    """State of one validation call: collected errors and memoized type lookups."""

    def __init__(self, resolver: Optional[TypeResolver]):
        self.resolver = resolver
        self.errors: list[ValidationError] = []
        self._types: dict[str, Optional[str]] = {}

    def report(self, path: tuple, kind: ErrorKind, detail: str) -> None:
        self.errors.append(ValidationError(path=path, kind=kind, detail=detail))

    def resolve(self, entity_id: str, path: tuple) -> Optional[str]:
        """Type of entity_id; reports unknown ids. None also when there is no resolver."""
        if self.resolver is None:
            logger.debug("No type resolver; skipping check of '{}'", entity_id)
            return None
        if entity_id not in self._types:
            self._types[entity_id] = self.resolver.resolve_type(entity_id)
        entity_type = self._types[entity_id]
        if entity_type is None:
            self.report(path, ErrorKind.unknown_entity, f"entity '{entity_id}' not found")
        return entity_type

    def check_size(self, encoded: Any, schema: Schema, path: tuple) -> None:
        if schema.max_size is None:
            return
        size = len(json.dumps(encoded, separators=(",", ":"), ensure_ascii=False))
        if size > schema.max_size:
            self.report(path, ErrorKind.size_exceeded,
                        f"serialized size {size} exceeds limit {schema.max_size}")

    def tree(self, node: Node, schema: Schema, path: tuple) -> None:
        self._visit(node, schema, path, 0)
        self.check_size(encode_node(node), schema, path)

    def blocks(self, values: Sequence[Any], schema: Schema, path: tuple) -> None:
        entities = []
        for i, value in enumerate(values):
            entity = self._as_entity(value, path + (i,))
            if entity is not None:
                self.entity(entity, schema, path + (i,))
                entities.append(entity)
        self.check_size([encode_embedded(e) for e in entities], schema, path)

    def field(self, value: Any, schema: Schema, path: tuple) -> None:
        if value is None:
            return
        if isinstance(value, Root):
            self.tree(value, schema, path)
        elif isinstance(value, (list, tuple)):
            self.blocks(value, schema, path)
        else:
            entity = self._as_entity(value, path)
            if entity is not None:
                self.entity(entity, schema, path)

    def entity(self, entity: EmbeddedEntity, schema: Schema, path: tuple) -> None:
        if isinstance(entity, NewEntity):
            entity_type = entity.entity_type
        else:
            entity_type = self.resolve(entity.id, path)
            if entity_type is None:
                return

        if entity_type not in schema.allowed_block_types:
            self.report(path, ErrorKind.disallowed_block_type,
                        f"block type '{entity_type}' is not allowed here "
                        f"(allowed: {_allowed(schema.allowed_block_types)})")

        if isinstance(entity, NewEntity):
            for name, sub_schema in schema.block_fields.get(entity_type, {}).items():
                self.field(entity.attributes.get(name), sub_schema, path + (name,))

    def _as_entity(self, value: Any, path: tuple) -> Optional[EmbeddedEntity]:
        if isinstance(value, str):
            return ExistingEntityRef(id=value)
        if isinstance(value, (NewEntity, ExistingEntityRef)):
            return value
        self.report(path, ErrorKind.invalid_value,
                    f"expected a block, got {type(value).__name__}")
        return None

    def _visit(self, node: Node, schema: Schema, path: tuple, list_depth: int) -> None:
        match node:
            case Block(item=item):
                self.entity(item, schema, path)
            case ItemLink(target_id=target_id):
                target_type = self.resolve(target_id, path)
                if target_type is not None and target_type not in schema.allowed_link_target_types:
                    self.report(path, ErrorKind.disallowed_link_target,
                                f"link target type '{target_type}' is not allowed "
                                f"(allowed: {_allowed(schema.allowed_link_target_types)})")
            case List():
                list_depth += 1
                if schema.max_nesting is not None and list_depth > schema.max_nesting:
                    self.report(path, ErrorKind.nesting_exceeded,
                                f"list nesting depth {list_depth} exceeds limit {schema.max_nesting}")

        for i, child in enumerate(children_of(node)):
            self._visit(child, schema, path + (i,), list_depth)


def validate(tree: Node, schema: Schema, resolver: Optional[TypeResolver] = None) -> list[ValidationError]:
    """Validate a structured-text tree. An empty list means the tree is valid."""
    run = _Run(resolver)
    run.tree(tree, schema, ())
    logger.debug("Validated document: {} error(s)", len(run.errors))
    return run.errors


def validate_blocks(
    blocks: Sequence[Any],
    schema: Schema,
    resolver: Optional[TypeResolver] = None,
    ) -> list[ValidationError]:
    """Validate the value of a modular-content field (an ordered list of blocks)."""
    run = _Run(resolver)
    run.blocks(blocks, schema, ())
    return run.errors


def validate_block(
    value: Any,
    schema: Schema,
    resolver: Optional[TypeResolver] = None,
    ) -> list[ValidationError]:
    """Validate the value of a single-block field; None (empty field) is valid."""
    run = _Run(resolver)
    run.field(value, schema, ())
    return run.errors


def load_schema(path: Union[str, Path]) -> Schema:
    """Load a Schema from a YAML file. Raises ValueError naming the file on bad content."""
    path = Path(path)
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as e:
        raise ValueError(f"Invalid schema file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ValueError(f"Invalid schema file {path}: expected a mapping, got {type(data).__name__}")
    try:
        return Schema.model_validate(data)
    except PydanticValidationError as e:
        raise ValueError(f"Invalid schema file {path}: {e}") from e
