"""Protocols for collaborators the core consults but does not own."""

from typing import Optional, Protocol, runtime_checkable


@runtime_checkable
class TypeResolver(Protocol):
    """Looks up the block/record type of a persisted entity."""

    def resolve_type(self, entity_id: str) -> Optional[str]:
        """Return the type id of entity_id, or None if no such entity exists."""
        ...
