"""Entity type resolvers backing link and block validation"""

from dataclasses import dataclass, field
from typing import Optional

from loguru import logger
from sqlmodel import Session

from dastkit.crud.tables import EntityRecord


@dataclass
class MemoryResolver:
    """Dict-backed resolver for tests and one-off validation runs."""
    _types: dict[str, str] = field(default_factory=dict)

    def register(self, entity_id: str, item_type: str) -> None:
        self._types[entity_id] = item_type

    def resolve_type(self, entity_id: str) -> Optional[str]:
        return self._types.get(entity_id)


class SQLResolver:
    """Resolves entity types from the `entities` table."""

    def __init__(self, session: Session):
        self.session = session

    def register(self, entity_id: str, item_type: str) -> EntityRecord:
        """Insert or retype an entity. Flushes but does not commit."""
        record = self.session.get(EntityRecord, entity_id)
        if record is None:
            record = EntityRecord(id=entity_id, item_type=item_type)
        elif record.item_type != item_type:
            logger.debug("Retyping entity '{}': {} -> {}", entity_id, record.item_type, item_type)
            record.item_type = item_type
        self.session.add(record)
        self.session.flush()
        return record

    def resolve_type(self, entity_id: str) -> Optional[str]:
        record = self.session.get(EntityRecord, entity_id)
        return record.item_type if record else None
