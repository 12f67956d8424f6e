"""Student memory data access layer."""
import logging
from datetime import datetime
from typing import Any, Optional
from uuid import uuid4
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session as DBSession

from shared.models.entities import Memory

logger = logging.getLogger(__name__)


class MemoryRepository:
    """
    Key/value memory per (student, memory_type, key).

    Writes are last-write-wins. `append` is a read followed by a write and is
    not atomic: two concurrent appends to the same key can lose one entry.
    """

    def __init__(self, db: DBSession):
        self.db = db

    def _get_row(self, student_id: str, memory_type: str, key: str) -> Optional[Memory]:
        return (
            self.db.query(Memory)
            .filter(
                Memory.student_id == student_id,
                Memory.memory_type == memory_type,
                Memory.key == key,
            )
            .first()
        )

    def get_value(self, student_id: str, memory_type: str, key: str) -> Any:
        """Stored value, or None when the key is absent."""
        row = self._get_row(student_id, memory_type, key)
        return row.value if row else None

    def get_all(self, student_id: str, memory_type: Optional[str] = None) -> list[Memory]:
        query = self.db.query(Memory).filter(Memory.student_id == student_id)
        if memory_type:
            query = query.filter(Memory.memory_type == memory_type)
        return query.order_by(Memory.key.asc()).all()

    def set(self, student_id: str, memory_type: str, key: str, value: Any) -> Memory:
        """Upsert a value and commit."""
        row = self._get_row(student_id, memory_type, key)
        if row:
            row.value = value
            row.updated_at = datetime.utcnow()
        else:
            row = Memory(
                id=str(uuid4()),
                student_id=student_id,
                memory_type=memory_type,
                key=key,
                value=value,
            )
            self.db.add(row)
        try:
            self.db.commit()
        except IntegrityError:
            # Another writer inserted the key first; last write wins
            self.db.rollback()
            row = self._get_row(student_id, memory_type, key)
            row.value = value
            row.updated_at = datetime.utcnow()
            self.db.commit()
        return row

    def append(self, student_id: str, memory_type: str, key: str, value: Any,
               max_items: Optional[int] = None) -> Memory:
        """Append to a list value (non-list values are replaced by a new list)."""
        existing = self.get_value(student_id, memory_type, key)
        items = list(existing) if isinstance(existing, list) else []
        items.append(value)
        if max_items is not None and len(items) > max_items:
            items = items[-max_items:]
        return self.set(student_id, memory_type, key, items)

    def delete(self, student_id: str, memory_type: str, key: Optional[str] = None) -> int:
        query = self.db.query(Memory).filter(
            Memory.student_id == student_id,
            Memory.memory_type == memory_type,
        )
        if key:
            query = query.filter(Memory.key == key)
        count = query.delete(synchronize_session=False)
        self.db.commit()
        return count
