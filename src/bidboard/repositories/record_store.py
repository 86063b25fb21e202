"""Generic entity store over the SQL repositories.

The workflow engine only talks to a ``RecordStore``: list / create / update /
delete keyed by entity type name. Records cross the boundary as plain dicts so
the engine stays independent of the ORM.
"""

from typing import Any, Protocol

from sqlalchemy import inspect
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from bidboard.db.base import VersionedMixin
from bidboard.db.models.board import KanbanConfigRow
from bidboard.db.models.proposal import ProposalRow
from bidboard.errors.exceptions import NotFoundError, ValidationError
from bidboard.repositories.base import BaseRepository

PROPOSAL = "Proposal"
KANBAN_CONFIG = "KanbanConfig"


class RecordStore(Protocol):
    async def list(
        self,
        entity_type: str,
        filter: dict[str, Any] | None = None,
        sort: str | None = None,
        limit: int | None = None,
    ) -> list[dict]: ...

    async def create(self, entity_type: str, fields: dict[str, Any]) -> dict: ...

    async def update(self, entity_type: str, record_id: str, fields: dict[str, Any]) -> dict: ...

    async def delete(self, entity_type: str, record_id: str) -> None: ...


_ENTITIES: dict[str, tuple[type, str]] = {
    PROPOSAL: (ProposalRow, "proposal_id"),
    KANBAN_CONFIG: (KanbanConfigRow, "board_id"),
}

# Record field name -> ORM attribute name
_FIELD_ALIASES: dict[str, dict[str, str]] = {
    KANBAN_CONFIG: {"columns": "board_columns"},
}


def row_to_record(entity_type: str, row) -> dict:
    """Serialize an ORM row into a plain record dict."""
    record = {attr.key: getattr(row, attr.key) for attr in inspect(row).mapper.column_attrs}
    for field, attr in _FIELD_ALIASES.get(entity_type, {}).items():
        record[field] = record.pop(attr)
    return record


def _to_attrs(entity_type: str, fields: dict[str, Any]) -> dict[str, Any]:
    aliases = _FIELD_ALIASES.get(entity_type, {})
    return {aliases.get(k, k): v for k, v in fields.items()}


class SqlRecordStore:
    """RecordStore backed by an AsyncSession; every write commits on its own."""

    def __init__(self, session: AsyncSession):
        self.session = session

    def _repo(self, entity_type: str) -> tuple[BaseRepository, str]:
        try:
            model_class, pk_field = _ENTITIES[entity_type]
        except KeyError:
            raise ValidationError(f"Unknown entity type '{entity_type}'") from None
        return BaseRepository(self.session, model_class), pk_field

    async def get(self, entity_type: str, record_id: str) -> dict | None:
        repo, pk_field = self._repo(entity_type)
        row = await repo.get_by_id(pk_field, record_id)
        return row_to_record(entity_type, row) if row is not None else None

    async def list(
        self,
        entity_type: str,
        filter: dict[str, Any] | None = None,
        sort: str | None = None,
        limit: int | None = None,
    ) -> list[dict]:
        repo, _ = self._repo(entity_type)
        rows = await repo.list_filtered(_to_attrs(entity_type, filter or {}), sort=sort, limit=limit)
        return [row_to_record(entity_type, row) for row in rows]

    async def create(self, entity_type: str, fields: dict[str, Any]) -> dict:
        repo, _ = self._repo(entity_type)
        try:
            row = await repo.create(**_to_attrs(entity_type, fields))
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return row_to_record(entity_type, row)

    async def update(self, entity_type: str, record_id: str, fields: dict[str, Any]) -> dict:
        repo, pk_field = self._repo(entity_type)
        row = await repo.get_by_id(pk_field, record_id)
        if row is None:
            raise NotFoundError(entity_type, record_id)
        attrs = _to_attrs(entity_type, fields)
        if isinstance(row, VersionedMixin):
            attrs["version"] = row.next_version()
        try:
            await repo.update(row, **attrs)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
        return row_to_record(entity_type, row)

    async def delete(self, entity_type: str, record_id: str) -> None:
        repo, pk_field = self._repo(entity_type)
        row = await repo.get_by_id(pk_field, record_id)
        if row is None:
            raise NotFoundError(entity_type, record_id)
        try:
            await repo.delete_row(row)
            await self.session.commit()
        except SQLAlchemyError:
            await self.session.rollback()
            raise
