'''
Data access for accounting entries. No policy lives here.
'''
from datetime import datetime
from decimal import Decimal
from typing import Annotated, Optional
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import AccountingStatus
from ..common.exceptions import StoreError
from ..common.logger import log


class AccountingEntryStore:
    """
    Create/read/update/delete of individual rows in the `accounting` table.
    Every SQLAlchemy failure is logged and re-raised as StoreError.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    def _store_error(self, action: str, e: SQLAlchemyError) -> StoreError:
        log.error(f"Database error while trying to {action}: {e}", exc_info=True)
        return StoreError(f"Failed to {action}.", details=str(e), original=e)

    # --- Create ---

    async def create_entry(
        self,
        teacher_id: UUID,
        student_id: UUID,
        amount: Decimal,
        status: AccountingStatus = AccountingStatus.PENDING
    ) -> db_models.Accounting:
        entries = await self.create_entries([(teacher_id, student_id, amount)], status=status)
        return entries[0]

    async def create_entries(
        self,
        rows: list[tuple[UUID, UUID, Decimal]],
        status: AccountingStatus = AccountingStatus.PENDING
    ) -> list[db_models.Accounting]:
        """
        Bulk insert of (teacher_id, student_id, amount) rows sharing one status.
        Returns the flushed ORM objects (ids and created_at populated).
        """
        if not rows:
            return []
        log.info(f"Inserting {len(rows)} '{status.value}' accounting entries.")
        entries = [
            db_models.Accounting(
                teacher_id=teacher_id,
                student_id=student_id,
                amount=amount,
                status=status.value
            )
            for teacher_id, student_id, amount in rows
        ]
        try:
            self.db.add_all(entries)
            await self.db.flush()
            return entries
        except SQLAlchemyError as e:
            raise self._store_error("insert accounting entries", e) from e

    # --- Read ---

    async def get_entry(self, entry_id: int) -> db_models.Accounting | None:
        try:
            return await self.db.get(db_models.Accounting, entry_id)
        except SQLAlchemyError as e:
            raise self._store_error(f"fetch accounting entry {entry_id}", e) from e

    async def list_entries(
        self,
        teacher_id: UUID,
        status: Optional[AccountingStatus] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        for_update: bool = False
    ) -> list[db_models.Accounting]:
        """
        Fetches a teacher's entries oldest first (created_at, then id).
        `for_update` row-locks them for the rest of the transaction (no-op on SQLite).
        """
        stmt = select(db_models.Accounting).filter(db_models.Accounting.teacher_id == teacher_id)
        if status is not None:
            stmt = stmt.filter(db_models.Accounting.status == status.value)
        if date_from is not None:
            stmt = stmt.filter(db_models.Accounting.created_at >= date_from)
        if date_to is not None:
            stmt = stmt.filter(db_models.Accounting.created_at <= date_to)
        stmt = stmt.order_by(db_models.Accounting.created_at.asc(), db_models.Accounting.id.asc())
        if for_update:
            stmt = stmt.with_for_update()
        try:
            result = await self.db.execute(stmt)
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._store_error(f"list accounting entries for teacher {teacher_id}", e) from e

    async def sum_pending(self, teacher_id: UUID) -> Decimal:
        stmt = select(func.sum(db_models.Accounting.amount)).filter(
            db_models.Accounting.teacher_id == teacher_id,
            db_models.Accounting.status == AccountingStatus.PENDING.value
        )
        try:
            total = (await self.db.execute(stmt)).scalar()
            return Decimal(str(total)) if total is not None else Decimal(0)
        except SQLAlchemyError as e:
            raise self._store_error(f"sum pending entries for teacher {teacher_id}", e) from e

    async def list_teacher_ids(self) -> list[UUID]:
        """Distinct teacher ids that own at least one entry."""
        try:
            result = await self.db.execute(select(db_models.Accounting.teacher_id).distinct())
            return [row[0] for row in result]
        except SQLAlchemyError as e:
            raise self._store_error("list teacher ids from accounting", e) from e

    # --- Update / Delete ---

    async def update_amount(self, entry: db_models.Accounting, amount: Decimal) -> db_models.Accounting:
        try:
            entry.amount = amount
            entry.status = AccountingStatus.PENDING.value
            await self.db.flush()
            return entry
        except SQLAlchemyError as e:
            raise self._store_error(f"update accounting entry {entry.id}", e) from e

    async def delete_entry(self, entry: db_models.Accounting) -> None:
        try:
            await self.db.delete(entry)
            await self.db.flush()
        except SQLAlchemyError as e:
            raise self._store_error(f"delete accounting entry {entry.id}", e) from e

    async def delete_pending_for_teacher(self, teacher_id: UUID) -> list[db_models.Accounting]:
        """Deletes every pending entry of a teacher and returns the deleted rows."""
        entries = await self.list_entries(teacher_id, status=AccountingStatus.PENDING, for_update=True)
        try:
            for entry in entries:
                await self.db.delete(entry)
            await self.db.flush()
            return entries
        except SQLAlchemyError as e:
            raise self._store_error(f"delete pending entries for teacher {teacher_id}", e) from e

    async def delete_non_positive_pending(self, teacher_id: UUID) -> int:
        """Deletes pending entries with amount <= 0. Returns how many were removed."""
        stmt = select(db_models.Accounting).filter(
            db_models.Accounting.teacher_id == teacher_id,
            db_models.Accounting.status == AccountingStatus.PENDING.value,
            db_models.Accounting.amount <= 0
        )
        try:
            entries = list((await self.db.execute(stmt)).scalars().all())
            for entry in entries:
                await self.db.delete(entry)
            await self.db.flush()
            return len(entries)
        except SQLAlchemyError as e:
            raise self._store_error(f"clean up non-positive pending entries for teacher {teacher_id}", e) from e
