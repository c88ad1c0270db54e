'''
Read-only view of teachers and their student rosters.

The ledger asks this service "who are the teachers" and "who are this teacher's
students" instead of reading the user/role schema directly.
'''
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..database.db_enums import UserRole
from ..common.exceptions import StoreError
from ..common.logger import log
from .entry_store import AccountingEntryStore
from .fee_settings_store import FeeSettingsStore


class TeacherDirectoryService:
    def __init__(
        self,
        db: Annotated[AsyncSession, Depends(get_db_session)],
        entry_store: Annotated[AccountingEntryStore, Depends(AccountingEntryStore)],
        fee_store: Annotated[FeeSettingsStore, Depends(FeeSettingsStore)]
    ):
        self.db = db
        self.entry_store = entry_store
        self.fee_store = fee_store

    def _store_error(self, action: str, e: SQLAlchemyError) -> StoreError:
        log.error(f"Database error while trying to {action}: {e}", exc_info=True)
        return StoreError(f"Failed to {action}.", details=str(e), original=e)

    async def resolve_teacher_ids(self) -> list[UUID]:
        """
        Every id that should be treated as a teacher:
        users holding the teacher role, plus any teacher id referenced by
        students, accounting entries or fee settings (tolerates missing role rows).
        Role-assigned teachers come first in name order, then the extra ids.
        """
        log.info("Resolving the teacher universe.")
        try:
            role_stmt = select(db_models.Users.id).filter(
                db_models.Users.role == UserRole.TEACHER.value
            ).order_by(db_models.Users.name.asc(), db_models.Users.id.asc())
            role_ids = list((await self.db.execute(role_stmt)).scalars().all())

            student_stmt = select(db_models.Students.teacher_id).filter(
                db_models.Students.teacher_id.is_not(None)
            ).distinct()
            student_teacher_ids = list((await self.db.execute(student_stmt)).scalars().all())
        except SQLAlchemyError as e:
            raise self._store_error("resolve teacher ids", e) from e

        accounting_teacher_ids = await self.entry_store.list_teacher_ids()
        settings_teacher_ids = await self.fee_store.list_teacher_ids()

        extra_ids = sorted(
            set(student_teacher_ids) | set(accounting_teacher_ids) | set(settings_teacher_ids),
            key=str
        )
        seen = set(role_ids)
        teacher_ids = list(role_ids)
        for teacher_id in extra_ids:
            if teacher_id not in seen:
                seen.add(teacher_id)
                teacher_ids.append(teacher_id)
        return teacher_ids

    async def get_teacher(self, teacher_id: UUID) -> db_models.Users | None:
        try:
            return await self.db.get(db_models.Users, teacher_id)
        except SQLAlchemyError as e:
            raise self._store_error(f"fetch teacher {teacher_id}", e) from e

    async def get_teacher_names(self, teacher_ids: list[UUID]) -> dict[UUID, str]:
        if not teacher_ids:
            return {}
        try:
            result = await self.db.execute(
                select(db_models.Users.id, db_models.Users.name).filter(db_models.Users.id.in_(teacher_ids))
            )
            return {row.id: row.name or '' for row in result}
        except SQLAlchemyError as e:
            raise self._store_error("fetch teacher names", e) from e

    async def list_students(self, teacher_id: UUID) -> list[db_models.Students]:
        try:
            result = await self.db.execute(
                select(db_models.Students).filter(
                    db_models.Students.teacher_id == teacher_id
                ).order_by(db_models.Students.name.asc(), db_models.Students.id.asc())
            )
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            raise self._store_error(f"list students of teacher {teacher_id}", e) from e

    async def list_student_ids(self, teacher_id: UUID) -> list[UUID]:
        return [student.id for student in await self.list_students(teacher_id)]

    async def count_students(self, teacher_id: UUID) -> int:
        try:
            result = await self.db.execute(
                select(func.count(db_models.Students.id)).filter(db_models.Students.teacher_id == teacher_id)
            )
            return result.scalar() or 0
        except SQLAlchemyError as e:
            raise self._store_error(f"count students of teacher {teacher_id}", e) from e

    async def get_student(self, student_id: UUID) -> db_models.Students | None:
        try:
            return await self.db.get(db_models.Students, student_id)
        except SQLAlchemyError as e:
            raise self._store_error(f"fetch student {student_id}", e) from e
