'''
Data access for per-teacher default fees (`teacher_accounting_settings`).
'''
from decimal import Decimal
from typing import Annotated
from uuid import UUID

from fastapi import Depends
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from ..database.engine import get_db_session
from ..database import models as db_models
from ..common.exceptions import StoreError
from ..common.logger import log


class FeeSettingsStore:
    """
    Upsert/read of the one-row-per-teacher default fee.
    """
    def __init__(self, db: Annotated[AsyncSession, Depends(get_db_session)]):
        self.db = db

    async def get_setting(self, teacher_id: UUID) -> db_models.TeacherAccountingSettings | None:
        try:
            return await self.db.get(db_models.TeacherAccountingSettings, teacher_id)
        except SQLAlchemyError as e:
            log.error(f"Database error fetching fee setting for teacher {teacher_id}: {e}", exc_info=True)
            raise StoreError("Failed to fetch the teacher fee setting.", details=str(e), original=e) from e

    async def get_fee(self, teacher_id: UUID) -> Decimal | None:
        """None means no default fee is configured for this teacher."""
        setting = await self.get_setting(teacher_id)
        return setting.per_student_fee if setting else None

    async def upsert_fee(self, teacher_id: UUID, fee: Decimal) -> db_models.TeacherAccountingSettings:
        settings = await self.upsert_fees([teacher_id], fee)
        return settings[0]

    async def upsert_fees(self, teacher_ids: list[UUID], fee: Decimal) -> list[db_models.TeacherAccountingSettings]:
        """
        Sets the same fee for many teachers in one flush.
        Existing rows are updated, missing ones are inserted.
        """
        if not teacher_ids:
            return []
        log.info(f"Upserting per-student fee {fee} for {len(teacher_ids)} teacher(s).")
        try:
            result = await self.db.execute(
                select(db_models.TeacherAccountingSettings).filter(
                    db_models.TeacherAccountingSettings.teacher_id.in_(teacher_ids)
                )
            )
            existing = {row.teacher_id: row for row in result.scalars().all()}

            upserted = []
            for teacher_id in teacher_ids:
                setting = existing.get(teacher_id)
                if setting is None:
                    setting = db_models.TeacherAccountingSettings(teacher_id=teacher_id, per_student_fee=fee)
                    self.db.add(setting)
                    existing[teacher_id] = setting
                else:
                    setting.per_student_fee = fee
                upserted.append(setting)

            await self.db.flush()
            return upserted
        except SQLAlchemyError as e:
            log.error(f"Database error upserting fee settings: {e}", exc_info=True)
            raise StoreError("Failed to save the teacher fee setting.", details=str(e), original=e) from e

    async def list_teacher_ids(self) -> list[UUID]:
        try:
            result = await self.db.execute(select(db_models.TeacherAccountingSettings.teacher_id))
            return list(result.scalars().all())
        except SQLAlchemyError as e:
            log.error(f"Database error listing fee settings: {e}", exc_info=True)
            raise StoreError("Failed to list teacher fee settings.", details=str(e), original=e) from e
