'''
Teacher accounting: charges owed by each teacher to the administrator,
payment settlement, default-fee initialization and reporting.
'''
from collections import defaultdict
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Annotated, Any
from uuid import UUID

from fastapi import Depends

from ..database import models as db_models
from ..database.db_enums import AccountingStatus
from ..models import accounting as accounting_models
from ..common.exceptions import LedgerError, NotFound
from ..common.logger import log
from ..core.amounts import require_positive_amount, require_valid_fee, coerce_fee, normalize_date_range
from ..core.locks import teacher_ledger_lock
from .entry_store import AccountingEntryStore
from .fee_settings_store import FeeSettingsStore
from .teacher_directory import TeacherDirectoryService

# --- Service 1: Charges & Pending Management ---

class AccountingChargeService:
    """
    Adds single charges, lists entries and removes pending ones.
    Also holds the hooks used by the student-creation and teacher-onboarding flows.
    """
    def __init__(
        self,
        entry_store: Annotated[AccountingEntryStore, Depends(AccountingEntryStore)],
        fee_store: Annotated[FeeSettingsStore, Depends(FeeSettingsStore)],
        directory: Annotated[TeacherDirectoryService, Depends(TeacherDirectoryService)]
    ):
        self.entry_store = entry_store
        self.fee_store = fee_store
        self.directory = directory

    async def add_accounting_charge(
        self,
        student_id: UUID,
        amount: Any,
        teacher_id: Optional[UUID] = None
    ) -> accounting_models.AccountingEntryRead:
        """
        Inserts one pending charge for a student.
        1. Validates the amount (finite, > 0)
        2. Resolves the teacher from the student row when not given
        3. Inserts the entry
        """
        charge_amount = require_positive_amount(amount)
        log.info(f"Adding accounting charge of {charge_amount} for student {student_id}.")

        if teacher_id is None:
            student = await self.directory.get_student(student_id)
            if student is None or student.teacher_id is None:
                log.warning(f"Cannot resolve a teacher for student {student_id}.")
                raise NotFound(
                    "Cannot determine the teacher linked to this student.",
                    details={"student_id": str(student_id)}
                )
            teacher_id = student.teacher_id

        entry = await self.entry_store.create_entry(teacher_id, student_id, charge_amount)
        return accounting_models.AccountingEntryRead.model_validate(entry)

    async def list_teacher_accounting_entries(
        self,
        teacher_id: UUID,
        status: Optional[AccountingStatus] = None
    ) -> list[accounting_models.AccountingEntryRead]:
        """All entries of a teacher, oldest first, optionally filtered by status."""
        log.info(f"Listing accounting entries for teacher {teacher_id} (status={status}).")
        entries = await self.entry_store.list_entries(teacher_id, status=status)
        return [accounting_models.AccountingEntryRead.model_validate(entry) for entry in entries]

    async def delete_teacher_accounting_pending(self, teacher_id: UUID) -> accounting_models.DeleteResult:
        log.info(f"Deleting all pending accounting entries for teacher {teacher_id}.")
        deleted = await self.entry_store.delete_pending_for_teacher(teacher_id)
        log.info(f"Deleted {len(deleted)} pending entries for teacher {teacher_id}.")
        return accounting_models.DeleteResult(deleted=len(deleted))

    async def cleanup_zero_pending_for_teacher(self, teacher_id: UUID) -> accounting_models.DeleteResult:
        """Removes pending entries whose amount is zero or negative. Safe to re-run."""
        deleted = await self.entry_store.delete_non_positive_pending(teacher_id)
        if deleted:
            log.warning(f"Cleanup removed {deleted} non-positive pending entries for teacher {teacher_id}.")
        return accounting_models.DeleteResult(deleted=deleted)

    async def charge_new_student(self, student_id: UUID) -> accounting_models.AccountingEntryRead | None:
        """
        Student-creation hook: charges the new student the teacher's default fee.
        Returns None when the student has no teacher or the teacher has no positive default fee.
        """
        student = await self.directory.get_student(student_id)
        if student is None:
            raise NotFound("Student not found.", details={"student_id": str(student_id)})
        if student.teacher_id is None:
            log.info(f"Student {student_id} has no teacher; no default charge.")
            return None

        fee = await self.fee_store.get_fee(student.teacher_id)
        if fee is None or fee <= 0:
            log.info(f"Teacher {student.teacher_id} has no positive default fee; no charge for student {student_id}.")
            return None
        return await self.add_accounting_charge(student_id, fee, teacher_id=student.teacher_id)

    async def set_initial_teacher_fee(self, teacher_id: UUID, fee: Any) -> accounting_models.TeacherFeeSettingRead:
        """
        Teacher-onboarding hook: stores the initial default fee.
        An unusable fee is stored as 0 rather than rejected.
        """
        setting = await self.fee_store.upsert_fee(teacher_id, coerce_fee(fee))
        return accounting_models.TeacherFeeSettingRead.model_validate(setting)


# --- Service 2: Payment Settlement ---

class SettlementService:
    """
    Applies a teacher's payment against their pending entries, oldest first.
    """
    def __init__(
        self,
        entry_store: Annotated[AccountingEntryStore, Depends(AccountingEntryStore)],
        charge_service: Annotated[AccountingChargeService, Depends(AccountingChargeService)]
    ):
        self.entry_store = entry_store
        self.charge_service = charge_service

    async def apply_teacher_payment(self, teacher_id: UUID, amount: Any) -> accounting_models.PaymentResult:
        """
        FIFO settlement of a payment.
        1. Rejects a non-finite or non-positive amount before touching the store
        2. Walks pending entries oldest first: fully covered entries are deleted,
           the first entry that is only partly covered is reduced and the walk stops
        3. Cleans up non-positive leftovers
        4. If the teacher's pending total is now exactly zero, writes one 'paid'
           entry per student settled in this call
        """
        payment = require_positive_amount(amount)
        log.info(f"Applying payment of {payment} for teacher {teacher_id}.")

        try:
            async with teacher_ledger_lock(teacher_id):
                pending = await self.entry_store.list_entries(
                    teacher_id, status=AccountingStatus.PENDING, for_update=True
                )

                remaining = payment
                updated_entry_ids: list[int] = []
                # student_id -> amount settled in this call, in first-touched order
                settlements: dict[UUID, Decimal] = {}

                for entry in pending:
                    if remaining <= 0:
                        break
                    entry_amount = entry.amount
                    if entry_amount <= 0:
                        continue

                    if remaining >= entry_amount:
                        await self.entry_store.delete_entry(entry)
                        remaining -= entry_amount
                        settlements[entry.student_id] = settlements.get(entry.student_id, Decimal(0)) + entry_amount
                    else:
                        new_amount = entry_amount - remaining
                        if new_amount <= 0:
                            await self.entry_store.delete_entry(entry)
                        else:
                            await self.entry_store.update_amount(entry, new_amount)
                            updated_entry_ids.append(entry.id)
                        settlements[entry.student_id] = settlements.get(entry.student_id, Decimal(0)) + remaining
                        remaining = Decimal(0)
                        break

                applied_amount = payment - remaining

                await self.charge_service.cleanup_zero_pending_for_teacher(teacher_id)

                # Fresh read, inside the same transaction as the walk above
                remaining_due = await self.entry_store.sum_pending(teacher_id)
                created_payment_entry_ids: list[int] = []
                if remaining_due == 0 and settlements:
                    paid_entries = await self.entry_store.create_entries(
                        [(teacher_id, student_id, settled) for student_id, settled in settlements.items()],
                        status=AccountingStatus.PAID
                    )
                    created_payment_entry_ids = [entry.id for entry in paid_entries]
                    log.info(f"Teacher {teacher_id} fully settled; wrote {len(paid_entries)} paid entries.")

            log.info(
                f"Payment for teacher {teacher_id}: applied {applied_amount}, unapplied {remaining}, "
                f"updated {updated_entry_ids}."
            )
            return accounting_models.PaymentResult(
                applied_amount=applied_amount,
                remaining_unapplied=remaining,
                updated_entry_ids=updated_entry_ids,
                created_payment_entry_ids=created_payment_entry_ids
            )
        except LedgerError:
            raise
        except Exception as e:
            log.error(f"Unexpected error applying payment for teacher {teacher_id}: {e}", exc_info=True)
            raise


# --- Service 3: Default Fee Initialization ---

class FeeInitializationService:
    """
    Sets default per-student fees and (re)creates one pending charge per student.
    """
    def __init__(
        self,
        entry_store: Annotated[AccountingEntryStore, Depends(AccountingEntryStore)],
        fee_store: Annotated[FeeSettingsStore, Depends(FeeSettingsStore)],
        directory: Annotated[TeacherDirectoryService, Depends(TeacherDirectoryService)],
        charge_service: Annotated[AccountingChargeService, Depends(AccountingChargeService)]
    ):
        self.entry_store = entry_store
        self.fee_store = fee_store
        self.directory = directory
        self.charge_service = charge_service

    async def initialize_default_fee_for_teacher(
        self,
        teacher_id: UUID,
        per_student_fee: Any,
        overwrite_existing: bool = False
    ) -> accounting_models.InitializeResult:
        """
        1. Upserts the teacher's default fee
        2. Optionally deletes all of the teacher's pending entries
        3. Inserts one pending entry per current student at the fee
        A zero fee is stored but creates no charges.
        """
        fee = require_valid_fee(per_student_fee)
        log.info(f"Initializing default fee {fee} for teacher {teacher_id} (overwrite={overwrite_existing}).")

        async with teacher_ledger_lock(teacher_id):
            await self.fee_store.upsert_fee(teacher_id, fee)

            deleted = 0
            if overwrite_existing:
                deleted = (await self.charge_service.delete_teacher_accounting_pending(teacher_id)).deleted

            inserted = 0
            student_ids = await self.directory.list_student_ids(teacher_id)
            if student_ids and fee > 0:
                entries = await self.entry_store.create_entries(
                    [(teacher_id, student_id, fee) for student_id in student_ids]
                )
                inserted = len(entries)

        log.info(f"Teacher {teacher_id}: inserted {inserted}, deleted {deleted}.")
        return accounting_models.InitializeResult(inserted=inserted, deleted=deleted)

    async def initialize_default_fee_for_all_teachers(
        self,
        per_student_fee: Any,
        overwrite_existing: bool = True
    ) -> accounting_models.InitializeAllResult:
        """
        Runs the single-teacher initialization for every resolved teacher, one at a time.
        The first failing teacher aborts the whole call.
        """
        fee = require_valid_fee(per_student_fee)
        log.info(f"Initializing default fee {fee} for all teachers (overwrite={overwrite_existing}).")

        teacher_ids = await self.directory.resolve_teacher_ids()
        if not teacher_ids:
            return accounting_models.InitializeAllResult(teacher_ids=[], total_inserted=0, total_deleted=0)

        await self.fee_store.upsert_fees(teacher_ids, fee)

        total_inserted = 0
        total_deleted = 0
        for teacher_id in teacher_ids:
            try:
                result = await self.initialize_default_fee_for_teacher(
                    teacher_id, fee, overwrite_existing=overwrite_existing
                )
            except LedgerError as e:
                log.error(f"Bulk fee initialization aborted at teacher {teacher_id}: {e.message}")
                raise
            total_inserted += result.inserted
            total_deleted += result.deleted

        return accounting_models.InitializeAllResult(
            teacher_ids=teacher_ids,
            total_inserted=total_inserted,
            total_deleted=total_deleted
        )


# --- Service 4: Reporting ---

class AccountingReportService:
    """
    Read-only aggregates over pending entries for the admin and teacher views.
    """
    def __init__(
        self,
        entry_store: Annotated[AccountingEntryStore, Depends(AccountingEntryStore)],
        fee_store: Annotated[FeeSettingsStore, Depends(FeeSettingsStore)],
        directory: Annotated[TeacherDirectoryService, Depends(TeacherDirectoryService)]
    ):
        self.entry_store = entry_store
        self.fee_store = fee_store
        self.directory = directory

    async def _build_stats(
        self,
        teacher_id: UUID,
        teacher_name: str,
        start: Optional[datetime] = None,
        end: Optional[datetime] = None
    ) -> accounting_models.TeacherAccountingStats:
        students_count = await self.directory.count_students(teacher_id)
        pending = await self.entry_store.list_entries(
            teacher_id, status=AccountingStatus.PENDING, date_from=start, date_to=end
        )
        return accounting_models.TeacherAccountingStats(
            teacher_id=teacher_id,
            teacher_name=teacher_name,
            students_count=students_count,
            total_due=sum((entry.amount for entry in pending), Decimal(0)),
            pending_entries=len(pending)
        )

    async def _get_teacher_or_404(self, teacher_id: UUID) -> db_models.Users:
        teacher = await self.directory.get_teacher(teacher_id)
        if teacher is None:
            log.warning(f"Accounting requested for non-existent teacher {teacher_id}.")
            raise NotFound("Teacher not found.", details={"teacher_id": str(teacher_id)})
        return teacher

    async def list_teacher_accounting_stats(
        self,
        date_from: date | datetime | None = None,
        date_to: date | datetime | None = None
    ) -> list[accounting_models.TeacherAccountingStats]:
        """
        One stats row per teacher. `date_from`/`date_to` filter pending entries by
        creation time, inclusive, with `date_to` covering its whole day.
        """
        log.info(f"Listing teacher accounting stats (from={date_from}, to={date_to}).")
        start, end = normalize_date_range(date_from, date_to)

        teacher_ids = await self.directory.resolve_teacher_ids()
        if not teacher_ids:
            return []
        names = await self.directory.get_teacher_names(teacher_ids)

        return [
            await self._build_stats(teacher_id, names.get(teacher_id, ''), start, end)
            for teacher_id in teacher_ids
        ]

    async def get_teacher_accounting_stats(self, teacher_id: UUID) -> accounting_models.TeacherAccountingStats:
        teacher = await self._get_teacher_or_404(teacher_id)
        return await self._build_stats(teacher_id, teacher.name or '')

    async def get_teacher_accounting_details(self, teacher_id: UUID) -> accounting_models.TeacherAccountingDetails:
        """
        Per-student breakdown of what a teacher still owes.
        Students with nothing pending are left out of the list, the count and the total.
        Only the current roster is listed: pending entries of a student since moved to
        another teacher still count in the stats but not here.
        """
        log.info(f"Fetching accounting details for teacher {teacher_id}.")
        teacher = await self._get_teacher_or_404(teacher_id)
        per_student_fee = await self.fee_store.get_fee(teacher_id)
        students = await self.directory.list_students(teacher_id)
        pending = await self.entry_store.list_entries(teacher_id, status=AccountingStatus.PENDING)

        pending_by_student: dict[UUID, list[Decimal]] = defaultdict(list)
        for entry in pending:
            pending_by_student[entry.student_id].append(entry.amount)

        breakdown = []
        for student in students:
            amounts = pending_by_student.get(student.id, [])
            pending_amount = sum(amounts, Decimal(0))
            if pending_amount > 0 and len(amounts) > 0:
                breakdown.append(accounting_models.StudentAmount(
                    student_id=student.id,
                    student_name=student.name or '',
                    pending_amount=pending_amount,
                    pending_entries=len(amounts)
                ))

        return accounting_models.TeacherAccountingDetails(
            teacher_id=teacher_id,
            teacher_name=teacher.name or '',
            students_count=len(breakdown),
            total_due=sum((s.pending_amount for s in breakdown), Decimal(0)),
            per_student_fee=per_student_fee,
            students=breakdown
        )
