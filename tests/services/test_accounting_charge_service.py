import pytest
from decimal import Decimal
from sqlalchemy.ext.asyncio import AsyncSession

from src.tutor_ledger_backend.database import models as db_models
from src.tutor_ledger_backend.database.db_enums import AccountingStatus
from src.tutor_ledger_backend.common.exceptions import InvalidAmount, NotFound
from src.tutor_ledger_backend.services.accounting_service import AccountingChargeService
from src.tutor_ledger_backend.services.entry_store import AccountingEntryStore

from tests.database import factories
from tests.constants import NONEXISTENT_ID


@pytest.mark.anyio
class TestAddAccountingCharge:

    async def test_teacher_is_resolved_from_student(
        self,
        charge_service: AccountingChargeService,
        test_teacher: db_models.Users,
        test_students: list[db_models.Students]
    ):
        entry = await charge_service.add_accounting_charge(test_students[0].id, "12.345")

        assert entry.teacher_id == test_teacher.id
        assert entry.student_id == test_students[0].id
        assert entry.amount == Decimal("12.35")
        assert entry.status == AccountingStatus.PENDING

    async def test_explicit_teacher_is_used_as_given(
        self,
        charge_service: AccountingChargeService,
        test_students: list[db_models.Students],
        other_teacher: db_models.Users
    ):
        entry = await charge_service.add_accounting_charge(
            test_students[0].id, 5, teacher_id=other_teacher.id
        )
        assert entry.teacher_id == other_teacher.id

    async def test_unknown_student_raises_not_found(self, charge_service: AccountingChargeService):
        with pytest.raises(NotFound):
            await charge_service.add_accounting_charge(NONEXISTENT_ID, 10)

    async def test_student_without_teacher_raises_not_found(
        self,
        db_session: AsyncSession,
        charge_service: AccountingChargeService
    ):
        orphan = factories.StudentFactory.create(name="Orphan")
        await db_session.flush()

        with pytest.raises(NotFound):
            await charge_service.add_accounting_charge(orphan.id, 10)

    @pytest.mark.parametrize("bad_amount", [0, -1, "inf", "x"])
    async def test_amount_is_validated_before_the_lookup(
        self,
        bad_amount,
        charge_service: AccountingChargeService
    ):
        with pytest.raises(InvalidAmount):
            await charge_service.add_accounting_charge(NONEXISTENT_ID, bad_amount)


@pytest.mark.anyio
class TestPendingManagement:

    async def test_list_entries_with_and_without_status(
        self,
        db_session: AsyncSession,
        charge_service: AccountingChargeService,
        test_teacher: db_models.Users,
        test_students: list[db_models.Students]
    ):
        factories.AccountingEntryFactory.create(teacher_id=test_teacher.id, student_id=test_students[0].id)
        factories.AccountingEntryFactory.create(
            teacher_id=test_teacher.id, student_id=test_students[1].id, status=AccountingStatus.PAID.value
        )
        await db_session.flush()

        everything = await charge_service.list_teacher_accounting_entries(test_teacher.id)
        paid_only = await charge_service.list_teacher_accounting_entries(test_teacher.id, AccountingStatus.PAID)

        assert len(everything) == 2
        assert [e.student_id for e in paid_only] == [test_students[1].id]

    async def test_delete_pending_returns_count(
        self,
        db_session: AsyncSession,
        charge_service: AccountingChargeService,
        entry_store: AccountingEntryStore,
        test_teacher: db_models.Users,
        test_students: list[db_models.Students]
    ):
        for student in test_students:
            factories.AccountingEntryFactory.create(teacher_id=test_teacher.id, student_id=student.id)
        await db_session.flush()

        result = await charge_service.delete_teacher_accounting_pending(test_teacher.id)

        assert result.deleted == 3
        assert await entry_store.sum_pending(test_teacher.id) == Decimal(0)

    async def test_cleanup_is_idempotent(
        self,
        db_session: AsyncSession,
        charge_service: AccountingChargeService,
        test_teacher: db_models.Users,
        test_students: list[db_models.Students]
    ):
        factories.AccountingEntryFactory.create(
            teacher_id=test_teacher.id, student_id=test_students[0].id, amount=Decimal("0.00")
        )
        await db_session.flush()

        assert (await charge_service.cleanup_zero_pending_for_teacher(test_teacher.id)).deleted == 1
        assert (await charge_service.cleanup_zero_pending_for_teacher(test_teacher.id)).deleted == 0


@pytest.mark.anyio
class TestOnboardingHooks:

    async def test_new_student_is_charged_the_default_fee(
        self,
        db_session: AsyncSession,
        charge_service: AccountingChargeService,
        test_teacher: db_models.Users
    ):
        factories.FeeSettingFactory.create(teacher_id=test_teacher.id, per_student_fee=Decimal("20.00"))
        student = factories.StudentFactory.create(name="Newcomer", teacher_id=test_teacher.id)
        await db_session.flush()

        entry = await charge_service.charge_new_student(student.id)

        assert entry is not None
        assert entry.teacher_id == test_teacher.id
        assert entry.amount == Decimal("20.00")

    @pytest.mark.parametrize("fee", [None, Decimal("0.00")])
    async def test_no_charge_without_a_positive_fee(
        self,
        fee,
        db_session: AsyncSession,
        charge_service: AccountingChargeService,
        entry_store: AccountingEntryStore,
        test_teacher: db_models.Users
    ):
        if fee is not None:
            factories.FeeSettingFactory.create(teacher_id=test_teacher.id, per_student_fee=fee)
        student = factories.StudentFactory.create(name="Newcomer", teacher_id=test_teacher.id)
        await db_session.flush()

        assert await charge_service.charge_new_student(student.id) is None
        assert await entry_store.list_entries(test_teacher.id) == []

    async def test_no_charge_for_student_without_teacher(
        self,
        db_session: AsyncSession,
        charge_service: AccountingChargeService
    ):
        student = factories.StudentFactory.create(name="Orphan")
        await db_session.flush()

        assert await charge_service.charge_new_student(student.id) is None

    async def test_unknown_student_raises_not_found(self, charge_service: AccountingChargeService):
        with pytest.raises(NotFound):
            await charge_service.charge_new_student(NONEXISTENT_ID)

    @pytest.mark.parametrize("raw_fee, expected", [
        (30, Decimal("30.00")),
        ("12.5", Decimal("12.50")),
        ("abc", Decimal("0")),
        (-4, Decimal("0")),
        (None, Decimal("0")),
    ])
    async def test_initial_teacher_fee_is_coerced(
        self,
        raw_fee,
        expected,
        charge_service: AccountingChargeService,
        test_teacher: db_models.Users
    ):
        setting = await charge_service.set_initial_teacher_fee(test_teacher.id, raw_fee)

        assert setting.teacher_id == test_teacher.id
        assert setting.per_student_fee == expected
