'''
API endpoints for the teacher accounting ledger.

Every successful response carries `"ok": true`; ledger errors are rendered as
`{"ok": false, "error": ..., "message": ..., "details": ...}` by the handler in main.py.
'''
from datetime import date
from typing import Annotated, Any
from uuid import UUID
from fastapi import APIRouter, Depends, status, Query

from ..database.db_enums import AccountingStatus
from ..models import accounting as accounting_models
from ..services.accounting_service import (
    AccountingChargeService,
    SettlementService,
    FeeInitializationService,
    AccountingReportService
)

def _ok(**payload: Any) -> dict[str, Any]:
    """Wraps JSON-ready values in the success envelope."""
    return {"ok": True, **payload}

class AccountingAPI:
    """
    A class to encapsulate endpoints for teacher accounting.
    """
    def __init__(self):
        self.router = APIRouter(
            prefix="/accounting",
            tags=["Accounting"]
        )
        self._register_routes()

    def _register_routes(self):
        """Registers all the API routes for this class."""
        self.router.add_api_route(
                "/teachers",
                self.list_teacher_stats,
                methods=["GET"])
        self.router.add_api_route(
                "/teachers/{teacher_id}",
                self.get_teacher_details,
                methods=["GET"])
        self.router.add_api_route(
                "/teachers/{teacher_id}/stats",
                self.get_teacher_stats,
                methods=["GET"])
        self.router.add_api_route(
                "/teachers/{teacher_id}/entries",
                self.list_teacher_entries,
                methods=["GET"])
        self.router.add_api_route(
                "/teachers/{teacher_id}/payments",
                self.apply_payment,
                methods=["POST"])
        self.router.add_api_route(
                "/teachers/{teacher_id}/pending",
                self.delete_pending,
                methods=["DELETE"])
        self.router.add_api_route(
                "/teachers/{teacher_id}/cleanup",
                self.cleanup_pending,
                methods=["POST"])
        self.router.add_api_route(
                "/teachers/{teacher_id}/default-fee",
                self.initialize_teacher_default_fee,
                methods=["PUT"])
        self.router.add_api_route(
                "/default-fee",
                self.initialize_all_default_fees,
                methods=["PUT"])
        self.router.add_api_route(
                "/charges",
                self.add_charge,
                methods=["POST"],
                status_code=status.HTTP_201_CREATED)
        self.router.add_api_route(
                "/students/{student_id}/default-charge",
                self.charge_new_student,
                methods=["POST"])

    # --- Reporting ---

    async def list_teacher_stats(
        self,
        report_service: Annotated[AccountingReportService, Depends(AccountingReportService)],
        date_from: Annotated[date | None, Query(description="Only count pending entries created on or after this day")] = None,
        date_to: Annotated[date | None, Query(description="Only count pending entries created on or before this day")] = None
    ) -> dict[str, Any]:
        """
        Lists accounting totals for every teacher.
        """
        stats = await report_service.list_teacher_accounting_stats(date_from, date_to)
        return _ok(stats=[row.model_dump(mode="json") for row in stats])

    async def get_teacher_details(
        self,
        teacher_id: UUID,
        report_service: Annotated[AccountingReportService, Depends(AccountingReportService)]
    ) -> dict[str, Any]:
        """
        Retrieves the per-student pending breakdown for one teacher.
        """
        details = await report_service.get_teacher_accounting_details(teacher_id)
        return _ok(details=details.model_dump(mode="json"))

    async def get_teacher_stats(
        self,
        teacher_id: UUID,
        report_service: Annotated[AccountingReportService, Depends(AccountingReportService)]
    ) -> dict[str, Any]:
        stats = await report_service.get_teacher_accounting_stats(teacher_id)
        return _ok(stats=stats.model_dump(mode="json"))

    async def list_teacher_entries(
        self,
        teacher_id: UUID,
        charge_service: Annotated[AccountingChargeService, Depends(AccountingChargeService)],
        entry_status: Annotated[AccountingStatus | None, Query(alias="status", description="Optional status filter")] = None
    ) -> dict[str, Any]:
        entries = await charge_service.list_teacher_accounting_entries(teacher_id, entry_status)
        return _ok(entries=[entry.model_dump(mode="json") for entry in entries])

    # --- Mutations ---

    async def apply_payment(
        self,
        teacher_id: UUID,
        payment_data: accounting_models.PaymentCreate,
        settlement_service: Annotated[SettlementService, Depends(SettlementService)]
    ) -> dict[str, Any]:
        """
        Records a payment from a teacher and settles their oldest pending charges first.
        """
        result = await settlement_service.apply_teacher_payment(teacher_id, payment_data.amount)
        return _ok(**result.model_dump(mode="json"))

    async def delete_pending(
        self,
        teacher_id: UUID,
        charge_service: Annotated[AccountingChargeService, Depends(AccountingChargeService)]
    ) -> dict[str, Any]:
        result = await charge_service.delete_teacher_accounting_pending(teacher_id)
        return _ok(**result.model_dump(mode="json"))

    async def cleanup_pending(
        self,
        teacher_id: UUID,
        charge_service: Annotated[AccountingChargeService, Depends(AccountingChargeService)]
    ) -> dict[str, Any]:
        result = await charge_service.cleanup_zero_pending_for_teacher(teacher_id)
        return _ok(**result.model_dump(mode="json"))

    async def initialize_teacher_default_fee(
        self,
        teacher_id: UUID,
        fee_data: accounting_models.DefaultFeeUpdate,
        init_service: Annotated[FeeInitializationService, Depends(FeeInitializationService)]
    ) -> dict[str, Any]:
        """
        Sets a teacher's default fee and charges every current student at that fee.
        Existing pending charges are kept unless `overwrite_existing` is true.
        """
        result = await init_service.initialize_default_fee_for_teacher(
            teacher_id,
            fee_data.per_student_fee,
            overwrite_existing=bool(fee_data.overwrite_existing)
        )
        return _ok(**result.model_dump(mode="json"))

    async def initialize_all_default_fees(
        self,
        fee_data: accounting_models.DefaultFeeUpdate,
        init_service: Annotated[FeeInitializationService, Depends(FeeInitializationService)]
    ) -> dict[str, Any]:
        """
        Sets the same default fee for every teacher. Pending charges are replaced
        unless `overwrite_existing` is explicitly false.
        """
        overwrite = True if fee_data.overwrite_existing is None else fee_data.overwrite_existing
        result = await init_service.initialize_default_fee_for_all_teachers(
            fee_data.per_student_fee,
            overwrite_existing=overwrite
        )
        return _ok(**result.model_dump(mode="json"))

    async def add_charge(
        self,
        charge_data: accounting_models.ChargeCreate,
        charge_service: Annotated[AccountingChargeService, Depends(AccountingChargeService)]
    ) -> dict[str, Any]:
        entry = await charge_service.add_accounting_charge(
            charge_data.student_id,
            charge_data.amount,
            teacher_id=charge_data.teacher_id
        )
        return _ok(entry=entry.model_dump(mode="json"))

    async def charge_new_student(
        self,
        student_id: UUID,
        charge_service: Annotated[AccountingChargeService, Depends(AccountingChargeService)]
    ) -> dict[str, Any]:
        """
        Charges a newly created student at their teacher's default fee, if one is set.
        `entry` is null when nothing was charged.
        """
        entry = await charge_service.charge_new_student(student_id)
        return _ok(entry=entry.model_dump(mode="json") if entry else None)

# Instantiate the class and export its router
accounting_api = AccountingAPI()
router = accounting_api.router
