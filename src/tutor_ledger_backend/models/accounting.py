'''
Pydantic models for the accounting ledger: API inputs and operation results.
'''
from datetime import datetime
from decimal import Decimal
from typing import Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from ..database.db_enums import AccountingStatus

# --- 1. API Input Models (for POST/PUT) ---

class PaymentCreate(BaseModel):
    """
    Validates the request body for recording a teacher payment.
    """
    amount: Decimal

class ChargeCreate(BaseModel):
    """
    Validates the request body for adding a single pending charge.
    The teacher is resolved from the student when omitted.
    """
    student_id: UUID
    amount: Decimal
    teacher_id: Optional[UUID] = None

class DefaultFeeUpdate(BaseModel):
    """
    Validates the request body for (re)initializing a default per-student fee.
    """
    per_student_fee: Decimal
    overwrite_existing: Optional[bool] = None


# --- 2. Entity Read Models ---

class AccountingEntryRead(BaseModel):
    id: int
    teacher_id: UUID
    student_id: UUID
    amount: Decimal
    status: AccountingStatus
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)

class TeacherFeeSettingRead(BaseModel):
    teacher_id: UUID
    per_student_fee: Decimal

    model_config = ConfigDict(from_attributes=True)


# --- 3. Reporting Models ---

class TeacherAccountingStats(BaseModel):
    """
    One row of the admin accounting overview.
    """
    teacher_id: UUID
    teacher_name: str
    students_count: int
    total_due: Decimal
    pending_entries: int

class StudentAmount(BaseModel):
    """
    A student's outstanding pending charges for one teacher.
    """
    student_id: UUID
    student_name: str
    pending_amount: Decimal
    pending_entries: int

class TeacherAccountingDetails(BaseModel):
    """
    The per-teacher breakdown. Only students that still owe something are listed,
    and `students_count` / `total_due` are computed over that list.
    """
    teacher_id: UUID
    teacher_name: str
    students_count: int
    total_due: Decimal
    per_student_fee: Optional[Decimal] = None
    students: list[StudentAmount] = Field(default_factory=list)


# --- 4. Operation Results ---

class PaymentResult(BaseModel):
    applied_amount: Decimal
    remaining_unapplied: Decimal
    updated_entry_ids: list[int] = Field(default_factory=list)
    created_payment_entry_ids: list[int] = Field(default_factory=list)

class DeleteResult(BaseModel):
    deleted: int

class InitializeResult(BaseModel):
    inserted: int
    deleted: int

class InitializeAllResult(BaseModel):
    teacher_ids: list[UUID] = Field(default_factory=list)
    total_inserted: int
    total_deleted: int
