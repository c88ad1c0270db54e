from typing import Optional

from sqlalchemy import BigInteger, DateTime, Enum, ForeignKeyConstraint, Index, Integer, Numeric, PrimaryKeyConstraint, String, Text, UniqueConstraint, Uuid, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column
import datetime
import decimal
import uuid

from .db_enums import UserRole, AccountingStatus

class Base(DeclarativeBase):
    pass


user_role_enum = Enum(*UserRole.get_all_names(), name='user_role')
accounting_status_enum = Enum(*AccountingStatus.get_all_names(), name='accounting_status_enum')


class Users(Base):
    __tablename__ = 'users'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='users_pkey'),
        UniqueConstraint('email', name='users_email_key')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    email: Mapped[str] = mapped_column(String(255))
    role: Mapped[str] = mapped_column(user_role_enum, server_default=UserRole.STUDENT.value)
    name: Mapped[Optional[str]] = mapped_column(Text)


class Students(Base):
    __tablename__ = 'students'
    __table_args__ = (
        ForeignKeyConstraint(['teacher_id'], ['users.id'], ondelete='SET NULL', name='students_teacher_id_fkey'),
        PrimaryKeyConstraint('id', name='students_pkey'),
        Index('idx_students_teacher', 'teacher_id')
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[Optional[str]] = mapped_column(Text)
    teacher_id: Mapped[Optional[uuid.UUID]] = mapped_column(Uuid)


class Accounting(Base):
    __tablename__ = 'accounting'
    __table_args__ = (
        PrimaryKeyConstraint('id', name='accounting_pkey'),
        Index('idx_accounting_teacher_status', 'teacher_id', 'status'),
        Index('idx_accounting_created_at', 'created_at')
    )
    # created_at comes from the server; fetch it on INSERT so it is never lazy-loaded
    __mapper_args__ = {'eager_defaults': True}

    # BigInteger identity on PostgreSQL, rowid alias on SQLite
    id: Mapped[int] = mapped_column(BigInteger().with_variant(Integer, 'sqlite'), primary_key=True, autoincrement=True)
    teacher_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    student_id: Mapped[uuid.UUID] = mapped_column(Uuid)
    amount: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2))
    status: Mapped[str] = mapped_column(accounting_status_enum, server_default=AccountingStatus.PENDING.value)
    created_at: Mapped[datetime.datetime] = mapped_column(DateTime(True), server_default=func.now())


class TeacherAccountingSettings(Base):
    __tablename__ = 'teacher_accounting_settings'
    __table_args__ = (
        PrimaryKeyConstraint('teacher_id', name='teacher_accounting_settings_pkey'),
    )

    teacher_id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True)
    per_student_fee: Mapped[decimal.Decimal] = mapped_column(Numeric(12, 2), server_default='0')
