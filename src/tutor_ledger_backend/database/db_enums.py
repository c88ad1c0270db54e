'''
Static enums mirroring the database ENUM types.
'''
import enum

# --- Base Enum Class ---
class ListableEnum(str, enum.Enum):
    """A custom Enum base class that can list all member values."""
    @classmethod
    def get_all_names(cls) -> list[str]:
        return [member.value for member in cls]


class UserRole(ListableEnum):
    ADMIN = 'admin'
    SUB_ADMIN = 'sub_admin'
    TEACHER = 'teacher'
    STUDENT = 'student'


class AccountingStatus(ListableEnum):
    PENDING = 'pending'
    PAID = 'paid'
