"""Custom exception classes."""
from typing import List, Optional


UNIQUE_VIOLATION = "23505"


class StoreError(Exception):
    """Raised by the data store; ``code`` identifies the failure kind."""

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.code = code

    @property
    def is_unique_violation(self) -> bool:
        return self.code == UNIQUE_VIOLATION


class TeamUpError(Exception):
    """Base class for failures shown to the user as a short message."""

    default_message = "حدث خطأ غير متوقع"

    def __init__(self, message: Optional[str] = None):
        self.message = message or self.default_message
        super().__init__(self.message)
        self.rollback_errors: List[Exception] = []


class ValidationError(TeamUpError):
    """Raised when data fails validation."""

    default_message = "البيانات المدخلة غير صحيحة"


class RateLimitExceededError(ValidationError):
    """Raised when one identifier submits too often."""

    default_message = "طلبات كثيرة جدًا، حاول مرة أخرى بعد قليل"


class InvalidArgumentError(ValidationError, ValueError):
    """Raised when a caller passes an argument outside the contract."""

    default_message = "قيمة غير صالحة"


class ConflictError(TeamUpError):
    """Raised when a unique identifier already exists."""

    default_message = "البيانات مسجلة بالفعل"


class AlreadyRegisteredError(ConflictError):
    """Raised when a phone number is already registered."""

    def __init__(self, phone: str, message: Optional[str] = None):
        self.phone = phone
        super().__init__(message or f"رقم الموبايل {phone} مسجل بالفعل")


class NotFoundOrEmptyError(TeamUpError):
    """Raised when an operation has nothing to act on."""

    default_message = "لا توجد بيانات"


class NothingToGroupError(NotFoundOrEmptyError):
    """Raised when there are no unassigned registrants."""

    default_message = "لا يوجد طلاب غير مقسمين لتكوين مجموعات"


class NotFoundError(NotFoundOrEmptyError):
    """Raised when a record id doesn't exist."""

    default_message = "العنصر غير موجود"


class RegistrationFailedError(TeamUpError):
    """Raised when inserting a registrant fails for a non-conflict reason."""

    default_message = "فشل التسجيل. حاول مرة أخرى."


class GroupCreationFailedError(TeamUpError):
    """Raised when the group record of a group registration can't be created."""

    default_message = "فشل في إنشاء المجموعة"


class StoreOperationError(TeamUpError):
    """Raised when a store read or write the caller depends on fails."""

    default_message = "فشل الاتصال بقاعدة البيانات"


class OperationInProgressError(TeamUpError):
    """Raised when another admin is already running the same operation."""

    default_message = "يتم تقسيم المجموعات حاليًا، حاول مرة أخرى بعد قليل"


class RollbackFailure(Exception):
    """Raised internally when a compensating action fails."""

    def __init__(self, step: str, error: Exception):
        super().__init__(f"Compensation for '{step}' failed: {error}")
        self.step = step
        self.error = error
