"""Data validation utilities."""
import re
from typing import Any, Dict, List, Optional, Tuple

from src.models.application import APPLICATION_STATUSES, MAX_TEAM_MEMBERS

EGYPTIAN_PHONE_PATTERN = re.compile(r"^(\+201|01)[0-25][0-9]{8}$")

MAX_NAME_LENGTH = 100

VALID_INTERESTS = ["software", "marketing", "other"]


def validate_phone(phone: str) -> bool:
    """
    Check an Egyptian mobile number.

    Accepts local ``01XXXXXXXXX`` or international ``+201XXXXXXXXX`` form,
    with the operator digit in 0, 1, 2 or 5.
    """
    if not isinstance(phone, str):
        return False
    return bool(EGYPTIAN_PHONE_PATTERN.match(phone.strip()))


def sanitize_input(value: Any) -> Any:
    """
    Trim strings and strip angle brackets.

    Non-string values are returned unchanged.
    """
    if not isinstance(value, str):
        return value
    return value.strip().replace("<", "").replace(">", "")


def validate_name(name: str) -> Tuple[bool, str]:
    """
    Validate a person's name.

    Returns:
        Tuple of (is_valid: bool, error_message: str)
        - (True, "") if valid
        - (False, "الاسم مطلوب") if empty
        - (False, "الاسم طويل جدًا") if longer than MAX_NAME_LENGTH
    """
    if not name or not name.strip():
        return False, "الاسم مطلوب"
    if len(name.strip()) > MAX_NAME_LENGTH:
        return False, "الاسم طويل جدًا"
    return True, ""


def validate_interest(interest: str) -> Tuple[bool, str]:
    if interest not in VALID_INTERESTS:
        return False, "مجال الاهتمام غير صحيح"
    return True, ""


def validate_registration(data: Dict[str, Any]) -> Tuple[bool, str]:
    """
    Validate an individual registration form.

    Returns:
        Tuple of (is_valid: bool, error_message: str)
    """
    is_valid, error_msg = validate_name(data.get("name", ""))
    if not is_valid:
        return False, error_msg

    if not validate_phone(data.get("phone", "")):
        return False, "رقم الموبايل غير صحيح"

    return validate_interest(data.get("interest", ""))


def validate_group_members(members: List[Dict[str, Any]]) -> Tuple[bool, str]:
    """
    Validate teammates submitted with a group registration.

    Phones must be valid and unique within the submission.
    """
    seen = set()
    for index, member in enumerate(members, start=1):
        is_valid, error_msg = validate_name(member.get("name", ""))
        if not is_valid:
            return False, f"العضو {index}: {error_msg}"

        phone = (member.get("phone") or "").strip()
        if not validate_phone(phone):
            return False, f"العضو {index}: رقم الموبايل غير صحيح"
        if phone in seen:
            return False, f"رقم الموبايل {phone} مكرر"
        seen.add(phone)
    return True, ""


def validate_application(data: Dict[str, Any], team_members: Optional[List[Dict[str, Any]]] = None) -> Tuple[bool, str]:
    """
    Validate a project support application.

    Returns:
        Tuple of (is_valid: bool, error_message: str)
    """
    if not (data.get("project_name") or "").strip():
        return False, "اسم المشروع مطلوب"
    if not (data.get("project_description") or "").strip():
        return False, "وصف المشروع مطلوب"

    team_members = team_members or []
    if len(team_members) > MAX_TEAM_MEMBERS:
        return False, f"الحد الأقصى لأعضاء الفريق هو {MAX_TEAM_MEMBERS}"

    for index, member in enumerate(team_members, start=1):
        is_valid, error_msg = validate_name(member.get("name", ""))
        if not is_valid:
            return False, f"العضو {index}: {error_msg}"
        if not validate_phone(member.get("phone", "")):
            return False, f"العضو {index}: رقم الموبايل غير صحيح"

    return True, ""


def validate_status(status: str) -> Tuple[bool, str]:
    if status not in APPLICATION_STATUSES:
        return False, "حالة الطلب غير صحيحة"
    return True, ""
