"""Registration service for individual students and pre-formed groups."""
import logging
import random
from typing import Any, Callable, Dict, List, Optional

from src.models.group import Group, GroupRegistrationResult
from src.models.registrant import Registrant
from src.services.rate_limiter import SlidingWindowRateLimiter
from src.services.saga import Saga
from src.services.store import GROUPS, REGISTRATIONS, MemoryStore, Where
from src.utils.date_utils import now_iso, timestamp_suffix
from src.utils.exceptions import (
    AlreadyRegisteredError,
    GroupCreationFailedError,
    NotFoundError,
    RateLimitExceededError,
    RegistrationFailedError,
    StoreError,
    StoreOperationError,
    ValidationError,
)
from src.utils.validation import (
    sanitize_input,
    validate_group_members,
    validate_registration,
)

logger = logging.getLogger(__name__)

GROUP_THEME_NAMES = [
    "Tech Titans", "Innovation Squad", "Digital Dynamos", "Code Crusaders",
    "Marketing Mavericks", "Growth Hackers", "Creative Collective", "Data Drivers",
    "Future Founders", "Startup Stars", "Solution Seekers", "Impact Makers",
]

MAX_RANDOM_ATTEMPTS = 5


def register_student(store: MemoryStore, data: Dict[str, Any],
                     rate_limiter: Optional[SlidingWindowRateLimiter] = None) -> Registrant:
    """
    Register one student.

    Args:
        store: Data store
        data: Form fields ``name``, ``phone``, ``interest`` and optional ``college``
        rate_limiter: Limits submissions per phone number

    Returns:
        The created Registrant

    Raises:
        RateLimitExceededError: If the phone submitted too often
        ValidationError: If a field is invalid
        AlreadyRegisteredError: If the phone is already registered
        RegistrationFailedError: If the insert fails
    """
    phone = sanitize_input(data.get("phone") or "")

    if rate_limiter is not None and not rate_limiter.allow(phone):
        raise RateLimitExceededError()

    row = {
        "name": sanitize_input(data.get("name") or ""),
        "college": sanitize_input(data.get("college") or ""),
        "phone": phone,
        "interest": data.get("interest"),
        "assigned": False,
        "group_id": None,
        "created_at": now_iso(),
    }

    is_valid, error_msg = validate_registration(row)
    if not is_valid:
        raise ValidationError(error_msg)

    try:
        existing = store.select(REGISTRATIONS, Where().eq("phone", phone))
    except StoreError as e:
        logger.error(f"Duplicate check failed: {e}")
        raise RegistrationFailedError() from e
    if existing:
        raise AlreadyRegisteredError(phone, "أنت مسجل بالفعل")

    try:
        inserted = store.insert(REGISTRATIONS, row)
    except StoreError as e:
        # Lost a race with a concurrent registration of the same phone
        if e.is_unique_violation:
            raise AlreadyRegisteredError(phone, "أنت مسجل بالفعل") from e
        logger.error(f"Registration error: {e}")
        raise RegistrationFailedError() from e

    return Registrant.from_dict(inserted)


def _insert_member(store: MemoryStore, member: Dict[str, Any]) -> Dict[str, Any]:
    try:
        return store.insert(REGISTRATIONS, {
            "name": member["name"],
            "phone": member["phone"],
            "college": member["college"],
            "interest": member["interest"],
            "assigned": True,
            "group_id": None,
            "created_at": now_iso(),
        })
    except StoreError as e:
        if e.is_unique_violation:
            raise AlreadyRegisteredError(member["phone"]) from e
        raise RegistrationFailedError() from e


def _delete_registrant(store: MemoryStore, row: Dict[str, Any]) -> None:
    store.delete(REGISTRATIONS, Where().eq("id", row["id"]))


def register_group(store: MemoryStore, leader_name: str, leader_phone: str, college: str,
                   interest: str, members: List[Dict[str, Any]],
                   rng: Optional[random.Random] = None,
                   clock: Optional[Callable[[], float]] = None) -> GroupRegistrationResult:
    """
    Register a leader and teammates as one already-formed group.

    Registrants are inserted one at a time so a failure on member N rolls
    back exactly members 1..N-1.

    Args:
        store: Data store
        leader_name, leader_phone, college, interest: Leader's details
        members: Teammates as dicts with ``name``, ``phone`` and optional
            ``college`` (defaults to the leader's); other keys such as
            ``role`` are ignored
        rng: Random source for the group name
        clock: Time source for the group name suffix

    Returns:
        GroupRegistrationResult with the group and its registrants

    Raises:
        ValidationError: If a name or phone is invalid
        AlreadyRegisteredError: If any phone is already registered
        RegistrationFailedError: If a registrant insert fails otherwise
        GroupCreationFailedError: If the group record can't be created
    """
    college = sanitize_input(college or "")
    roster = [{
        "name": sanitize_input(leader_name or ""),
        "phone": sanitize_input(leader_phone or ""),
        "college": college,
        "interest": interest,
    }]
    for member in members:
        roster.append({
            "name": sanitize_input(member.get("name") or ""),
            "phone": sanitize_input(member.get("phone") or ""),
            "college": sanitize_input(member.get("college") or "") or college,
            "interest": interest,
        })

    is_valid, error_msg = validate_registration(roster[0])
    if not is_valid:
        raise ValidationError(error_msg)
    is_valid, error_msg = validate_group_members(roster)
    if not is_valid:
        raise ValidationError(error_msg)

    saga = Saga("register_group")
    inserted = []
    for member in roster:
        row = saga.run_step(
            f"insert registrant {member['phone']}",
            lambda m=member: _insert_member(store, m),
            lambda row: _delete_registrant(store, row),
        )
        inserted.append(row)

    theme = (rng or random).choice(GROUP_THEME_NAMES)
    name = f"{theme} #{timestamp_suffix(4, clock)}"
    member_ids = [row["id"] for row in inserted]

    try:
        group_row = store.insert(GROUPS, {
            "name": name,
            "members": member_ids,
            "member_count": len(member_ids),
            "created_at": now_iso(),
        })
    except StoreError as e:
        logger.error(f"Group insert failed for {name}: {e}")
        error = GroupCreationFailedError()
        error.rollback_errors = saga.compensate()
        raise error from e

    try:
        updated = store.update(REGISTRATIONS, Where().in_("id", member_ids), {"group_id": group_row["id"]})
    except StoreError as e:
        logger.error(f"Error updating group_id for group {group_row['id']}: {e}")
        updated = []

    by_id = {row["id"]: row for row in inserted}
    for row in updated:
        by_id[row["id"]] = row

    return GroupRegistrationResult(
        group=Group.from_dict(group_row),
        members=[Registrant.from_dict(by_id[i]) for i in member_ids],
    )


def get_registrations(store: MemoryStore) -> List[Registrant]:
    """
    All registrants, newest first.

    Raises:
        StoreOperationError: If the store read fails
    """
    try:
        rows = store.select(REGISTRATIONS, order_by="created_at", descending=True)
    except StoreError as e:
        logger.error(f"Error fetching registrations: {e}")
        raise StoreOperationError("فشل في تحميل البيانات") from e
    return [Registrant.from_dict(r) for r in rows]


def get_registration_count(store: MemoryStore) -> int:
    """Count all registrants, real and synthetic; 0 if the store fails."""
    try:
        return store.count(REGISTRATIONS)
    except StoreError as e:
        logger.error(f"Error fetching count: {e}")
        return 0


def subscribe_to_registrations(store: MemoryStore, callback: Callable[[], None]) -> Callable[[], None]:
    """
    Call ``callback`` whenever registrations change.

    Returns:
        Unsubscribe callable; a no-op if subscribing failed
    """
    try:
        return store.subscribe(REGISTRATIONS, lambda event: callback())
    except Exception as e:
        logger.error(f"Subscription to registrations failed: {e}")
        return lambda: None


def delete_student(store: MemoryStore, student_id: str) -> None:
    """
    Delete one registrant.

    Raises:
        NotFoundError: If no registrant has that id
        StoreOperationError: If the delete fails
    """
    try:
        deleted = store.delete(REGISTRATIONS, Where().eq("id", student_id))
    except StoreError as e:
        logger.error(f"Error deleting student: {e}")
        raise StoreOperationError("فشل في حذف الطالب") from e
    if not deleted:
        raise NotFoundError("الطالب غير موجود")


def delete_all_students(store: MemoryStore) -> int:
    """
    Unassign everyone, delete all groups, then delete all registrants.

    Returns:
        Number of deleted registrants

    Raises:
        StoreOperationError: If registrants can't be deleted
    """
    try:
        store.update(REGISTRATIONS, Where().not_null("id"), {"assigned": False, "group_id": None})
    except StoreError as e:
        logger.error(f"Error resetting registrations: {e}")

    try:
        store.delete(GROUPS, Where().not_null("id"))
    except StoreError as e:
        logger.error(f"Error deleting groups: {e}")

    try:
        deleted = store.delete(REGISTRATIONS, Where().not_null("id"))
    except StoreError as e:
        logger.error(f"Error deleting all students: {e}")
        raise StoreOperationError("فشل في حذف جميع الطلاب") from e
    return len(deleted)


ARABIC_FIRST_NAMES = [
    "أحمد", "محمد", "علي", "حسن", "خالد", "عمر", "يوسف", "كريم", "طارق", "مصطفى",
    "فاطمة", "سارة", "نور", "ياسمين", "مريم", "دينا", "رنا", "لينا", "هدى", "سلمى",
]
ARABIC_LAST_NAMES = [
    "محمود", "إبراهيم", "عبدالله", "حسين", "صلاح", "ناصر", "فاروق", "سعيد", "رشاد", "جمال",
    "أحمد", "علي", "حسن", "خليل", "منصور", "عادل", "وليد", "حمدي", "ماهر", "نبيل",
]
ENGLISH_FIRST_NAMES = [
    "Ahmed", "Mohamed", "Ali", "Hassan", "Khaled", "Omar", "Youssef", "Karim", "Tarek", "Mostafa",
    "Fatma", "Sarah", "Nour", "Yasmin", "Mariam", "Dina", "Rana", "Lina", "Hoda", "Salma",
    "Mahmoud", "Amr", "Hossam", "Tamer", "Sherif", "Adel", "Fady", "Hany", "Ramy", "Wael",
    "Aya", "Eman", "Heba", "Laila", "Mona", "Noha", "Reem", "Samar", "Yara", "Zainab",
]
ENGLISH_LAST_NAMES = [
    "Mahmoud", "Ibrahim", "Abdullah", "Hussein", "Salah", "Nasser", "Farouk", "Said", "Rashad", "Gamal",
    "Ahmed", "Ali", "Hassan", "Khalil", "Mansour", "Adel", "Walid", "Hamdy", "Maher", "Nabil",
    "Mohamed", "Youssef", "Mostafa", "Sayed", "Fathy", "Shawky", "Sabry", "Gomaa", "Ashraf",
    "Ezzat", "Kamel", "Hamed", "Bakr", "Othman", "Zaki", "Helmy", "Ramadan", "Shahin", "Hegazy",
]
COLLEGES = [
    "كلية الهندسة",
    "كلية الحاسبات والمعلومات",
    "كلية التجارة",
    "كلية الاقتصاد",
    "كلية الإعلام",
    "كلية الفنون",
    "كلية العلوم",
    "كلية الطب",
    "كلية الصيدلة",
    "كلية الآداب",
]
PHONE_PREFIXES = ["0100", "0101", "0102", "0105", "0106", "0109", "0111", "0112", "0115", "0120"]


def random_phone(rng: random.Random) -> str:
    return f"+2{rng.choice(PHONE_PREFIXES)}{rng.randrange(10_000_000):07d}"


def add_random_student(store: MemoryStore, rng: Optional[random.Random] = None) -> Registrant:
    """
    Insert a synthetic (test) registrant.

    Retries with a fresh phone number on a uniqueness conflict.

    Raises:
        RegistrationFailedError: After MAX_RANDOM_ATTEMPTS failed inserts
    """
    rng = rng or random.Random()

    if rng.random() < 0.5:
        first_names, last_names = ARABIC_FIRST_NAMES, ARABIC_LAST_NAMES
    else:
        first_names, last_names = ENGLISH_FIRST_NAMES, ENGLISH_LAST_NAMES

    row = {
        "name": f"{rng.choice(first_names)} {rng.choice(last_names)}",
        "college": rng.choice(COLLEGES),
        "phone": random_phone(rng),
        "interest": rng.choice(["software", "marketing", "other"]),
        "assigned": False,
        "group_id": None,
        "is_dummy": True,
        "created_at": now_iso(),
    }

    last_error = None
    for _ in range(MAX_RANDOM_ATTEMPTS):
        try:
            return Registrant.from_dict(store.insert(REGISTRATIONS, row))
        except StoreError as e:
            last_error = e
            if e.is_unique_violation:
                row["phone"] = random_phone(rng)
                continue
            logger.error(f"Random student insert failed: {e}")

    raise RegistrationFailedError("فشل في إضافة طالب عشوائي بعد عدة محاولات") from last_error
