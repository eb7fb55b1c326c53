"""Project support (funding program) applications."""
import json
import logging
from typing import Any, Dict, List, Optional

from src.models.application import ProjectApplication, TeamMember
from src.services.saga import Saga
from src.services.store import PROJECT_APPLICATIONS, TEAM_MEMBERS, UNKNOWN_TABLE, MemoryStore, Where
from src.utils.date_utils import now_iso
from src.utils.exceptions import (
    NotFoundError,
    RegistrationFailedError,
    StoreError,
    StoreOperationError,
    ValidationError,
)
from src.utils.validation import sanitize_input, validate_application, validate_status

logger = logging.getLogger(__name__)

MISSING_TABLE_MESSAGE = "جدول قاعدة البيانات غير موجود. يرجى إنشاء الجداول المطلوبة أولاً."

APPLICATION_TEXT_FIELDS = [
    "team_name", "project_name", "project_description", "problem_statement",
    "traction_links", "video_pitch", "demo_link", "support_needs", "expected_growth",
]


def _store_failure(error: StoreError, fallback: str) -> StoreOperationError:
    if error.code == UNKNOWN_TABLE:
        return StoreOperationError(MISSING_TABLE_MESSAGE)
    return StoreOperationError(fallback)


def register_project_application(store: MemoryStore, data: Dict[str, Any],
                                 team_members: Optional[List[Dict[str, Any]]] = None) -> ProjectApplication:
    """
    Submit a funding application with its team.

    Each team member is its own step; if one can't be saved, the members
    already saved and the application row are removed again.

    Raises:
        ValidationError: If required fields are missing or a member is invalid
        RegistrationFailedError: If either insert fails
    """
    team_members = [m for m in (team_members or []) if (m.get("name") or "").strip()]

    row = {field: sanitize_input(data.get(field) or "") for field in APPLICATION_TEXT_FIELDS}
    row.update({
        "traction_mvp": bool(data.get("traction_mvp")),
        "traction_pilot": bool(data.get("traction_pilot")),
        "traction_sales": bool(data.get("traction_sales")),
        "traction_details": json.dumps(data.get("traction_details") or {}, ensure_ascii=False),
        "status": "pending",
        "created_at": now_iso(),
    })

    is_valid, error_msg = validate_application(row, team_members)
    if not is_valid:
        raise ValidationError(error_msg)

    saga = Saga("register_project_application")

    def insert_application():
        try:
            return store.insert(PROJECT_APPLICATIONS, row)
        except StoreError as e:
            logger.error(f"Application error: {e}")
            if e.code == UNKNOWN_TABLE:
                raise RegistrationFailedError(MISSING_TABLE_MESSAGE) from e
            raise RegistrationFailedError("فشل في تقديم الطلب. حاول مرة أخرى.") from e

    record = saga.run_step(
        "insert application",
        insert_application,
        lambda rec: store.delete(PROJECT_APPLICATIONS, Where().eq("id", rec["id"])),
    )

    def insert_member(member):
        try:
            return store.insert(TEAM_MEMBERS, {
                "application_id": record["id"],
                "name": sanitize_input(member.get("name") or ""),
                "phone": sanitize_input(member.get("phone") or ""),
                "email": sanitize_input(member.get("email") or ""),
                "role": sanitize_input(member.get("role") or ""),
            })
        except StoreError as e:
            logger.error(f"Team members error: {e}")
            raise RegistrationFailedError("فشل في تسجيل أعضاء الفريق. حاول مرة أخرى.") from e

    members = [
        saga.run_step(
            f"insert team member {index}",
            lambda m=member: insert_member(m),
            lambda rec: store.delete(TEAM_MEMBERS, Where().eq("id", rec["id"])),
        )
        for index, member in enumerate(team_members, start=1)
    ]

    application = ProjectApplication.from_dict(record)
    application.team_members = [TeamMember.from_dict(m) for m in members]
    return application


def get_project_applications(store: MemoryStore, status: Optional[str] = None) -> List[ProjectApplication]:
    """
    Applications newest first, optionally filtered by status.

    Raises:
        StoreOperationError: If the store read fails
    """
    where = Where().eq("status", status) if status else None
    try:
        rows = store.select(PROJECT_APPLICATIONS, where, order_by="created_at", descending=True)
    except StoreError as e:
        logger.error(f"Error fetching applications: {e}")
        raise _store_failure(e, "فشل في تحميل الطلبات") from e
    return [ProjectApplication.from_dict(r) for r in rows]


def get_project_application_with_members(store: MemoryStore, application_id: str) -> ProjectApplication:
    """
    Raises:
        NotFoundError: If the application doesn't exist
        StoreOperationError: If a store read fails
    """
    try:
        rows = store.select(PROJECT_APPLICATIONS, Where().eq("id", application_id))
        members = store.select(TEAM_MEMBERS, Where().eq("application_id", application_id))
    except StoreError as e:
        logger.error(f"Error fetching application {application_id}: {e}")
        raise _store_failure(e, "فشل في تحميل الطلب") from e

    if not rows:
        raise NotFoundError("الطلب غير موجود")

    application = ProjectApplication.from_dict(rows[0])
    application.team_members = [TeamMember.from_dict(m) for m in members]
    return application


def update_application_status(store: MemoryStore, application_id: str, status: str) -> ProjectApplication:
    """
    Move an application to pending, accepted or rejected.

    Raises:
        ValidationError: If status is unknown
        NotFoundError: If the application doesn't exist
        StoreOperationError: If the update fails
    """
    is_valid, error_msg = validate_status(status)
    if not is_valid:
        raise ValidationError(error_msg)

    try:
        updated = store.update(PROJECT_APPLICATIONS, Where().eq("id", application_id), {"status": status})
    except StoreError as e:
        logger.error(f"Error updating application status: {e}")
        raise _store_failure(e, "فشل في تحديث حالة الطلب") from e

    if not updated:
        raise NotFoundError("الطلب غير موجود")
    return ProjectApplication.from_dict(updated[0])


def application_stats(applications: List[ProjectApplication]) -> Dict[str, int]:
    stats = {"total": len(applications), "pending": 0, "accepted": 0, "rejected": 0}
    for app in applications:
        stats[app.status] = stats.get(app.status, 0) + 1
    return stats
