"""Group formation, reset and reshuffle."""
import logging
import random
from contextlib import contextmanager
from typing import List, Optional

from src.models.group import FailedGroupAttempt, Group, GroupFormationResult, ProposedGroup
from src.models.registrant import Registrant
from src.services.balancer import REAL_PREFIX, TEST_PREFIX, build_balanced_groups, validate_group_size
from src.services.store import GROUPS, LOCK_NOT_AVAILABLE, REGISTRATIONS, MemoryStore, Where
from src.utils.date_utils import now_iso
from src.utils.exceptions import (
    NothingToGroupError,
    NotFoundError,
    OperationInProgressError,
    StoreError,
    StoreOperationError,
)

logger = logging.getLogger(__name__)

DEFAULT_GROUP_SIZE = 5

FORMATION_LOCK = "group_formation"


def split_cohorts(registrants: List[Registrant]):
    """Split into (real, synthetic) registrants, keeping input order."""
    real = [r for r in registrants if not r.is_dummy]
    synthetic = [r for r in registrants if r.is_dummy]
    return real, synthetic


def generate_groups(store: MemoryStore, group_size: int = DEFAULT_GROUP_SIZE,
                    rng: Optional[random.Random] = None) -> GroupFormationResult:
    """
    Form groups from every unassigned registrant.

    Real and synthetic registrants are balanced separately and never share
    a group. A group whose insert fails is skipped; the run continues.

    Args:
        store: Data store
        group_size: Members per group (default: 5)
        rng: Random source for the balancer

    Returns:
        GroupFormationResult with the created groups and the failed attempts

    Raises:
        NothingToGroupError: If no registrant is unassigned
        OperationInProgressError: If another formation run holds the lock
        StoreOperationError: If unassigned registrants can't be fetched
        InvalidArgumentError: If group_size is not positive
    """
    validate_group_size(group_size)
    with _formation_lock(store):
        return _generate_groups_locked(store, group_size, rng)


@contextmanager
def _formation_lock(store: MemoryStore):
    """Hold FORMATION_LOCK; a held lock raises OperationInProgressError."""
    try:
        with store.advisory_lock(FORMATION_LOCK):
            yield
    except StoreError as e:
        if e.code == LOCK_NOT_AVAILABLE:
            raise OperationInProgressError() from e
        raise


def _load_registrants(rows) -> List[Registrant]:
    registrants = []
    for row in rows:
        try:
            registrants.append(Registrant.from_dict(row))
        except (KeyError, ValueError) as e:
            logger.warning(f"Skipping malformed registration {row.get('id')!r}: {e}")
    return registrants


def _generate_groups_locked(store: MemoryStore, group_size: int,
                            rng: Optional[random.Random]) -> GroupFormationResult:
    try:
        rows = store.select(REGISTRATIONS, Where().eq("assigned", False))
    except StoreError as e:
        logger.error(f"Failed to fetch unassigned registrations: {e}")
        raise StoreOperationError("فشل في تحميل بيانات الطلاب") from e

    registrants = _load_registrants(rows)
    if not registrants:
        raise NothingToGroupError()

    real, synthetic = split_cohorts(registrants)

    proposed = (
        build_balanced_groups(real, group_size, REAL_PREFIX, rng=rng)
        + build_balanced_groups(synthetic, group_size, TEST_PREFIX, rng=rng)
    )

    result = GroupFormationResult()
    for proposal in proposed:
        _persist_group(store, proposal, result)

    logger.info(
        f"Group formation created {len(result.created)} groups, "
        f"{len(result.failed)} failed attempts"
    )
    return result


def _persist_group(store: MemoryStore, proposal: ProposedGroup, result: GroupFormationResult) -> None:
    try:
        inserted = store.insert(GROUPS, proposal.to_row(now_iso()))
    except StoreError as e:
        logger.error(f"Error inserting group {proposal.name}: {e}")
        result.failed.append(FailedGroupAttempt(
            name=proposal.name, member_ids=proposal.member_ids, stage="insert_group", error=str(e),
        ))
        return

    group = Group.from_dict(inserted)
    member_ids = proposal.member_ids

    # Only claim registrants nobody assigned in the meantime
    try:
        updated = store.update(
            REGISTRATIONS,
            Where().in_("id", member_ids).eq("assigned", False),
            {"assigned": True, "group_id": group.id},
        )
    except StoreError as e:
        logger.error(f"Error updating members of group {group.name}: {e}")
        result.failed.append(FailedGroupAttempt(
            name=group.name, member_ids=member_ids, stage="assign_members", error=str(e), group_id=group.id,
        ))
        result.created.append(group)
        return

    if len(updated) != len(member_ids):
        logger.warning(
            f"Group {group.name}: assigned {len(updated)} of {len(member_ids)} members; "
            "the rest were assigned concurrently"
        )
    result.created.append(group)


def reset_groups(store: MemoryStore) -> None:
    """
    Delete every group and unassign every registrant.

    Raises:
        OperationInProgressError: If a formation run holds the lock
        StoreOperationError: If the groups can't be deleted
    """
    with _formation_lock(store):
        _reset_groups_locked(store)


def _reset_groups_locked(store: MemoryStore) -> None:
    try:
        store.update(REGISTRATIONS, Where().not_null("id"), {"assigned": False, "group_id": None})
    except StoreError as e:
        logger.error(f"Error resetting registrations: {e}")

    try:
        store.delete(GROUPS, Where().not_null("id"))
    except StoreError as e:
        logger.error(f"Error deleting groups: {e}")
        raise StoreOperationError("فشل في حذف المجموعات") from e


def reshuffle_groups(store: MemoryStore, group_size: int = DEFAULT_GROUP_SIZE,
                     rng: Optional[random.Random] = None) -> GroupFormationResult:
    """
    Destroy the current grouping and form new groups from scratch.

    The size is checked and the formation lock taken before anything is
    deleted, so a rejected reshuffle leaves the current groups intact.

    Raises:
        InvalidArgumentError: If group_size is not positive
        OperationInProgressError: If another formation run holds the lock
        NothingToGroupError: If there are no registrants after the reset
        StoreOperationError: If groups can't be deleted or registrants fetched
    """
    validate_group_size(group_size)
    with _formation_lock(store):
        _reset_groups_locked(store)
        return _generate_groups_locked(store, group_size, rng)


def delete_group(store: MemoryStore, group_id: str) -> None:
    """
    Delete one group and unassign its members.

    Raises:
        NotFoundError: If the group doesn't exist
        StoreOperationError: If the store rejects the delete
    """
    try:
        store.update(
            REGISTRATIONS,
            Where().eq("group_id", group_id),
            {"assigned": False, "group_id": None},
        )
        deleted = store.delete(GROUPS, Where().eq("id", group_id))
    except StoreError as e:
        logger.error(f"Error deleting group {group_id}: {e}")
        raise StoreOperationError("فشل في حذف المجموعة") from e

    if not deleted:
        raise NotFoundError("المجموعة غير موجودة")


def get_groups(store: MemoryStore) -> List[Group]:
    """
    Load all groups, newest first, with members looked up by group reference.

    Raises:
        StoreOperationError: If groups can't be fetched
    """
    try:
        rows = store.select(GROUPS, order_by="created_at", descending=True)
    except StoreError as e:
        logger.error(f"Failed to fetch groups: {e}")
        raise StoreOperationError("فشل في تحميل المجموعات") from e

    groups = []
    for row in rows:
        group = Group.from_dict(row)
        try:
            members = store.select(REGISTRATIONS, Where().eq("group_id", group.id), order_by="created_at")
            group.member_records = [Registrant.from_dict(m) for m in members]
        except StoreError as e:
            logger.error(f"Error fetching members of group {group.id}: {e}")
            group.member_records = []
        groups.append(group)
    return groups


def get_group_by_id(store: MemoryStore, group_id: str) -> Optional[Group]:
    for group in get_groups(store):
        if group.id == group_id:
            return group
    return None
