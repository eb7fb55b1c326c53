"""Balanced group builder.

Pure functions: no store access, no logging side effects beyond debug.
"""
import logging
import random
from typing import Dict, List, Optional, Sequence

from src.models.group import ProposedGroup
from src.models.registrant import INTEREST_ORDER, Registrant
from src.utils.exceptions import InvalidArgumentError

logger = logging.getLogger(__name__)

THEME_NAMES = [
    "Tech Titans",
    "Innovation Squad",
    "Digital Dynamos",
    "Code Crusaders",
    "Marketing Mavericks",
    "Growth Hackers",
    "Creative Collective",
    "Data Drivers",
    "Future Founders",
    "Startup Stars",
    "Solution Seekers",
    "Impact Makers",
    "Vision Team",
    "Success Squad",
    "Dream Team",
]

REAL_PREFIX = "🎯"
TEST_PREFIX = "🤖 Test"


def category_order(registrants: Sequence[Registrant],
                   known: Sequence[str] = INTEREST_ORDER) -> List[str]:
    """Known categories first in their fixed order, then unknown ones by name."""
    extra = sorted({r.interest for r in registrants} - set(known))
    return list(known) + extra


def interleave_by_interest(registrants: Sequence[Registrant],
                           order: Optional[Sequence[str]] = None) -> List[Registrant]:
    """
    Merge registrants round-robin across interest categories.

    Round ``i`` takes the ``i``-th registrant of each category in ``order``;
    exhausted categories are skipped. Order within a category is preserved.
    """
    order = list(order) if order is not None else category_order(registrants)

    buckets: Dict[str, List[Registrant]] = {interest: [] for interest in order}
    for registrant in registrants:
        # Categories missing from an explicit order go last
        if registrant.interest not in buckets:
            buckets[registrant.interest] = []
            order.append(registrant.interest)
        buckets[registrant.interest].append(registrant)

    rounds = max((len(b) for b in buckets.values()), default=0)
    merged = []
    for i in range(rounds):
        for interest in order:
            bucket = buckets[interest]
            if i < len(bucket):
                merged.append(bucket[i])
    return merged


def group_name(prefix: str, index: int) -> str:
    """Name of the ``index``-th (zero-based) group, cycling through THEME_NAMES."""
    return f"{prefix} {THEME_NAMES[index % len(THEME_NAMES)]} #{index + 1}"


def validate_group_size(group_size: int) -> None:
    """
    Raises:
        InvalidArgumentError: If group_size is not a positive integer
    """
    if isinstance(group_size, bool) or not isinstance(group_size, int) or group_size <= 0:
        raise InvalidArgumentError(f"حجم المجموعة يجب أن يكون رقمًا موجبًا (got {group_size!r})")


def build_balanced_groups(registrants: Sequence[Registrant], group_size: int, prefix: str,
                          rng: Optional[random.Random] = None) -> List[ProposedGroup]:
    """
    Partition one cohort of registrants into interest-balanced groups.

    Args:
        registrants: Unassigned registrants of a single cohort
        group_size: Target members per group; the last group may be smaller
        prefix: Marker placed before every group name
        rng: Random source, for reproducible shuffles

    Returns:
        List of ProposedGroup in creation order; empty if no registrants

    Raises:
        InvalidArgumentError: If group_size is not a positive integer
    """
    validate_group_size(group_size)

    if not registrants:
        return []

    shuffled = list(registrants)
    (rng or random).shuffle(shuffled)

    merged = interleave_by_interest(shuffled)

    groups = []
    for start in range(0, len(merged), group_size):
        index = start // group_size
        groups.append(ProposedGroup(name=group_name(prefix, index), members=merged[start:start + group_size]))

    logger.debug(f"Balanced {len(merged)} registrants into {len(groups)} groups ({prefix})")
    return groups
