"""Group data models."""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from src.models.registrant import Registrant


@dataclass
class Group:
    """Persisted team of registrants."""

    id: str
    name: str
    members: List[str] = field(default_factory=list)
    member_count: int = 0
    created_at: str = ""
    member_records: List[Registrant] = field(default_factory=list)

    def __post_init__(self):
        """Validate group data after initialization."""
        if not self.name or not self.name.strip():
            raise ValueError("Group name cannot be empty")
        if self.member_count < 0:
            raise ValueError("Member count cannot be negative")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Group":
        members = list(data.get("members") or [])
        return cls(
            id=str(data["id"]),
            name=data["name"],
            members=members,
            member_count=data.get("member_count", len(members)),
            created_at=data.get("created_at") or "",
        )

    def is_test_group(self) -> bool:
        """Check if the group was formed from synthetic entrants."""
        return self.name.startswith("🤖")


@dataclass
class ProposedGroup:
    """Group produced by the balancer, not yet persisted."""

    name: str
    members: List[Registrant]

    @property
    def member_ids(self) -> List[str]:
        return [m.id for m in self.members]

    def to_row(self, created_at: str) -> Dict[str, Any]:
        return {
            "name": self.name,
            "members": self.member_ids,
            "member_count": len(self.members),
            "created_at": created_at,
        }


@dataclass
class FailedGroupAttempt:
    """Proposed group whose persistence failed during group formation."""

    name: str
    member_ids: List[str]
    stage: str  # "insert_group" or "assign_members"
    error: str
    group_id: Optional[str] = None


@dataclass
class GroupFormationResult:
    """Outcome of a group formation run."""

    created: List[Group] = field(default_factory=list)
    failed: List[FailedGroupAttempt] = field(default_factory=list)

    @property
    def skipped_count(self) -> int:
        """Number of proposed groups that were not persisted at all."""
        return sum(1 for f in self.failed if f.stage == "insert_group")


@dataclass
class GroupRegistrationResult:
    """Outcome of a pre-formed group registration."""

    group: Group
    members: List[Registrant]
