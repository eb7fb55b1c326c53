"""Project support application models."""
import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

APPLICATION_STATUSES = ["pending", "accepted", "rejected"]

STATUS_LABELS = {
    "pending": "قيد المراجعة",
    "accepted": "مقبول",
    "rejected": "مرفوض",
}

MAX_TEAM_MEMBERS = 5


@dataclass
class TeamMember:
    """Member of a team applying for project support."""

    name: str
    phone: str
    email: str = ""
    role: str = ""
    id: Optional[str] = None
    application_id: Optional[str] = None

    def __post_init__(self):
        if not self.name or not self.name.strip():
            raise ValueError("Team member name cannot be empty")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "TeamMember":
        return cls(
            name=data["name"],
            phone=data.get("phone", ""),
            email=data.get("email") or "",
            role=data.get("role") or "",
            id=data.get("id"),
            application_id=data.get("application_id"),
        )


@dataclass
class ProjectApplication:
    """Funding program application."""

    id: str
    project_name: str
    team_name: str = ""
    project_description: str = ""
    problem_statement: str = ""
    traction_mvp: bool = False
    traction_pilot: bool = False
    traction_sales: bool = False
    traction_links: str = ""
    traction_details: Dict[str, str] = field(default_factory=dict)
    video_pitch: str = ""
    demo_link: str = ""
    support_needs: str = ""
    expected_growth: str = ""
    status: str = "pending"
    created_at: str = ""
    team_members: List[TeamMember] = field(default_factory=list)

    def __post_init__(self):
        if self.status not in APPLICATION_STATUSES:
            raise ValueError(f"Status must be one of {APPLICATION_STATUSES}, got: {self.status}")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProjectApplication":
        details = data.get("traction_details") or {}
        # Stored as JSON text
        if isinstance(details, str):
            try:
                details = json.loads(details)
            except json.JSONDecodeError:
                details = {"other": details}

        return cls(
            id=str(data["id"]),
            project_name=data.get("project_name", ""),
            team_name=data.get("team_name") or "",
            project_description=data.get("project_description") or "",
            problem_statement=data.get("problem_statement") or "",
            traction_mvp=bool(data.get("traction_mvp", False)),
            traction_pilot=bool(data.get("traction_pilot", False)),
            traction_sales=bool(data.get("traction_sales", False)),
            traction_links=data.get("traction_links") or "",
            traction_details=details,
            video_pitch=data.get("video_pitch") or "",
            demo_link=data.get("demo_link") or "",
            support_needs=data.get("support_needs") or "",
            expected_growth=data.get("expected_growth") or "",
            status=data.get("status") or "pending",
            created_at=data.get("created_at") or "",
            team_members=[TeamMember.from_dict(m) for m in data.get("team_members", [])],
        )

    def status_label(self) -> str:
        return STATUS_LABELS.get(self.status, self.status)

    def traction_summary(self) -> List[str]:
        """Human-readable list of traction milestones reached."""
        reached = []
        if self.traction_mvp:
            reached.append("MVP")
        if self.traction_pilot:
            reached.append("Pilot")
        if self.traction_sales:
            reached.append("Sales")
        return reached
