"""Registrant data model for TeamUp registration."""
from dataclasses import asdict, dataclass
from datetime import datetime
from typing import Any, Dict, Optional

# Known interest categories; the round-robin visits them in this order.
INTEREST_ORDER = ["marketing", "software", "other"]

INTEREST_LABELS = {
    "software": "💻 برمجة",
    "marketing": "📈 تسويق",
    "other": "✨ أخرى",
}


@dataclass
class Registrant:
    """Student registered for the competition."""

    id: str
    name: str
    phone: str
    interest: str
    college: str = ""
    assigned: bool = False
    group_id: Optional[str] = None
    is_dummy: bool = False
    created_at: str = ""

    def __post_init__(self):
        """Validate registrant data."""
        if not self.name or not self.name.strip():
            raise ValueError("Name cannot be empty")
        if not self.phone or not self.phone.strip():
            raise ValueError("Phone cannot be empty")
        if not self.interest:
            raise ValueError("Interest cannot be empty")

        if self.created_at:
            try:
                datetime.fromisoformat(self.created_at.replace('Z', '+00:00'))
            except ValueError as e:
                raise ValueError(f"Invalid timestamp format: {self.created_at}") from e

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Registrant":
        """Build a registrant from a store row, tolerating missing optional fields."""
        return cls(
            id=str(data["id"]),
            name=data["name"],
            phone=data["phone"],
            interest=data.get("interest") or "other",
            college=data.get("college") or "",
            assigned=bool(data.get("assigned", False)),
            group_id=data.get("group_id"),
            is_dummy=bool(data.get("is_dummy", False)),
            created_at=data.get("created_at") or "",
        )

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    def interest_label(self) -> str:
        return INTEREST_LABELS.get(self.interest, self.interest)
