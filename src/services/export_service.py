"""CSV export of groups and project applications."""
import csv
import io
from typing import Iterable, List, Sequence

from src.models.application import ProjectApplication
from src.models.group import Group

GROUP_EXPORT_HEADER = ["group_id", "group_name", "member_name", "member_phone", "member_college", "member_interest"]
APPLICATION_EXPORT_HEADER = ["id", "project_name", "team_name", "status", "created_at"]


def export_groups_rows(groups: Iterable[Group]) -> List[List[str]]:
    """
    One row per group membership, after a header row.

    Members come from each group's looked-up ``member_records``.
    """
    rows = [list(GROUP_EXPORT_HEADER)]
    for group in groups:
        for member in group.member_records:
            rows.append([
                group.id,
                group.name,
                member.name,
                member.phone,
                member.college or "",
                member.interest,
            ])
    return rows


def export_applications_rows(applications: Iterable[ProjectApplication]) -> List[List[str]]:
    rows = [list(APPLICATION_EXPORT_HEADER)]
    for app in applications:
        rows.append([app.id, app.project_name, app.team_name or "", app.status, app.created_at])
    return rows


def rows_to_csv_bytes(rows: Sequence[Sequence[object]]) -> bytes:
    """Serialize rows as UTF-8 CSV with a BOM so spreadsheet apps read Arabic correctly."""
    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerows(rows)
    return ("\ufeff" + output.getvalue()).encode("utf-8")


def export_filename(prefix: str, date_str: str) -> str:
    return f"{prefix}-{date_str}.csv"
