"""Badge award export rows (JSON or CSV)."""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Mapping

from pydantic.alias_generators import to_camel

from nexus_profile.badges.schemas import BadgeExportRow
from nexus_profile.db.models import StudentBadge
from nexus_profile.gateway.schemas import IdentityUser

NOT_AVAILABLE = "N/A"
UNKNOWN = "Unknown"


def build_export_rows(
    awards: Iterable[StudentBadge],
    students: Mapping[str, IdentityUser],
) -> list[BadgeExportRow]:
    """One row per award; students the gateway could not resolve show placeholders."""
    rows = []
    for award in awards:
        student = students.get(award.student_id)
        rows.append(
            BadgeExportRow(
                badge_name=award.badge.name,
                student_name=(student.label if student else None) or UNKNOWN,
                college_member_id=(student.college_member_id if student else None) or NOT_AVAILABLE,
                department=(student.department if student else None) or NOT_AVAILABLE,
                awarded_at=award.awarded_at,
                awarded_by_name=award.awarded_by_name or UNKNOWN,
                reason=award.reason,
                badge_category=award.badge.category or NOT_AVAILABLE,
                badge_rarity=award.badge.rarity,
                project_name=f"Project-{award.project_id}" if award.project_id else NOT_AVAILABLE,
                event_name=f"Event-{award.event_id}" if award.event_id else NOT_AVAILABLE,
            )
        )
    return rows


def rows_to_csv(rows: Iterable[BadgeExportRow]) -> str:
    """Render rows as CSV with camelCase headers."""
    headers = [to_camel(name) for name in BadgeExportRow.model_fields]
    buffer = io.StringIO()
    writer = csv.DictWriter(buffer, fieldnames=headers)
    writer.writeheader()
    for row in rows:
        writer.writerow(row.model_dump(mode="json", by_alias=True))
    return buffer.getvalue()
