from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime

from database.models import FollowUp


@dataclass(frozen=True)
class FollowUpCommand:
    client_id: int
    type: str
    notes: str | None = None
    details: str | None = None
    next_follow_up_date: date | str | None = None
    visit_location: str | None = None
    unit_id: int | None = None


@dataclass
class FollowUpDTO:
    id: int
    client_id: int
    employee_id: int
    employee_name: str | None
    type: str
    notes: str | None
    next_follow_up_date: date | None
    visit_location: str | None
    unit_id: int | None
    unit_code: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, follow_up: FollowUp) -> "FollowUpDTO":
        unit = follow_up.unit if follow_up.unit_id else None
        return cls(
            id=follow_up.id,
            client_id=follow_up.client_id,
            employee_id=follow_up.employee_id,
            employee_name=follow_up.employee.name if follow_up.employee_id else None,
            type=follow_up.type,
            notes=follow_up.notes,
            next_follow_up_date=follow_up.next_follow_up_date,
            visit_location=follow_up.visit_location,
            unit_id=follow_up.unit_id,
            unit_code=unit.unit_code if unit else None,
            created_at=follow_up.created_at,
        )
