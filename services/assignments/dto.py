from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from database.models import Client


@dataclass
class ClientDTO:
    id: int
    name: str
    mobile: str | None
    status: str
    interested_in_project_id: int | None
    created_at: datetime

    @classmethod
    def from_model(cls, client: Client) -> "ClientDTO":
        return cls(
            id=client.id,
            name=client.name,
            mobile=client.mobile,
            status=client.status,
            interested_in_project_id=client.interested_in_project_id,
            created_at=client.created_at,
        )


@dataclass(frozen=True)
class AssignmentChange:
    """Итог сохранения: какие клиенты добавлены продавцу, какие сняты."""

    added: list[int] = field(default_factory=list)
    removed: list[int] = field(default_factory=list)
