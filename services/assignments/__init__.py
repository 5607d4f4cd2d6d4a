"""Подмодуль закрепления клиентов за продавцами."""

from .assignment_service import (
    build_assigned_clients_query,
    list_assigned_clients,
    list_unassigned_clients,
    save_client_assignments,
)
from .dto import AssignmentChange, ClientDTO

__all__ = [
    "AssignmentChange",
    "ClientDTO",
    "build_assigned_clients_query",
    "list_assigned_clients",
    "list_unassigned_clients",
    "save_client_assignments",
]
