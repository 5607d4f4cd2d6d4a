from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from database.models import Sale

SALE_CONTRACT_FIELDS = {
    "contract_support_no",
    "contract_talad_no",
    "contract_type",
    "finance_type",
    "finance_entity",
}


@dataclass(frozen=True)
class SaleCreateCommand:
    sale_date: date | str | None = None
    price_before_tax: Any = None
    contract_support_no: str | None = None
    contract_talad_no: str | None = None
    contract_type: str | None = None
    finance_type: str | None = None
    finance_entity: str | None = None


@dataclass
class SaleDTO:
    id: int
    client_id: int
    client_name: str
    unit_id: int
    unit_code: str
    project_id: int
    sales_employee_id: int
    sales_employee_name: str
    reservation_id: int | None
    sale_date: date
    price_before_tax: Decimal
    contract_support_no: str | None
    contract_talad_no: str | None
    finance_type: str | None
    created_at: datetime

    @classmethod
    def from_model(cls, sale: Sale) -> "SaleDTO":
        return cls(
            id=sale.id,
            client_id=sale.client_id,
            client_name=sale.client.name,
            unit_id=sale.unit_id,
            unit_code=sale.unit.unit_code,
            project_id=sale.project_id,
            sales_employee_id=sale.sales_employee_id,
            sales_employee_name=sale.sales_employee.name,
            reservation_id=sale.reservation_id,
            sale_date=sale.sale_date,
            price_before_tax=sale.price_before_tax,
            contract_support_no=sale.contract_support_no,
            contract_talad_no=sale.contract_talad_no,
            finance_type=sale.finance_type,
            created_at=sale.created_at,
        )
