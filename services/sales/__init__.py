"""Подмодуль сервисов продаж."""

from .dto import SALE_CONTRACT_FIELDS, SaleCreateCommand, SaleDTO
from .sale_service import (
    build_sale_query,
    convert_to_sale,
    delete_sale,
    find_reservation_to_restore,
    get_sale_by_id,
    list_sales,
)

__all__ = [
    "SALE_CONTRACT_FIELDS",
    "SaleCreateCommand",
    "SaleDTO",
    "build_sale_query",
    "convert_to_sale",
    "delete_sale",
    "find_reservation_to_restore",
    "get_sale_by_id",
    "list_sales",
]
