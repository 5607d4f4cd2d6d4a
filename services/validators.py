"""Валидаторы и нормализаторы входных данных."""

from __future__ import annotations

import re
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Mapping

from dateutil import parser as date_parser

from services.errors import ValidationError

# валютное обозначение в начале или в конце суммы: "SAR", "руб.", "ر.س"
_CURRENCY_PREFIX_RE = re.compile(r"^[^\W\d_](?:[^\W\d_]|\.)*")
_CURRENCY_SUFFIX_RE = re.compile(r"[^\W\d_](?:[^\W\d_]|\.)*$")
_PRICE_RE = re.compile(r"-?\d+(?:\.\d{1,2})?")

_CENTS = Decimal("0.01")
# Sale.price_before_tax: 14 знаков, из них 2 после запятой
MAX_PRICE = Decimal(10) ** 12


def normalize_number(value: str | int | float | Decimal | None) -> str | None:
    """Нормализует строку с числом.

    Удаляет пробелы (включая неразрывные), валюту в начале или в конце и
    завершающую точку, заменяет запятую на точку: ``"1 250 000,50 SAR"`` →
    ``"1250000.50"``. Буквы внутри числа не трогаются.
    """
    if value is None:
        return None

    text = str(value)
    text = re.sub(r"\s+", "", text)
    text = _CURRENCY_PREFIX_RE.sub("", text)
    text = _CURRENCY_SUFFIX_RE.sub("", text)
    text = text.replace(",", ".")
    text = text.rstrip(".")
    return text


def _not_a_number(field: str, value: Any) -> ValidationError:
    return ValidationError(f"Поле '{field}': '{value}' не является числом")


def _too_large(field: str) -> ValidationError:
    return ValidationError(
        f"Поле '{field}' слишком большое (максимум {MAX_PRICE - _CENTS})"
    )


def parse_price(value: Any, field: str = "price_before_tax") -> Decimal:
    """Разобрать неотрицательную сумму с точностью до копеек.

    Строка после нормализации должна целиком быть числом вида ``1234``,
    ``1234.5`` или ``1234,56``: экспонента, буквы внутри числа и
    разделители разрядов вроде ``"1,000"`` отклоняются.

    Raises:
        ValidationError: пустое значение, не число, NaN/бесконечность,
            отрицательная сумма или сумма не меньше :data:`MAX_PRICE`.
    """
    if value is None or isinstance(value, bool) or not str(value).strip():
        raise ValidationError(f"Поле '{field}' обязательно")
    if isinstance(value, (int, float, Decimal)):
        text = str(value)
    else:
        text = normalize_number(value)
        if not _PRICE_RE.fullmatch(text):
            raise _not_a_number(field, value)
    try:
        amount = Decimal(text)
    except InvalidOperation:
        raise _not_a_number(field, value) from None
    if not amount.is_finite():
        raise _not_a_number(field, value)
    if amount < 0:
        raise ValidationError(f"Поле '{field}' не может быть отрицательным")
    if amount >= MAX_PRICE:
        raise _too_large(field)
    try:
        amount = amount.quantize(_CENTS)
    except InvalidOperation:
        raise _too_large(field) from None
    # 999999999999.995 округляется вверх до предела
    if amount >= MAX_PRICE:
        raise _too_large(field)
    return amount


def parse_optional_date(value: Any, field: str) -> date | None:
    """Дата из ``date``/``datetime``/ISO-строки; пустое значение даёт ``None``."""
    if value in (None, ""):
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date_parser.isoparse(str(value).strip()).date()
    except ValueError:
        raise ValidationError(f"Поле '{field}': некорректная дата '{value}'") from None


def parse_required_date(value: Any, field: str) -> date:
    parsed = parse_optional_date(value, field)
    if parsed is None:
        raise ValidationError(f"Поле '{field}' обязательно")
    return parsed


def clean_text(value: str | None) -> str | None:
    """Обрезать пробелы; пустая строка превращается в ``None``."""
    if value is None:
        return None
    text = str(value).strip()
    return text or None


def require_ids(**ids: Any) -> None:
    """Проверить, что все идентификаторы заданы."""
    missing = [name for name, value in ids.items() if value in (None, "")]
    if missing:
        raise ValidationError(f"Не заданы обязательные поля: {', '.join(missing)}")


def combine_notes(details: str | None, notes: str | None) -> str | None:
    """Склеить выбранную деталь и свободный текст: ``"деталь - текст"``."""
    details = clean_text(details)
    notes = clean_text(notes)
    if details and notes:
        return f"{details} - {notes}"
    return details or notes


def pick_fields(data: Mapping[str, Any], allowed: set[str]) -> dict[str, Any]:
    """Оставить только разрешённые поля, пустые строки → ``None``."""
    return {
        key: clean_text(value) if isinstance(value, str) else value
        for key, value in data.items()
        if key in allowed
    }
