"""Lenient coercion for documents read back from the store.

Stored records may come from older forms or external imports, so bad values
degrade to ``None`` with a warning instead of failing validation.
"""

from __future__ import annotations

import math
from datetime import date, datetime
from enum import Enum
from typing import Any, Type

from loguru import logger


def _is_blank(value: Any) -> bool:
    return value is None or value == ""


def coerce_enum(enum_type: Type[Enum], value: Any, field: str) -> Enum | None:
    if _is_blank(value):
        return None
    try:
        return enum_type(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring invalid {} value {!r}", field, value)
        return None


def coerce_text(value: Any, field: str) -> str | None:
    if value is None or isinstance(value, str):
        return value
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    logger.warning("Ignoring non-text {} value {!r}", field, value)
    return None


def coerce_mapping(value: Any, field: str) -> dict | None:
    if value is None or isinstance(value, dict):
        return value
    logger.warning("Ignoring malformed {} value {!r}", field, value)
    return None


def coerce_float(value: Any, field: str) -> float | None:
    if _is_blank(value):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        logger.warning("Ignoring non-numeric {} value {!r}", field, value)
        return None
    if not math.isfinite(number):
        logger.warning("Ignoring non-finite {} value {!r}", field, value)
        return None
    return number


def coerce_int(value: Any, field: str) -> int | None:
    number = coerce_float(value, field)
    if number is None:
        return None
    return int(number)


def coerce_datetime(value: Any, field: str) -> datetime | None:
    if _is_blank(value):
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, str):
        try:
            return datetime.fromisoformat(value.replace("Z", "+00:00"))
        except ValueError:
            pass
    logger.warning("Ignoring unparseable {} value {!r}", field, value)
    return None


def coerce_hla(value: Any, field: str = "hla_typing") -> str | None:
    if _is_blank(value):
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, (list, tuple, set)):
        return " ".join(str(token) for token in value if token)
    logger.warning("Ignoring malformed {} value {!r}", field, value)
    return None
