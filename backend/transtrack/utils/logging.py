from __future__ import annotations

from loguru import logger


def log_db_error(context: str, exc: Exception) -> None:
    logger.error("Database error in {}: {}", context, exc)


def log_rule_failure(rule_name: str, patient_id: str, exc: Exception) -> None:
    logger.opt(exception=exc).warning("Notification rule {!r} failed for patient {}", rule_name, patient_id)
