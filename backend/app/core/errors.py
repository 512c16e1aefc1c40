"""Error types shared by services and routes, and storage error translation."""

from __future__ import annotations

import logging
from typing import Sequence

from sqlalchemy.exc import DBAPIError

logger = logging.getLogger(__name__)

# PostgreSQL: no unique or exclusion constraint matching the ON CONFLICT specification
MISSING_CONFLICT_CONSTRAINT = "42P10"


class NotFoundError(LookupError):
    """Raised when a row does not exist for the requesting user."""


class StorageConfigurationError(RuntimeError):
    """The database schema lacks something an operation depends on."""

    def __init__(self, message: str, remediation: str | None = None) -> None:
        super().__init__(message)
        self.remediation = remediation


def is_missing_conflict_constraint(exc: DBAPIError) -> bool:
    orig = exc.orig
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code == MISSING_CONFLICT_CONSTRAINT:
        return True
    message = str(orig).lower()
    return "on conflict" in message and "constraint" in message


def translate_storage_error(
    exc: Exception, *, table: str, columns: Sequence[str], constraint: str | None = None
) -> Exception:
    """Map a failed upsert to an actionable configuration error when possible."""

    if not isinstance(exc, DBAPIError) or not is_missing_conflict_constraint(exc):
        return exc
    constraint = constraint or f"unique_{table}_{'_'.join(columns)}"
    remediation = f"ALTER TABLE {table} ADD CONSTRAINT {constraint} UNIQUE ({', '.join(columns)});"
    logger.error("Missing UNIQUE constraint on %s(%s). Run: %s", table, ", ".join(columns), remediation)
    return StorageConfigurationError(
        f"Configuración de Base de Datos incompleta: falta la restricción UNIQUE en {table}. "
        f"Ejecuta este SQL: {remediation}",
        remediation=remediation,
    )


__all__ = [
    "MISSING_CONFLICT_CONSTRAINT",
    "NotFoundError",
    "StorageConfigurationError",
    "is_missing_conflict_constraint",
    "translate_storage_error",
]
