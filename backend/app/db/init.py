"""Database schema initialization helpers."""

from __future__ import annotations

import logging

from sqlalchemy.exc import SQLAlchemyError

from app.db.session import Database

# Import models so that SQLAlchemy is aware of all tables before create_all runs.
import app.models  # noqa: F401  # pylint: disable=unused-import

logger = logging.getLogger(__name__)


async def init_database(database: Database) -> None:
    """Ensure all tables exist for the running application."""

    try:
        await database.create_all()
    except SQLAlchemyError:
        logger.exception("Failed to initialise database schema")
        raise
    logger.info("Database schema ready")


__all__ = ["init_database"]
