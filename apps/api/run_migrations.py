#!/usr/bin/env python3
"""Database bootstrap: run Alembic migrations.

- Wait for the database to accept connections.
- Always run `alembic upgrade head` on startup.
- If migrations fail, fail fast (don't start with an unknown schema).
"""

import os
import sys
import time
import logging

from core.database import check_db_connection
from core.logging import setup_logging

setup_logging()
logger = logging.getLogger(__name__)


def _get_alembic_config():
    """Load Alembic config for programmatic migrations."""
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    cfg = Config(os.path.join(here, "alembic.ini"))
    cfg.set_main_option("script_location", os.path.join(here, "alembic"))
    return cfg


def wait_for_db(max_attempts: int = 30, delay_s: float = 2.0) -> bool:
    for attempt in range(1, max_attempts + 1):
        if check_db_connection():
            return True
        logger.info(f"Database not ready (attempt {attempt}/{max_attempts})")
        time.sleep(delay_s)
    return False


def main() -> int:
    from alembic import command

    if not wait_for_db():
        logger.error("Database never became ready")
        return 1

    try:
        command.upgrade(_get_alembic_config(), "head")
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        return 1

    logger.info("Database schema at head")
    return 0


if __name__ == "__main__":
    sys.exit(main())
