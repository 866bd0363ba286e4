#!/usr/bin/env python3
"""
Container start-up: wait for the database, apply Alembic migrations, and
optionally load the scenario catalog.

    python run_migrations.py [--seed]

Exits non-zero if the database never comes up or a migration fails, so the
API never starts against an unknown schema.
"""
import argparse
import logging
import os
import sys
import time

from dotenv import load_dotenv

load_dotenv()

from core.database import check_db_connection, session_scope  # noqa: E402
from core.logging import setup_logging  # noqa: E402

logger = logging.getLogger(__name__)

MAX_WAIT_ATTEMPTS = 30
WAIT_INTERVAL_S = 1


def _alembic_config():
    from alembic.config import Config

    here = os.path.dirname(os.path.abspath(__file__))
    config = Config(os.path.join(here, "alembic.ini"))
    config.set_main_option("script_location", os.path.join(here, "alembic"))
    return config


def alembic_upgrade_head() -> None:
    from alembic import command

    command.upgrade(_alembic_config(), "head")


def wait_for_database(max_attempts: int = MAX_WAIT_ATTEMPTS) -> bool:
    for attempt in range(1, max_attempts + 1):
        if check_db_connection():
            return True
        logger.warning(f"Database not ready (attempt {attempt}/{max_attempts})")
        time.sleep(WAIT_INTERVAL_S)
    return False


def seed_catalog() -> None:
    from scripts.seed_scenarios import seed_response_templates, seed_scenarios

    with session_scope() as db:
        scenarios = seed_scenarios(db)
        templates = seed_response_templates(db)
    logger.info(f"Seeded {scenarios} scenarios and {templates} response templates")


def main() -> int:
    parser = argparse.ArgumentParser(description="Apply migrations before the API starts")
    parser.add_argument("--seed", action="store_true", help="Load default scenarios and templates")
    args = parser.parse_args()

    setup_logging()
    if not wait_for_database():
        logger.error(f"Database still unavailable after {MAX_WAIT_ATTEMPTS} attempts")
        return 1

    try:
        alembic_upgrade_head()
    except Exception as e:
        logger.error(f"Migration failed: {e}", exc_info=True)
        return 1
    logger.info("Database schema is at head")

    if args.seed:
        try:
            seed_catalog()
        except Exception as e:
            logger.error(f"Seeding failed: {e}", exc_info=True)
            return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
