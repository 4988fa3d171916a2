#!/usr/bin/env python3
import logging
import os
import subprocess
import sys

from docbridge.core.logging import configure_logging
from docbridge.core.settings import get_settings

logger = logging.getLogger("docbridge.migrate")

BACKEND_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))


def run_migrations(revision: str = "head"):
    try:
        logger.info(f"Running database migrations to {revision}...")
        subprocess.run(["alembic", "upgrade", revision], check=True, cwd=BACKEND_DIR)
        logger.info("Migrations completed successfully!")
    except subprocess.CalledProcessError as e:
        logger.error(f"Migration failed: {e}")
        sys.exit(1)
    except FileNotFoundError:
        logger.error("Alembic not found. Make sure it's installed.")
        sys.exit(1)

if __name__ == "__main__":
    configure_logging(get_settings().log_level)
    run_migrations(sys.argv[1] if len(sys.argv) > 1 else "head")
