"""Application bootstrap: logging, database and a headless Qt core."""

import logging
import sys
from pathlib import Path

from PySide6.QtCore import QCoreApplication

from job_desk.config import Config
from job_desk.database.connection import DatabaseConnection
from job_desk.database.repository import Repository
from job_desk.database.schema import initialize_database
from job_desk.utils.constants import APP_NAME, APP_VERSION

logger = logging.getLogger(__name__)


def configure_logging(level: str | None = None):
    """Apply ``Config.LOG_LEVEL`` (or *level*) to the root logger."""
    logging.basicConfig(
        level=getattr(logging, (level or Config.LOG_LEVEL).upper(),
                      logging.INFO),
        format="%(asctime)s %(levelname)-8s %(name)s: %(message)s",
    )


def create_repository(db_path: str | Path | None = None) -> Repository:
    """Open (and if needed create) the database and wrap it in a Repository."""
    db = DatabaseConnection(db_path or Config.DATABASE_PATH)
    initialize_database(db)
    return Repository(db)


def main():
    """Start the Qt core loop with the database ready.

    Screens attach to ``MyJobsController`` once a user has signed in.
    """
    configure_logging()
    repo = create_repository()
    logger.info("%s %s using %s", APP_NAME, APP_VERSION, repo.db.db_path)

    app = QCoreApplication(sys.argv)
    app.setApplicationName(APP_NAME)
    app.setApplicationVersion(APP_VERSION)
    sys.exit(app.exec())


if __name__ == "__main__":
    main()
