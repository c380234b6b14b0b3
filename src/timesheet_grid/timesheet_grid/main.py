from __future__ import annotations

import importlib
import logging
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv
from flask import Flask

from config import get_settings_module

from .catalog.defaults import DEFAULT_ABSENCE_TYPES
from .common.logging_utils import setup_logging
from .container import Container, build_container, build_memory_container
from .database.bootstrap import apply_schema, apply_sql_file, list_tables
from .timesheets.controller import register as register_timesheets

logger = logging.getLogger(__name__)

DATABASE_DIR = Path(__file__).resolve().parents[3] / "database"


def _prepare_database(settings, db_config: dict) -> None:
    if bool(getattr(settings, "AUTO_INIT_DB", False)):
        apply_schema(db_config, schema_path=DATABASE_DIR / "schema.sql")
        logger.info("Schema ready (tables=%d)", len(list_tables(db_config)))
    if bool(getattr(settings, "AUTO_SEED_DB", False)):
        apply_sql_file(db_config, path=DATABASE_DIR / "seed.sql")
        logger.info("Seed data ready")


def create_app(container: Optional[Container] = None) -> Flask:
    load_dotenv(override=False)
    app = Flask(__name__)

    settings_module = get_settings_module()
    settings = importlib.import_module(settings_module)
    app.secret_key = getattr(settings, "SECRET_KEY")
    app.config["DEBUG"] = bool(getattr(settings, "DEBUG", False))
    app.config["TESTING"] = bool(getattr(settings, "TESTING", False))

    setup_logging(getattr(settings, "LOG_LEVEL", "INFO"), log_file=getattr(settings, "LOG_FILE", "") or None)

    if container is None:
        backend = str(getattr(settings, "STORAGE_BACKEND", "mysql")).lower()
        if backend == "memory":
            logger.info("settings=%s storage=memory", settings_module)
            container = build_memory_container(absence_types=DEFAULT_ABSENCE_TYPES)
        else:
            db_config = dict(getattr(settings, "DB_CONFIG"))
            logger.info(
                "settings=%s db=%s@%s:%s/%s",
                settings_module,
                db_config.get("user"),
                db_config.get("host"),
                db_config.get("port", 3306),
                db_config.get("database"),
            )
            _prepare_database(settings, db_config)
            container = build_container(db_config=db_config)

    app.extensions["timesheet_grid"] = container
    register_timesheets(app, container)

    return app
