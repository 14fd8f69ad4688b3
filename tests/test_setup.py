# tests/test_setup.py
"""Unit tests for logging setup and the journal init script."""

import sys
import os
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

import importlib.util
import logging
from logging.handlers import RotatingFileHandler
from sqlalchemy import create_engine
from fleet_rental.database import Base
from fleet_rental.models.workflow_journal import WorkflowJournal  # noqa: F401
from fleet_rental.utils import logger as logger_module
from fleet_rental.utils.logger import get_logger

INIT_DB_PATH = os.path.join(os.path.dirname(__file__), "..", "scripts", "setup", "init_db.py")


def load_init_db():
    spec = importlib.util.spec_from_file_location("init_db", INIT_DB_PATH)
    module = importlib.util.module_from_spec(spec)
    spec.loader.exec_module(module)
    return module


class TestLogger:
    def test_root_configured_once(self):
        get_logger("fleet_rental.a")
        count = len(logging.getLogger().handlers)
        get_logger("fleet_rental.b")
        assert len(logging.getLogger().handlers) == count

    def test_rotating_file_under_log_dir(self):
        get_logger(__name__)
        files = [h for h in logging.getLogger().handlers if isinstance(h, RotatingFileHandler)]
        assert files
        assert os.path.dirname(files[0].baseFilename) == logger_module.LOG_DIR

    def test_http_client_logs_quieted(self):
        get_logger(__name__)
        assert logging.getLogger("httpx").level == logging.WARNING


class TestInitDb:
    def test_creates_journal_table(self, monkeypatch, capsys):
        init_db = load_init_db()
        engine = create_engine("sqlite://")
        monkeypatch.setattr(init_db, "engine", engine)
        monkeypatch.setattr(init_db, "create_tables", lambda: Base.metadata.create_all(bind=engine))

        assert init_db.main() == 0
        assert "workflow_journal" in init_db.list_tables()
        assert "created" in capsys.readouterr().out

    def test_unreachable_database_fails(self, monkeypatch):
        init_db = load_init_db()
        monkeypatch.setattr(init_db, "check_connection", lambda: False)
        assert init_db.main() == 1
