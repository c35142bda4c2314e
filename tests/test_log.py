import logging
from logging.handlers import RotatingFileHandler

import pytest

from config.settings import settings
from confreview.log import ROOT_LOGGER, configure_logging, get_logger


@pytest.fixture
def file_logging(tmp_path):
    cfg = settings.logging
    saved = (cfg.log_dir, cfg.file_name, cfg.console_output, cfg.file_output)
    cfg.log_dir, cfg.file_name, cfg.console_output, cfg.file_output = str(tmp_path), "test.log", False, True
    try:
        yield tmp_path / "test.log"
    finally:
        cfg.log_dir, cfg.file_name, cfg.console_output, cfg.file_output = saved
        configure_logging(force=True)


def test_module_names_hang_under_package_logger():
    assert get_logger("confreview.workflow.assignment").name == "confreview.workflow.assignment"
    assert get_logger(ROOT_LOGGER).name == ROOT_LOGGER
    assert get_logger("__main__").name == "confreview.main"
    assert get_logger("bootstrap").parent.name == ROOT_LOGGER


def test_rotating_file_receives_child_records(file_logging):
    root = configure_logging(level="DEBUG", force=True)
    handlers = [h for h in root.handlers if isinstance(h, RotatingFileHandler)]
    assert len(handlers) == 1

    get_logger("confreview.stores.users").info("reviewer created id=%s", 7)
    handlers[0].flush()

    line = file_logging.read_text(encoding="utf-8").strip().splitlines()[-1]
    assert "| INFO | confreview.stores.users | reviewer created id=7" in line


def test_reconfigure_without_force_keeps_handlers(file_logging):
    root = configure_logging(force=True)
    before = list(root.handlers)
    assert configure_logging(level="ERROR") is root
    assert root.handlers == before
    assert root.level != logging.ERROR
