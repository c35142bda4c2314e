"""
日志管理：所有模块挂在 ``confreview`` 包 logger 下，控制台 + 按大小轮转的文件。

    from confreview.log import get_logger
    logger = get_logger(__name__)

处理器只装在包 logger 上一次；子 logger 通过 propagate 共享它们，
脚本（``__main__``）等包外名字会被挂到 ``confreview.`` 前缀下。
"""
import logging
import threading
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Optional

ROOT_LOGGER = "confreview"
_FORMAT = "%(asctime)s.%(msecs)03d | %(levelname)s | %(name)s | %(message)s"
_DATEFMT = "%Y-%m-%d %H:%M:%S"

_configured = False
_lock = threading.Lock()


def _log_path(log_dir: str, file_name: str) -> Path:
    path = Path(log_dir)
    if not path.is_absolute():
        path = Path(__file__).resolve().parents[2] / path
    path.mkdir(parents=True, exist_ok=True)
    return path / file_name


def configure_logging(level: Optional[str] = None, force: bool = False) -> logging.Logger:
    """按 settings.logging 给包 logger 装处理器；重复调用无副作用，除非 ``force``。"""
    global _configured
    from config.settings import settings

    root = logging.getLogger(ROOT_LOGGER)
    with _lock:
        if _configured and not force:
            return root
        cfg = settings.logging
        for handler in list(root.handlers):
            root.removeHandler(handler)
            handler.close()

        root.setLevel(getattr(logging, (level or cfg.level).upper(), logging.INFO))
        formatter = logging.Formatter(_FORMAT, datefmt=_DATEFMT)

        if cfg.console_output:
            console = logging.StreamHandler()
            console.setFormatter(formatter)
            root.addHandler(console)
        if cfg.file_output:
            rotating = RotatingFileHandler(
                _log_path(cfg.log_dir, cfg.file_name),
                maxBytes=cfg.max_file_mb * 1024 * 1024,
                backupCount=cfg.backup_count,
                encoding="utf-8",
            )
            rotating.setFormatter(formatter)
            root.addHandler(rotating)
        if not root.handlers:
            root.addHandler(logging.NullHandler())

        # pytest caplog listens on the root logger
        root.propagate = True
        _configured = True
    return root


def get_logger(name: str) -> logging.Logger:
    """返回 ``confreview`` 树下的命名 logger，首次调用时完成配置。"""
    if not _configured:
        configure_logging()
    if name != ROOT_LOGGER and not name.startswith(ROOT_LOGGER + "."):
        name = f"{ROOT_LOGGER}.{name.strip('_')}"
    return logging.getLogger(name)
