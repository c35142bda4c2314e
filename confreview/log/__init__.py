"""Logging for the conference backend: one package logger, console plus rotating file."""
from .log_manager import ROOT_LOGGER, configure_logging, get_logger

__all__ = ["ROOT_LOGGER", "configure_logging", "get_logger"]
