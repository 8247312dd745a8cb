"""
Logging and console output for bookquery.

This module provides the structured log formatter, the run event log and
the rich result printer.
"""

from .events import LogEvent, RunCompleted, RunStarted, StepCompleted, StepStarted
from .formatters import StructuredFormatter, configure_logging
from .log_manager import LogManager
from .result_printer import ResultPrinter

__all__ = [
    "LogManager",
    "LogEvent",
    "RunStarted",
    "RunCompleted",
    "StepStarted",
    "StepCompleted",
    "ResultPrinter",
    "StructuredFormatter",
    "configure_logging",
]
