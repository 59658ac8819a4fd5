"""Utility functions for OpenStack cluster cleanup."""

from .tag_helpers import format_tag
from .logging_config import get_logger, set_log_level
from .retry import RetryPolicy, report_stuck, run_with_backoff
from .workers import run_worker_pool, run_bounded

__all__ = [
    "format_tag",
    "get_logger",
    "set_log_level",
    "RetryPolicy",
    "report_stuck",
    "run_with_backoff",
    "run_worker_pool",
    "run_bounded",
]
