"""Logging configuration using AWS Lambda Powertools."""

from aws_lambda_powertools import Logger

# Structured JSON logger shared by every deletion task and worker thread.
# Powertools takes its initial level from $LOG_LEVEL; the CLI sets it again.
logger = Logger(service="openstack-resource-cleanup")


def get_logger():
    """Get the configured logger instance.

    Returns Powertools Logger with:
    - Structured JSON logging
    - Context passed per call through ``extra=``
    """
    return logger


def set_log_level(level: str) -> None:
    """Change the level of the shared logger (used by the CLI)."""
    logger.setLevel(level.upper())
